from contextlib import asynccontextmanager

import pytest
import redis

from solt.exceptions import EnvironmentNotFoundError, StoreConnectionError, WrongTypeError
from solt.services.migrator import CopyStatus, copy_key, copy_selection, migrate, select_keys
from solt.services.redis_service import FakeRedis, KeyType, RedisService
from solt.services.registry import ConnectionProfile
from tests.conftest import seed


USERS = {"user:1": "alice", "user:2": "bob", "user:set": {"a", "b"}, "other:1": "x"}


class BrokenReads(FakeRedis):
    """Хранилище, которое не может прочитать отдельные ключи"""

    def __init__(self, broken):
        super().__init__("broken")
        self.broken = broken

    async def get_string_value(self, key):
        if key in self.broken:
            raise redis.ConnectionError("connection reset by peer")
        return await super().get_string_value(key)


async def test_copy_with_prefix_in_one_environment(registry, stores):
    store = seed(stores.at(0), USERS)

    report = await migrate(registry, "user:*", prefix="bak:")

    assert report.attempted == 3
    assert report.copied == 2
    assert [(o.source_key, o.status) for o in report.problems] == [
        ("user:set", CopyStatus.SKIPPED_WRONG_TYPE)
    ]
    assert await store.get_string_value("bak:user:1") == "alice"
    assert await store.get_string_value("bak:user:2") == "bob"
    assert await store.key_type("bak:user:set") == KeyType.NONE
    assert await store.key_type("bak:other:1") == KeyType.NONE
    assert await store.get_set("user:set") == ["a", "b"]
    assert store.closed


async def test_copy_between_environments(registry, stores):
    source = seed(stores.at(0), USERS)
    destination = stores.at(1)

    report = await migrate(registry, "user:?", source_env="dev", dest_env="staging")

    assert report.copied == 2
    assert sorted(destination.storage) == ["user:1", "user:2"]
    assert await destination.get_string_value("user:1") == "alice"
    assert source.closed and destination.closed


async def test_same_store_requires_prefix(registry, stores):
    seed(stores.at(0), USERS)

    with pytest.raises(ValueError):
        await migrate(registry, "user:*", source_env="dev", dest_env="dev")
    assert stores.at(0).storage.keys() == USERS.keys()


async def test_no_matching_keys(registry, stores):
    seed(stores.at(0), USERS)

    report = await migrate(registry, "session:*", prefix="bak:")

    assert report.attempted == 0
    assert report.outcomes == []


async def test_partial_write_failure(registry, stores):
    store = seed(stores.at(0), {"user:1": "alice", "user:2": "bob", "user:3": "carol", "user:set": {"a"}})
    store.fail_writes.add("bak:user:2")

    report = await migrate(registry, "user:*", prefix="bak:")

    assert [(o.source_key, o.status) for o in report.outcomes] == [
        ("user:1", CopyStatus.COPIED),
        ("user:2", CopyStatus.FAILED),
        ("user:3", CopyStatus.COPIED),
        ("user:set", CopyStatus.SKIPPED_WRONG_TYPE),
    ]
    assert report.copied == 2
    assert "write rejected" in report.problems[0].reason
    assert await store.get_string_value("bak:user:3") == "carol"
    assert await store.key_type("bak:user:2") == KeyType.NONE


async def test_copy_is_idempotent(registry, stores):
    store = seed(stores.at(0), USERS)

    first = await migrate(registry, "user:[12]", prefix="bak:")
    snapshot = dict(store.storage)
    second = await migrate(registry, "user:[12]", prefix="bak:")

    assert first == second
    assert store.storage == snapshot


async def test_destination_is_overwritten_without_ttl(registry, stores):
    source = seed(stores.at(0), {"user:1": "alice"})
    await source.set_string_value("user:1", "alice", ttl=300)
    destination = seed(stores.at(1), {"user:1": "stale"})
    destination.expires["user:1"] = 10 ** 12

    await migrate(registry, "user:1", dest_env="staging")

    assert await destination.get_string_value("user:1") == "alice"
    assert "user:1" not in destination.expires
    assert (await destination.key_info("user:1")).ttl == -1


async def test_unknown_environment_opens_no_connections(registry, stores):
    with pytest.raises(EnvironmentNotFoundError):
        await migrate(registry, "*", source_env="dev", dest_env="prod")
    assert stores == {}


async def test_destination_connection_failure_closes_source(registry, stores):
    source = seed(stores.at(0), USERS)
    stores.at(1).fail_connect = True

    with pytest.raises(StoreConnectionError):
        await migrate(registry, "user:*", dest_env="staging")
    assert source.closed
    assert stores.at(1).closed


async def test_custom_connector(registry):
    opened = []
    store = seed(FakeRedis(), USERS)

    @asynccontextmanager
    async def connect(profile: ConnectionProfile):
        opened.append(profile.name)
        yield store

    report = await migrate(registry, "user:1", prefix="copy:", connect=connect)

    assert opened == ["dev"]
    assert report.copied == 1


async def test_read_failure_is_recorded():
    source = seed(BrokenReads({"user:2"}), USERS)
    destination = FakeRedis()

    report = await copy_selection(source, destination, "user:*", "bak:")

    outcome = next(o for o in report.outcomes if o.source_key == "user:2")
    assert outcome.status == CopyStatus.FAILED
    assert outcome.reason.startswith("read failed")
    assert report.copied == 1


async def test_copy_key_missing_value():
    outcome = await copy_key(FakeRedis(), FakeRedis(), "gone", "bak:gone")
    assert outcome.status == CopyStatus.SKIPPED_NOT_FOUND
    assert outcome.destination_key == "bak:gone"


async def test_select_keys_passes_pattern_through():
    store = seed(FakeRedis(), USERS)
    selection = await select_keys(store, "user:[^s]*")
    assert selection.pattern == "user:[^s]*"
    assert selection.keys == ["user:1", "user:2"]


async def test_wrong_type_reason_names_actual_type():
    store = seed(FakeRedis(), USERS)
    with pytest.raises(WrongTypeError):
        await store.get_string_value("user:set")
    outcome = await copy_key(store, FakeRedis(), "user:set", "bak:user:set")
    assert "holds a set value" in outcome.reason


class StubClient:
    """Клиент redis, у которого GET всегда завершается ошибкой сервера"""

    def __init__(self, error, key_type="set"):
        self.error = error
        self.key_type = key_type

    async def get(self, key):
        raise self.error

    async def type(self, key):
        return self.key_type


def service_with(client) -> RedisService:
    service = RedisService(ConnectionProfile(name="dev"))
    service.redis = client
    return service


async def test_server_wrongtype_reply_is_skipped():
    source = service_with(StubClient(
        redis.ResponseError("WRONGTYPE Operation against a key holding the wrong kind of value")
    ))
    destination = FakeRedis()

    outcome = await copy_key(source, destination, "tags", "bak:tags")

    assert outcome.status == CopyStatus.SKIPPED_WRONG_TYPE
    assert "holds a set value" in outcome.reason
    assert destination.storage == {}


async def test_server_error_reply_is_failed():
    source = service_with(StubClient(redis.ResponseError("ERR x")))

    outcome = await copy_key(source, FakeRedis(), "tags", "bak:tags")

    assert outcome.status == CopyStatus.FAILED
    assert outcome.reason == "read failed: ERR x"

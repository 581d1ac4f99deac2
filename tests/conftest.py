import pytest
from click.testing import CliRunner

from solt.services import redis_service
from solt.services.redis_service import FakeRedis, KeyType
from solt.services.registry import ConnectionProfile, Registry


class FakeStores(dict):
    """FakeRedis по адресу (host, port, db)"""

    def at(self, db: int = 0, host: str = "localhost", port: int = 6379) -> FakeRedis:
        return self.setdefault((host, port, db), FakeRedis(f"{host}:{port}/{db}"))


def seed(store: FakeRedis, values: dict) -> FakeRedis:
    """Заполняет хранилище: тип ключа определяется по типу значения (str, dict, list, set)"""
    types = {str: KeyType.STRING, dict: KeyType.HASH, list: KeyType.LIST, set: KeyType.SET}
    for key, value in values.items():
        store.storage[key] = (types[type(value)], value)
    return store


@pytest.fixture
def solt_home(tmp_path, monkeypatch):
    monkeypatch.setenv("SOLT_HOME", str(tmp_path))
    for name in ("SOLT_CONFIG", "SOLT_LOG_DIR", "SOLT_HISTORY"):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


@pytest.fixture
def stores(monkeypatch):
    created = FakeStores()
    monkeypatch.setattr(
        redis_service,
        "create_store",
        lambda profile: created.at(profile.db, profile.host, profile.port)
    )
    return created


@pytest.fixture
def runner(solt_home, stores):
    return CliRunner()


@pytest.fixture
def registry():
    registry = Registry()
    registry.add(ConnectionProfile(name="dev", db=0))
    registry.add(ConnectionProfile(name="staging", db=1))
    registry.set_default("dev")
    return registry

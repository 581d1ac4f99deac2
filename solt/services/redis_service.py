import re
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

import redis.asyncio as redis
import structlog

from solt.exceptions import StoreConnectionError, WrongTypeError
from solt.services.registry import ConnectionProfile

logger = structlog.get_logger()


class KeyType(str, Enum):
    """Тип значения, который возвращает команда TYPE"""
    STRING = "string"
    HASH = "hash"
    LIST = "list"
    SET = "set"
    ZSET = "zset"
    STREAM = "stream"
    NONE = "none"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> "KeyType":
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


@dataclass
class KeyInfo:
    key: str
    key_type: KeyType
    ttl: Optional[int]
    memory_usage: Optional[int]
    encoding: str


@dataclass
class SlowLogEntry:
    id: int
    timestamp: int
    duration: int
    command: str


@dataclass
class ClientInfo:
    id: str = ""
    addr: str = ""
    name: str = ""
    age: str = ""
    idle: str = ""
    flags: str = ""
    db: str = ""
    cmd: str = ""
    omem: str = ""

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> "ClientInfo":
        known = cls.__dataclass_fields__
        return cls(**{k: str(v) for k, v in data.items() if k in known})


@dataclass
class ClusterNode:
    id: str
    addr: str
    flags: str
    master: str
    ping_sent: str
    pong_recv: str
    config_epoch: str
    link_state: str
    slots: List[str] = field(default_factory=list)


@dataclass
class SentinelMaster:
    name: str = ""
    ip: str = ""
    port: int = 0
    flags: str = ""
    num_slaves: int = 0
    num_other_sentinels: int = 0
    quorum: int = 0


def parse_cluster_nodes(text: str) -> List[ClusterNode]:
    """Разбирает вывод CLUSTER NODES, пропуская некорректные строки"""
    nodes = []
    for line in text.splitlines():
        parts = line.split()
        if len(parts) < 8:
            continue
        nodes.append(ClusterNode(*parts[:8], slots=parts[8:]))
    return nodes


def _state_value(state: Dict[str, Any], name: str) -> Any:
    # redis-py в разных версиях отдает ключи через дефис или подчеркивание
    return state.get(name, state.get(name.replace("-", "_"), 0))


def is_wrongtype(error: Exception) -> bool:
    return str(error).startswith("WRONGTYPE")


def format_address(node: Any) -> str:
    """host:port из ответа CLUSTER SLOTS (список или кортеж [host, port, ...])"""
    if isinstance(node, (list, tuple)) and len(node) >= 2:
        return f"{node[0]}:{node[1]}"
    return str(node)


class RedisService:
    """Подключение к одному серверу Redis по профилю"""

    def __init__(self, profile: ConnectionProfile):
        self.profile = profile
        self.redis = redis.Redis(
            host=profile.host,
            port=profile.port,
            db=profile.db,
            password=profile.password,
            ssl=profile.tls,
            socket_timeout=profile.timeout,
            socket_connect_timeout=profile.timeout,
            decode_responses=True
        )
        self.logger = logger.bind(service="redis", environment=profile.name)

    async def init(self):
        """Инициализация соединения"""
        try:
            await self.redis.ping()
            self.logger.info("Redis connection established", url=self.profile.display_url)
        except (redis.RedisError, OSError) as e:
            self.logger.error("Redis connection failed", error=str(e))
            raise StoreConnectionError(
                f"Cannot connect to {self.profile.display_url}: {e}"
            ) from e

    async def close(self):
        """Закрытие соединения"""
        await self.redis.aclose()
        self.logger.info("Redis connection closed")

    async def ping(self) -> bool:
        return await self.redis.ping()

    async def info(self, section: Optional[str] = None) -> Dict[str, Any]:
        if section:
            return await self.redis.info(section)
        return await self.redis.info()

    async def list_keys_matching(self, pattern: str) -> List[str]:
        return await self.redis.keys(pattern)

    async def get_string_value(self, key: str) -> Optional[str]:
        """
        Читает строковое значение ключа

        Returns:
            Значение или None, если ключа нет

        Raises:
            WrongTypeError: ключ хранит не строку
        """
        try:
            return await self.redis.get(key)
        except redis.ResponseError as e:
            if is_wrongtype(e):
                raise WrongTypeError(key, (await self.key_type(key)).value) from e
            raise

    async def set_string_value(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        await self.redis.set(key, value, ex=ttl)

    async def edit_string_value(self, key: str, value: str) -> bool:
        """Перезаписывает существующую строку, сохраняя TTL"""
        key_type = await self.key_type(key)
        if key_type == KeyType.NONE:
            return False
        if key_type != KeyType.STRING:
            raise WrongTypeError(key, key_type.value)
        return bool(await self.redis.set(key, value, xx=True, keepttl=True))

    async def key_type(self, key: str) -> KeyType:
        return KeyType.parse(await self.redis.type(key))

    async def key_info(self, key: str) -> KeyInfo:
        """Получает тип, TTL, объем памяти и кодировку ключа одним пайплайном"""
        pipe = self.redis.pipeline(transaction=False)
        pipe.type(key)
        pipe.ttl(key)
        pipe.memory_usage(key)
        pipe.object("encoding", key)
        results = await pipe.execute(raise_on_error=False)

        key_type, ttl, memory, encoding = [
            None if isinstance(r, Exception) else r for r in results
        ]
        return KeyInfo(
            key=key,
            key_type=KeyType.parse(key_type),
            ttl=ttl if isinstance(ttl, int) else None,
            memory_usage=memory if isinstance(memory, int) else None,
            encoding=encoding or "unknown"
        )

    async def length(self, key: str, key_type: KeyType) -> Optional[int]:
        commands = {
            KeyType.STRING: self.redis.strlen,
            KeyType.HASH: self.redis.hlen,
            KeyType.LIST: self.redis.llen,
            KeyType.SET: self.redis.scard,
            KeyType.ZSET: self.redis.zcard,
            KeyType.STREAM: self.redis.xlen,
        }
        command = commands.get(key_type)
        return await command(key) if command else None

    async def get_hash(self, key: str) -> Dict[str, str]:
        return await self.redis.hgetall(key)

    async def get_hash_field(self, key: str, hash_field: str) -> Optional[str]:
        return await self.redis.hget(key, hash_field)

    async def set_hash_field(self, key: str, hash_field: str, value: str) -> None:
        await self.redis.hset(key, hash_field, value)

    async def get_list(self, key: str, start: int = 0, stop: int = -1) -> List[str]:
        return await self.redis.lrange(key, start, stop)

    async def push_list(self, key: str, value: str, left: bool = False) -> int:
        if left:
            return await self.redis.lpush(key, value)
        return await self.redis.rpush(key, value)

    async def get_set(self, key: str) -> List[str]:
        return sorted(await self.redis.smembers(key))

    async def add_to_set(self, key: str, member: str) -> bool:
        return await self.redis.sadd(key, member) > 0

    async def get_sorted_set(self, key: str) -> List[Tuple[str, float]]:
        return await self.redis.zrange(key, 0, -1, withscores=True)

    async def add_to_sorted_set(self, key: str, member: str, score: float) -> bool:
        return await self.redis.zadd(key, {member: score}) > 0

    async def delete_key(self, key: str) -> bool:
        return await self.redis.delete(key) > 0

    async def delete_keys(self, keys: List[str]) -> int:
        if not keys:
            return 0
        return await self.redis.delete(*keys)

    async def flush_db(self) -> None:
        await self.redis.flushdb()

    async def flush_all(self) -> None:
        await self.redis.flushall()

    async def slowlog_get(self, count: int = 10) -> List[SlowLogEntry]:
        entries = await self.redis.slowlog_get(count)
        result = []
        for entry in entries:
            command = entry.get("command", "")
            if isinstance(command, (list, tuple)):
                command = " ".join(str(c) for c in command)
            result.append(SlowLogEntry(
                id=entry.get("id", 0),
                timestamp=entry.get("start_time", 0),
                duration=entry.get("duration", 0),
                command=command
            ))
        return result

    async def client_list(self) -> List[ClientInfo]:
        return [ClientInfo.from_mapping(c) for c in await self.redis.client_list()]

    async def save(self, background: bool = False) -> None:
        if background:
            await self.redis.bgsave()
        else:
            await self.redis.save()

    async def bgrewriteaof(self) -> None:
        await self.redis.bgrewriteaof()

    async def publish(self, channel: str, message: str) -> int:
        return await self.redis.publish(channel, message)

    async def subscribe(self, channel: str) -> AsyncIterator[str]:
        """Выдает сообщения канала до отмены"""
        pubsub = self.redis.pubsub()
        await pubsub.subscribe(channel)
        try:
            async for message in pubsub.listen():
                if message.get("type") == "message":
                    yield message["data"]
        finally:
            await pubsub.unsubscribe(channel)
            await pubsub.aclose()

    async def monitor(self) -> AsyncIterator[Dict[str, Any]]:
        """Выдает команды, выполняемые сервером (MONITOR)"""
        async with self.redis.monitor() as m:
            async for command in m.listen():
                yield command

    async def cluster_nodes(self) -> List[ClusterNode]:
        raw = await self.redis.execute_command("CLUSTER NODES")
        if isinstance(raw, str):
            return parse_cluster_nodes(raw)
        # redis-py уже разобрал ответ в словарь адрес -> параметры узла
        return [
            ClusterNode(
                id=node.get("node_id", ""),
                addr=addr,
                flags=str(node.get("flags", "")),
                master=node.get("master_id", ""),
                ping_sent=str(node.get("last_ping_sent", "")),
                pong_recv=str(node.get("last_pong_rcvd", "")),
                config_epoch=str(node.get("epoch", "")),
                link_state="connected" if node.get("connected") else "disconnected",
                slots=[" ".join(map(str, s)) if isinstance(s, (list, tuple)) else str(s)
                       for s in node.get("slots", [])]
            )
            for addr, node in raw.items()
        ]

    async def cluster_slots(self) -> List[Tuple[int, int, str]]:
        raw = await self.redis.execute_command("CLUSTER SLOTS")
        if isinstance(raw, dict):
            return [(int(r[0]), int(r[1]), format_address(node.get("primary", ())))
                    for r, node in raw.items()]
        slots = []
        for entry in raw:
            start, end, master = entry[0], entry[1], entry[2]
            slots.append((int(start), int(end), format_address(master)))
        return slots

    async def sentinel_masters(self) -> List[SentinelMaster]:
        masters = await self.redis.sentinel_masters()
        return [
            SentinelMaster(
                name=name,
                ip=state.get("ip", ""),
                port=int(state.get("port", 0)),
                flags=",".join(sorted(k for k, v in state.items() if k.startswith("is_") and v)),
                num_slaves=int(_state_value(state, "num-slaves")),
                num_other_sentinels=int(_state_value(state, "num-other-sentinels")),
                quorum=int(state.get("quorum", 0))
            )
            for name, state in masters.items()
        ]

    async def sentinel_replicas(self, master: str) -> List[Dict[str, Any]]:
        return await self.redis.sentinel_slaves(master)


def _glob_to_regex(pattern: str) -> "re.Pattern":
    """Переводит glob-шаблон Redis (*, ?, [...], [^...], \\x) в регулярное выражение"""
    out = []
    i = 0
    while i < len(pattern):
        c = pattern[i]
        if c == "\\" and i + 1 < len(pattern):
            out.append(re.escape(pattern[i + 1]))
            i += 2
            continue
        if c == "*":
            out.append(".*")
        elif c == "?":
            out.append(".")
        elif c == "[":
            end = pattern.find("]", i + 1)
            if end == -1:
                out.append(re.escape(c))
            else:
                body = pattern[i + 1:end]
                negate = body.startswith("^")
                if negate:
                    body = body[1:]
                if not body:
                    # Как в Redis: "[]" не совпадает ни с чем, "[^]" - любой символ
                    out.append("." if negate else "(?!)")
                else:
                    body = body.replace("\\", "\\\\")
                    out.append(f"[{'^' if negate else ''}{body}]")
                i = end
        else:
            out.append(re.escape(c))
        i += 1
    return re.compile("".join(out), re.DOTALL)


class FakeRedis:
    """Хранилище в памяти с тем же интерфейсом, что и RedisService"""

    def __init__(self, name: str = "fake"):
        self.name = name
        self.storage: Dict[str, Tuple[KeyType, Any]] = {}
        self.expires: Dict[str, float] = {}
        self.published: List[Tuple[str, str]] = []
        self.fail_connect = False
        self.fail_writes: set = set()
        self.closed = False
        self.logger = logger.bind(service="fake_redis", environment=name)

    async def init(self):
        """Инициализация"""
        if self.fail_connect:
            raise StoreConnectionError(f"Cannot connect to {self.name}")
        self.closed = False
        self.logger.info("FakeRedis initialized")

    async def close(self):
        """Закрытие"""
        self.closed = True
        self.logger.info("FakeRedis closed")

    def _alive(self, key: str) -> bool:
        deadline = self.expires.get(key)
        if deadline is not None and deadline <= time.time():
            self.storage.pop(key, None)
            self.expires.pop(key, None)
        return key in self.storage

    def _typed(self, key: str, key_type: KeyType, default):
        if not self._alive(key):
            return default
        actual, value = self.storage[key]
        if actual != key_type:
            raise WrongTypeError(key, actual.value)
        return value

    def _put(self, key: str, key_type: KeyType, value) -> None:
        if key in self.fail_writes:
            raise redis.ResponseError(f"write rejected for '{key}'")
        self.storage[key] = (key_type, value)

    async def ping(self) -> bool:
        return True

    async def info(self, section: Optional[str] = None) -> Dict[str, Any]:
        return {"redis_version": "fake", "connected_clients": 1, "db0": {"keys": len(self.storage)}}

    async def list_keys_matching(self, pattern: str) -> List[str]:
        regex = _glob_to_regex(pattern)
        return [k for k in list(self.storage) if self._alive(k) and regex.fullmatch(k)]

    async def get_string_value(self, key: str) -> Optional[str]:
        return self._typed(key, KeyType.STRING, None)

    async def set_string_value(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        self._put(key, KeyType.STRING, value)
        if ttl:
            self.expires[key] = time.time() + ttl
        else:
            self.expires.pop(key, None)

    async def edit_string_value(self, key: str, value: str) -> bool:
        if self._typed(key, KeyType.STRING, None) is None:
            return False
        self._put(key, KeyType.STRING, value)
        return True

    async def key_type(self, key: str) -> KeyType:
        if not self._alive(key):
            return KeyType.NONE
        return self.storage[key][0]

    async def key_info(self, key: str) -> KeyInfo:
        key_type = await self.key_type(key)
        if key_type == KeyType.NONE:
            return KeyInfo(key, key_type, -2, None, "unknown")
        deadline = self.expires.get(key)
        ttl = int(deadline - time.time()) if deadline else -1
        memory = len(key) + len(repr(self.storage[key][1]))
        return KeyInfo(key, key_type, ttl, memory, "fake")

    async def length(self, key: str, key_type: KeyType) -> Optional[int]:
        if key_type == KeyType.NONE:
            return None
        return len(self.storage[key][1])

    async def get_hash(self, key: str) -> Dict[str, str]:
        return dict(self._typed(key, KeyType.HASH, {}))

    async def get_hash_field(self, key: str, hash_field: str) -> Optional[str]:
        return self._typed(key, KeyType.HASH, {}).get(hash_field)

    async def set_hash_field(self, key: str, hash_field: str, value: str) -> None:
        data = dict(self._typed(key, KeyType.HASH, {}))
        data[hash_field] = value
        self._put(key, KeyType.HASH, data)

    async def get_list(self, key: str, start: int = 0, stop: int = -1) -> List[str]:
        items = self._typed(key, KeyType.LIST, [])
        stop = len(items) if stop == -1 else stop + 1
        return items[start:stop]

    async def push_list(self, key: str, value: str, left: bool = False) -> int:
        items = list(self._typed(key, KeyType.LIST, []))
        if left:
            items.insert(0, value)
        else:
            items.append(value)
        self._put(key, KeyType.LIST, items)
        return len(items)

    async def get_set(self, key: str) -> List[str]:
        return sorted(self._typed(key, KeyType.SET, set()))

    async def add_to_set(self, key: str, member: str) -> bool:
        members = set(self._typed(key, KeyType.SET, set()))
        added = member not in members
        members.add(member)
        self._put(key, KeyType.SET, members)
        return added

    async def get_sorted_set(self, key: str) -> List[Tuple[str, float]]:
        members = self._typed(key, KeyType.ZSET, {})
        return sorted(members.items(), key=lambda item: (item[1], item[0]))

    async def add_to_sorted_set(self, key: str, member: str, score: float) -> bool:
        members = dict(self._typed(key, KeyType.ZSET, {}))
        added = member not in members
        members[member] = score
        self._put(key, KeyType.ZSET, members)
        return added

    async def delete_key(self, key: str) -> bool:
        existed = self._alive(key)
        self.storage.pop(key, None)
        self.expires.pop(key, None)
        return existed

    async def delete_keys(self, keys: List[str]) -> int:
        deleted = 0
        for key in keys:
            if await self.delete_key(key):
                deleted += 1
        return deleted

    async def flush_db(self) -> None:
        self.storage.clear()
        self.expires.clear()

    async def flush_all(self) -> None:
        await self.flush_db()

    async def slowlog_get(self, count: int = 10) -> List[SlowLogEntry]:
        return []

    async def client_list(self) -> List[ClientInfo]:
        return [ClientInfo(id="1", addr="127.0.0.1:50000", db="0", cmd="client|list")]

    async def save(self, background: bool = False) -> None:
        self.logger.info("FakeRedis save", background=background)

    async def bgrewriteaof(self) -> None:
        self.logger.info("FakeRedis bgrewriteaof")

    async def publish(self, channel: str, message: str) -> int:
        self.published.append((channel, message))
        return 0


def create_store(profile: ConnectionProfile):
    """Создает клиента для профиля (подменяется в тестах)"""
    return RedisService(profile)


@asynccontextmanager
async def connect_store(profile: ConnectionProfile):
    """
    Открывает соединение по профилю и гарантированно закрывает его

    Raises:
        StoreConnectionError: сервер недоступен
    """
    service = create_store(profile)
    try:
        await service.init()
    except StoreConnectionError:
        await service.close()
        raise
    try:
        yield service
    finally:
        await service.close()

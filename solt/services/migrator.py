"""Копирование строковых ключей по шаблону внутри одного Redis или между окружениями"""

from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncContextManager, Callable, List, Optional, Protocol

import structlog

from solt.exceptions import WrongTypeError
from solt.services.redis_service import connect_store
from solt.services.registry import ConnectionProfile, Registry

logger = structlog.get_logger()


class KeyValueStore(Protocol):
    """Минимальный набор операций хранилища, нужный для копирования"""

    async def list_keys_matching(self, pattern: str) -> List[str]: ...

    async def get_string_value(self, key: str) -> Optional[str]: ...

    async def set_string_value(self, key: str, value: str, ttl: Optional[int] = None) -> None: ...


Connector = Callable[[ConnectionProfile], AsyncContextManager[Any]]


class CopyStatus(str, Enum):
    COPIED = "copied"
    SKIPPED_NOT_FOUND = "skipped_not_found"
    SKIPPED_WRONG_TYPE = "skipped_wrong_type"
    FAILED = "failed"


@dataclass
class KeySelection:
    pattern: str
    keys: List[str]


@dataclass
class CopyOutcome:
    source_key: str
    destination_key: str
    status: CopyStatus
    reason: str = ""


@dataclass
class CopyReport:
    pattern: str
    outcomes: List[CopyOutcome] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.outcomes)

    @property
    def copied(self) -> int:
        return sum(1 for o in self.outcomes if o.status == CopyStatus.COPIED)

    @property
    def problems(self) -> List[CopyOutcome]:
        """Пропущенные и неудачные ключи в порядке обработки"""
        return [o for o in self.outcomes if o.status != CopyStatus.COPIED]


async def select_keys(store: KeyValueStore, pattern: str) -> KeySelection:
    # Шаблон передается серверу как есть, без собственной интерпретации
    return KeySelection(pattern=pattern, keys=list(await store.list_keys_matching(pattern)))


async def copy_key(
    source: KeyValueStore,
    destination: KeyValueStore,
    key: str,
    destination_key: str
) -> CopyOutcome:
    """Копирует одно строковое значение без TTL; ошибки возвращаются как результат"""
    try:
        value = await source.get_string_value(key)
    except WrongTypeError as e:
        return CopyOutcome(key, destination_key, CopyStatus.SKIPPED_WRONG_TYPE, str(e))
    except Exception as e:
        logger.warning("Failed to read key", key=key, error=str(e))
        return CopyOutcome(key, destination_key, CopyStatus.FAILED, f"read failed: {e}")

    if value is None:
        return CopyOutcome(key, destination_key, CopyStatus.SKIPPED_NOT_FOUND, "key not found")

    try:
        await destination.set_string_value(destination_key, value, None)
    except Exception as e:
        logger.warning("Failed to write key", key=destination_key, error=str(e))
        return CopyOutcome(key, destination_key, CopyStatus.FAILED, str(e))

    return CopyOutcome(key, destination_key, CopyStatus.COPIED)


async def copy_selection(
    source: KeyValueStore,
    destination: KeyValueStore,
    pattern: str,
    prefix: str = ""
) -> CopyReport:
    """Копирует все ключи по шаблону из source в destination под именем prefix + ключ"""
    selection = await select_keys(source, pattern)
    report = CopyReport(pattern=pattern)
    if not selection.keys:
        logger.info("No keys matched", pattern=pattern)
        return report

    logger.info("Copying keys", pattern=pattern, count=len(selection.keys), prefix=prefix)
    for key in selection.keys:
        report.outcomes.append(await copy_key(source, destination, key, f"{prefix}{key}"))

    logger.info("Copy finished", attempted=report.attempted, copied=report.copied)
    return report


async def migrate(
    registry: Registry,
    pattern: str,
    source_env: Optional[str] = None,
    dest_env: Optional[str] = None,
    prefix: str = "",
    connect: Connector = connect_store
) -> CopyReport:
    """
    Копирует ключи по шаблону между окружениями или внутри одного окружения

    Args:
        registry: Реестр окружений
        pattern: Glob-шаблон ключей на источнике
        source_env: Окружение-источник (по умолчанию - окружение по умолчанию)
        dest_env: Окружение-приемник (по умолчанию совпадает с источником)
        prefix: Префикс имени ключа на приемнике
        connect: Фабрика соединений, возвращающая асинхронный контекстный менеджер

    Returns:
        CopyReport: итог по каждому ключу

    Raises:
        EnvironmentNotFoundError: окружение не найдено
        StoreConnectionError: не удалось подключиться к источнику или приемнику
        ValueError: копирование внутри одного окружения без префикса
    """
    source_profile = registry.resolve(source_env)
    dest_profile = registry.resolve(dest_env) if dest_env is not None else source_profile
    same_store = dest_profile == source_profile

    if same_store and not prefix:
        raise ValueError("Copying within one environment requires a destination prefix")

    async with AsyncExitStack() as stack:
        source = await stack.enter_async_context(connect(source_profile))
        if same_store:
            destination = source
        else:
            destination = await stack.enter_async_context(connect(dest_profile))
        return await copy_selection(source, destination, pattern, prefix)

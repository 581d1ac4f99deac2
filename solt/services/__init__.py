"""Сервисы для работы с Redis и конфигурацией окружений"""

# Импорт основных сервисов для удобства использования
from solt.services.registry import ConnectionProfile, ProfileOverrides, Registry, merge
from solt.services.redis_service import connect_store, RedisService, FakeRedis, KeyType
from solt.services.migrator import migrate, CopyReport, CopyOutcome, CopyStatus

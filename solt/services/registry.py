from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, List, Optional

from solt.exceptions import ConfigError, EnvironmentNotFoundError


FALLBACK_ENVIRONMENT = "dev"
DEFAULT_HOST = "localhost"
DEFAULT_PORT = 6379


@dataclass
class ConnectionProfile:
    """Именованный набор параметров подключения к Redis"""
    name: str
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    password: Optional[str] = None
    db: int = 0
    timeout: Optional[int] = None
    tls: bool = False

    def __post_init__(self):
        if not 1 <= self.port <= 65535:
            raise ValueError(f"port must be in 1..65535, got {self.port}")
        if self.db < 0:
            raise ValueError(f"db must be non-negative, got {self.db}")

    @classmethod
    def builtin(cls, name: str = FALLBACK_ENVIRONMENT) -> "ConnectionProfile":
        """Встроенный профиль: localhost:6379, db 0, без пароля и TLS"""
        return cls(name=name)

    @property
    def url(self) -> str:
        auth = f":{self.password}@" if self.password else ""
        scheme = "rediss" if self.tls else "redis"
        return f"{scheme}://{auth}{self.host}:{self.port}/{self.db}"

    @property
    def display_url(self) -> str:
        """URL с замаскированным паролем"""
        auth = ":****@" if self.password else ""
        scheme = "rediss" if self.tls else "redis"
        return f"{scheme}://{auth}{self.host}:{self.port}/{self.db}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "host": self.host,
            "port": self.port,
            "password": self.password,
            "db": self.db,
            "timeout": self.timeout,
            "tls": self.tls,
        }

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> "ConnectionProfile":
        """Создает профиль из сохраненного словаря"""
        if not isinstance(data, dict):
            raise ConfigError(f"Environment '{name}' must be a table of settings")

        host = data.get("host", DEFAULT_HOST)
        port = data.get("port", DEFAULT_PORT)
        password = data.get("password")
        db = data.get("db", 0)
        timeout = data.get("timeout")
        tls = data.get("tls", False)

        # bool является подклассом int, поэтому проверяем его отдельно
        if not isinstance(host, str) or not host:
            raise ConfigError(f"Environment '{name}': host must be a non-empty string")
        if not isinstance(port, int) or isinstance(port, bool):
            raise ConfigError(f"Environment '{name}': port must be an integer")
        if not isinstance(db, int) or isinstance(db, bool):
            raise ConfigError(f"Environment '{name}': db must be an integer")
        if password is not None and not isinstance(password, str):
            raise ConfigError(f"Environment '{name}': password must be a string")
        if timeout is not None and (not isinstance(timeout, int) or isinstance(timeout, bool)):
            raise ConfigError(f"Environment '{name}': timeout must be an integer")
        if not isinstance(tls, bool):
            raise ConfigError(f"Environment '{name}': tls must be true or false")

        try:
            return cls(
                name=name,
                host=host,
                port=port,
                password=password,
                db=db,
                timeout=timeout,
                tls=tls
            )
        except ValueError as e:
            raise ConfigError(f"Environment '{name}': {e}") from e


@dataclass
class ProfileOverrides:
    """Поля, переданные явно при вызове команды (None - не передано)"""
    host: Optional[str] = None
    port: Optional[int] = None
    password: Optional[str] = None
    db: Optional[int] = None
    timeout: Optional[int] = None
    tls: Optional[bool] = None

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))


def merge(overrides: ProfileOverrides, base: ConnectionProfile) -> ConnectionProfile:
    """Накладывает явно переданные поля поверх базового профиля"""
    changes = {
        f.name: getattr(overrides, f.name)
        for f in fields(overrides)
        if getattr(overrides, f.name) is not None
    }
    return replace(base, **changes)


@dataclass
class Registry:
    """Набор именованных профилей и профиль по умолчанию"""
    profiles: Dict[str, ConnectionProfile] = field(default_factory=dict)
    default: Optional[str] = None

    def get(self, name: str) -> Optional[ConnectionProfile]:
        return self.profiles.get(name)

    def names(self) -> List[str]:
        return sorted(self.profiles)

    def resolve(self, name: Optional[str] = None) -> ConnectionProfile:
        """
        Возвращает профиль по имени

        Без имени используется профиль по умолчанию, а если он не задан -
        резервное имя "dev".

        Raises:
            EnvironmentNotFoundError: профиль с итоговым именем не найден
        """
        if name is None:
            name = self.default or FALLBACK_ENVIRONMENT
        profile = self.profiles.get(name)
        if profile is None:
            raise EnvironmentNotFoundError(name)
        return profile

    def add(self, profile: ConnectionProfile) -> None:
        self.profiles[profile.name] = profile

    def remove(self, name: str) -> bool:
        """Удаляет профиль, возвращает True если он существовал"""
        if name not in self.profiles:
            return False
        del self.profiles[name]
        if self.default == name:
            self.default = None
        return True

    def set_default(self, name: str) -> None:
        if name not in self.profiles:
            raise EnvironmentNotFoundError(name)
        self.default = name

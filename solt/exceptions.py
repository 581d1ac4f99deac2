"""Исключения solt"""


class SoltError(Exception):
    """Базовое исключение приложения"""


class EnvironmentNotFoundError(SoltError, LookupError):
    """Окружение не зарегистрировано в конфигурации"""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Environment '{name}' not found")


class StoreConnectionError(SoltError):
    """Не удалось подключиться к Redis"""


class ConfigError(SoltError, ValueError):
    """Файл конфигурации поврежден или содержит недопустимые значения"""


class WrongTypeError(SoltError):
    """Значение ключа имеет тип, отличный от ожидаемого"""

    def __init__(self, key: str, actual: str = "unknown"):
        self.key = key
        self.actual = actual
        super().__init__(f"Key '{key}' holds a {actual} value")

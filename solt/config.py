import os
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import List
from pathlib import Path

import structlog
from dotenv import load_dotenv

from solt.exceptions import ConfigError
from solt.services.registry import ConnectionProfile, Registry


logger = structlog.get_logger()


class OutputFormat(str, Enum):
    JSON = "json"
    TABLE = "table"
    CSV = "csv"
    PLAIN = "plain"


@dataclass
class Settings:
    """Пути к файлам приложения"""
    home: Path
    config_path: Path
    log_dir: Path
    history_path: Path


@dataclass
class AppConfig:
    registry: Registry
    favorites: List[str] = field(default_factory=list)
    history_size: int = 1000
    output_format: OutputFormat = OutputFormat.TABLE


def load_settings() -> Settings:
    """Загружает настройки из переменных окружения"""
    # Загружаем переменные окружения из .env файла
    env_path = Path('.') / '.env'
    if env_path.exists():
        load_dotenv(env_path)

    home = Path(os.getenv("SOLT_HOME", str(Path.home() / ".solt"))).expanduser()
    return Settings(
        home=home,
        config_path=Path(os.getenv("SOLT_CONFIG", str(home / "config.json"))).expanduser(),
        log_dir=Path(os.getenv("SOLT_LOG_DIR", str(home / "logs"))).expanduser(),
        history_path=Path(os.getenv("SOLT_HISTORY", str(home / "history.json"))).expanduser()
    )


def default_config() -> AppConfig:
    """Конфигурация с окружениями dev, staging и prod"""
    registry = Registry()
    for db, name in enumerate(("dev", "staging", "prod")):
        registry.add(ConnectionProfile(name=name, db=db, timeout=30))
    registry.set_default("dev")
    return AppConfig(registry=registry)


def config_to_dict(config: AppConfig) -> dict:
    return {
        "environments": {
            name: profile.to_dict()
            for name, profile in sorted(config.registry.profiles.items())
        },
        "default_environment": config.registry.default,
        "favorites": list(config.favorites),
        "history_size": config.history_size,
        "output_format": config.output_format.value,
    }


def config_from_dict(data: dict) -> AppConfig:
    """Разбирает сохраненную конфигурацию, проверяя типы полей"""
    if not isinstance(data, dict):
        raise ConfigError("Configuration root must be an object")

    environments = data.get("environments", {})
    if not isinstance(environments, dict):
        raise ConfigError("'environments' must be an object")

    registry = Registry()
    for name, settings in environments.items():
        registry.add(ConnectionProfile.from_dict(name, settings))

    default = data.get("default_environment")
    if default is not None:
        if not isinstance(default, str) or default not in registry.profiles:
            raise ConfigError(f"Default environment '{default}' is not defined")
        registry.default = default

    favorites = data.get("favorites", [])
    if not isinstance(favorites, list) or not all(isinstance(f, str) for f in favorites):
        raise ConfigError("'favorites' must be a list of key names")

    history_size = data.get("history_size", 1000)
    if not isinstance(history_size, int) or isinstance(history_size, bool) or history_size < 0:
        raise ConfigError("'history_size' must be a non-negative integer")

    try:
        output_format = OutputFormat(data.get("output_format", OutputFormat.TABLE.value))
    except ValueError:
        raise ConfigError(
            f"Unknown output format '{data.get('output_format')}'. Use: json, table, csv, plain"
        ) from None

    return AppConfig(
        registry=registry,
        favorites=list(dict.fromkeys(favorites)),
        history_size=history_size,
        output_format=output_format
    )


def load_config(path: Path) -> AppConfig:
    """
    Загружает конфигурацию из файла

    Если файла нет - создает конфигурацию по умолчанию и сохраняет ее.
    Поврежденный файл никогда не заменяется значениями по умолчанию.

    Raises:
        ConfigError: файл существует, но не может быть разобран
    """
    if not path.exists():
        config = default_config()
        save_config(config, path)
        logger.info("Created default configuration", path=str(path))
        return config

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Malformed configuration file {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read configuration file {path}: {e}") from e

    return config_from_dict(data)


def save_config(config: AppConfig, path: Path) -> None:
    """Сохраняет конфигурацию (файл может содержать пароли, доступ только владельцу)"""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(config_to_dict(config), f, indent=2, ensure_ascii=False)
        f.write("\n")
    os.chmod(path, 0o600)
    logger.debug("Configuration saved", path=str(path))


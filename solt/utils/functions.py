import asyncio
import functools
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Tuple

import click
import structlog


def configure_logging(log_dir: Path, verbose: bool = False) -> None:
    """Настраивает логирование в файл и консоль"""
    # Настройка структурированного логирования поверх stdlib logging
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
            structlog.stdlib.add_log_level,
            structlog.processors.JSONRenderer()
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
    )

    root = logging.getLogger()
    if root.handlers:
        # Логирование уже настроено (повторный вызов или тестовый раннер)
        root.setLevel(logging.DEBUG if verbose else logging.INFO)
        return

    # Создаем директорию для логов если её нет
    log_dir.mkdir(parents=True, exist_ok=True)

    file_handler = RotatingFileHandler(
        log_dir / "solt.log",
        maxBytes=5_242_880,  # 5MB
        backupCount=3,
        encoding='utf-8'
    )
    file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)

    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=log_format,
        handlers=[file_handler, console_handler]
    )


def async_command(func):
    """Запускает асинхронную команду click в собственном цикле событий"""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        return asyncio.run(func(*args, **kwargs))
    return wrapper


def split_pair(value: str, separator: str, param_hint: str) -> Tuple[str, str]:
    """Делит 'a<sep>b' на две части, первая часть может содержать разделитель"""
    left, sep, right = value.rpartition(separator)
    if not sep or not left or not right:
        raise click.BadParameter(
            f"expected format 'a{separator}b', got '{value}'", param_hint=param_hint
        )
    return left, right


def parse_range(value: str, param_hint: str) -> Tuple[int, int]:
    """Разбирает диапазон 'start-stop', допускает отрицательные границы (0--1)"""
    separator = value.find("-", 1)
    try:
        if separator == -1:
            raise ValueError(value)
        return int(value[:separator]), int(value[separator + 1:])
    except ValueError:
        raise click.BadParameter(
            f"expected format 'start-stop' (numbers), got '{value}'", param_hint=param_hint
        ) from None

import click

from solt.handlers.base import version_command, debug_command
from solt.handlers.connection import connect_command, config_command
from solt.handlers.keys import keys_command, inspect_command, search_command, filter_command
from solt.handlers.values import get_command, set_command, edit_command, delete_command
from solt.handlers.copy import copy_command, bulk_command
from solt.handlers.monitor import monitor_command, stats_command
from solt.handlers.backup import backup_command, export_command
from solt.handlers.pubsub import pubsub_command, cluster_command, sentinel_command
from solt.handlers.favorites import favorites_command, history_command


def register_all_handlers(group: click.Group) -> None:
    """Регистрирует все команды"""
    for command in (
        version_command,
        # Подключение и конфигурация
        connect_command,
        config_command,
        # Просмотр ключей
        keys_command,
        inspect_command,
        search_command,
        filter_command,
        # Чтение и запись значений
        get_command,
        set_command,
        edit_command,
        delete_command,
        # Массовые операции
        bulk_command,
        copy_command,
        # Мониторинг
        monitor_command,
        debug_command,
        stats_command,
        # Резервное копирование и экспорт
        backup_command,
        export_command,
        pubsub_command,
        cluster_command,
        sentinel_command,
        favorites_command,
        history_command,
    ):
        group.add_command(command)

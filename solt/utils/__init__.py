"""Утилиты для вывода, экспорта и запуска команд"""

# Импорт основных функций для удобства использования
from solt.utils.functions import configure_logging, async_command
from solt.utils.formatting import render_rows, echo_rows
from solt.utils.export import collect_rows, export_rows

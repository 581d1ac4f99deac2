"""Solt - инструмент командной строки для управления Redis"""

__version__ = "0.1.0"
__description__ = "A comprehensive Redis CLI management tool"

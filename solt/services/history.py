import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List

import structlog

logger = structlog.get_logger()

SECRET_OPTIONS = ("--password",)


def redact(args: List[str]) -> List[str]:
    """Заменяет значения секретных опций на ****"""
    result = []
    hide_next = False
    for arg in args:
        if hide_next:
            result.append("****")
            hide_next = False
        elif arg in SECRET_OPTIONS:
            result.append(arg)
            hide_next = True
        elif any(arg.startswith(f"{opt}=") for opt in SECRET_OPTIONS):
            result.append(arg.split("=", 1)[0] + "=****")
        else:
            result.append(arg)
    return result


def load_history(path: Path) -> List[Dict[str, Any]]:
    """Загружает историю команд"""
    if not path.exists():
        return []
    try:
        with open(path, "r", encoding="utf-8") as f:
            entries = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("History file is unreadable, ignoring it", path=str(path), error=str(e))
        return []
    return entries if isinstance(entries, list) else []


def save_history(path: Path, entries: List[Dict[str, Any]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(entries, f, indent=2, ensure_ascii=False)


def record_command(path: Path, args: List[str], limit: int) -> None:
    """Добавляет команду в историю, оставляя не больше limit последних записей"""
    if limit <= 0 or not args:
        return
    entries = load_history(path)
    entries.append({
        "command": " ".join(redact(args)),
        "timestamp": datetime.now().isoformat(timespec="seconds")
    })
    save_history(path, entries[-limit:])


def clear_history(path: Path) -> None:
    if path.exists():
        path.unlink()

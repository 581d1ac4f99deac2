import json
from typing import Any, Dict, List, Optional

import click
import pandas as pd

from solt.config import OutputFormat


def success(message: str) -> None:
    click.secho(f"✓ {message}", fg="green", bold=True)


def warning(message: str) -> None:
    click.secho(message, fg="yellow")


def heading(title: str, width: int = 50) -> None:
    click.secho(title, bold=True)
    click.echo("=" * width)


def format_ttl(ttl: Optional[int]) -> str:
    if ttl is None:
        return "Unknown"
    if ttl == -1:
        return "No expiry"
    if ttl == -2:
        return "Key doesn't exist"
    return f"{ttl}s"


def format_memory(memory: Optional[int]) -> str:
    return "Unknown" if memory is None else f"{memory} bytes"


def format_ago(seconds: int) -> str:
    if seconds < 60:
        return f"{seconds}s ago"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    return f"{seconds // 3600}h ago"


def pretty_json(value: str) -> str:
    """Форматирует строку как JSON, если это возможно"""
    try:
        return json.dumps(json.loads(value), indent=2, ensure_ascii=False)
    except (TypeError, ValueError):
        return value


def render_rows(rows: List[Dict[str, Any]], output_format: OutputFormat) -> str:
    """Отображает список записей в выбранном формате"""
    if not rows:
        return "[]" if output_format == OutputFormat.JSON else ""

    if output_format == OutputFormat.JSON:
        return json.dumps(rows, indent=2, ensure_ascii=False, default=str)
    if output_format == OutputFormat.PLAIN:
        return "\n".join("\t".join(str(v) for v in row.values()) for row in rows)

    df = pd.DataFrame(rows)
    if output_format == OutputFormat.CSV:
        return df.to_csv(index=False).rstrip("\n")
    return df.to_string(index=False)


def echo_rows(rows: List[Dict[str, Any]], output_format: OutputFormat) -> None:
    text = render_rows(rows, output_format)
    if text:
        click.echo(text)

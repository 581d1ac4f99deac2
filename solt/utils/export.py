import json
from pathlib import Path
from typing import Any, Dict, List

import pandas as pd
import structlog
from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, PatternFill, Border, Side

from solt.services.redis_service import KeyType

logger = structlog.get_logger()

EXPORT_COLUMNS = ["key", "type", "ttl", "value"]


async def collect_rows(store, pattern: str) -> List[Dict[str, Any]]:
    """Собирает ключи по шаблону вместе с типом, TTL и значением"""
    rows = []
    for key in sorted(await store.list_keys_matching(pattern)):
        info = await store.key_info(key)
        if info.key_type == KeyType.STRING:
            value = await store.get_string_value(key)
        elif info.key_type == KeyType.HASH:
            value = await store.get_hash(key)
        elif info.key_type == KeyType.LIST:
            value = await store.get_list(key)
        elif info.key_type == KeyType.SET:
            value = await store.get_set(key)
        elif info.key_type == KeyType.ZSET:
            value = [[member, score] for member, score in await store.get_sorted_set(key)]
        else:
            # Ключ удален между KEYS и TYPE или тип не поддерживается
            continue
        rows.append({
            "key": key,
            "type": info.key_type.value,
            "ttl": info.ttl,
            "value": value
        })
    return rows


def format_excel(wb: Workbook, sheet_name: str) -> None:
    """Форматирует Excel файл"""
    ws = wb[sheet_name]

    # Устанавливаем ширину колонок
    for col in ws.columns:
        max_length = max((len(str(cell.value)) for cell in col if cell.value is not None), default=0)
        ws.column_dimensions[col[0].column_letter].width = min(max_length + 2, 50)

    # Форматируем заголовки
    header_font = Font(bold=True, size=12)
    header_fill = PatternFill(start_color="DDEBF7", end_color="DDEBF7", fill_type="solid")
    header_alignment = Alignment(horizontal="center", vertical="center")
    for cell in ws[1]:
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = header_alignment

    thin_border = Border(
        left=Side(style='thin'),
        right=Side(style='thin'),
        top=Side(style='thin'),
        bottom=Side(style='thin')
    )
    data_alignment = Alignment(vertical="top", wrap_text=True)
    for row in ws.iter_rows():
        for cell in row:
            cell.border = thin_border
            if cell.row > 1:
                cell.alignment = data_alignment

    # Закрепляем заголовки
    ws.freeze_panes = "A2"


def export_rows(rows: List[Dict[str, Any]], export_format: str, file_path: Path) -> Path:
    """
    Сохраняет записи в файл

    Args:
        rows: Записи из collect_rows
        export_format: json, csv или xlsx
        file_path: Путь к файлу

    Returns:
        Path: путь к созданному файлу
    """
    file_path.parent.mkdir(parents=True, exist_ok=True)

    if export_format == "json":
        with open(file_path, "w", encoding="utf-8") as f:
            json.dump(rows, f, indent=2, ensure_ascii=False)
        logger.info("Export finished", path=str(file_path), rows=len(rows))
        return file_path

    df = pd.DataFrame(rows, columns=EXPORT_COLUMNS)
    # Составные значения (hash, list, set, zset) сохраняем как JSON
    df["value"] = df["value"].apply(
        lambda v: v if isinstance(v, str) else json.dumps(v, ensure_ascii=False)
    )

    if export_format == "csv":
        df.to_csv(file_path, index=False)
    elif export_format == "xlsx":
        with pd.ExcelWriter(file_path, engine='openpyxl') as writer:
            df.to_excel(writer, sheet_name='Keys', index=False)
            format_excel(writer.book, 'Keys')
    else:
        raise ValueError(f"Unsupported export format: {export_format}")

    logger.info("Export finished", path=str(file_path), rows=len(rows))
    return file_path

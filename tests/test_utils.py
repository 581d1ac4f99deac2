import json

import click
import pandas as pd
import pytest
from openpyxl import load_workbook

from solt.config import OutputFormat
from solt.services.redis_service import FakeRedis
from solt.utils.export import collect_rows, export_rows
from solt.utils.formatting import format_ago, format_memory, format_ttl, pretty_json, render_rows
from solt.utils.functions import parse_range, split_pair
from tests.conftest import seed


ROWS = [{"Key": "user:1", "TTL": 10}, {"Key": "user:2", "TTL": -1}]


def test_format_ttl():
    assert format_ttl(-1) == "No expiry"
    assert format_ttl(-2) == "Key doesn't exist"
    assert format_ttl(None) == "Unknown"
    assert format_ttl(42) == "42s"


def test_format_memory_and_age():
    assert format_memory(None) == "Unknown"
    assert format_memory(56) == "56 bytes"
    assert format_ago(30) == "30s ago"
    assert format_ago(120) == "2m ago"
    assert format_ago(7200) == "2h ago"


def test_pretty_json():
    assert pretty_json('{"a": 1}') == '{\n  "a": 1\n}'
    assert pretty_json("not json") == "not json"


def test_render_rows_json():
    assert json.loads(render_rows(ROWS, OutputFormat.JSON)) == ROWS
    assert render_rows([], OutputFormat.JSON) == "[]"


def test_render_rows_plain_and_csv():
    assert render_rows(ROWS, OutputFormat.PLAIN) == "user:1\t10\nuser:2\t-1"
    assert render_rows(ROWS, OutputFormat.CSV) == "Key,TTL\nuser:1,10\nuser:2,-1"
    assert render_rows([], OutputFormat.TABLE) == ""


def test_render_rows_table():
    lines = render_rows(ROWS, OutputFormat.TABLE).splitlines()
    assert lines[0].split() == ["Key", "TTL"]
    assert lines[2].split() == ["user:2", "-1"]


def test_split_pair_keeps_separator_in_left_part():
    assert split_pair("user:1:name", ":", "--hash-field") == ("user:1", "name")
    with pytest.raises(click.BadParameter):
        split_pair("user", ":", "--hash-field")


@pytest.mark.parametrize("value, expected", [
    ("0-10", (0, 10)),
    ("0--1", (0, -1)),
    ("-3--1", (-3, -1)),
])
def test_parse_range(value, expected):
    assert parse_range(value, "--list-range") == expected


@pytest.mark.parametrize("value", ["10", "a-b", "-"])
def test_parse_range_invalid(value):
    with pytest.raises(click.BadParameter):
        parse_range(value, "--list-range")


async def test_collect_rows():
    store = seed(FakeRedis(), {"user:1": "alice", "user:tags": {"b", "a"}, "queue": ["x"]})

    rows = await collect_rows(store, "user:*")

    assert [r["key"] for r in rows] == ["user:1", "user:tags"]
    assert rows[0] == {"key": "user:1", "type": "string", "ttl": -1, "value": "alice"}
    assert rows[1]["value"] == ["a", "b"]


def test_export_json(tmp_path):
    rows = [{"key": "user:1", "type": "string", "ttl": -1, "value": "alice"}]
    path = export_rows(rows, "json", tmp_path / "out" / "keys.json")
    assert json.loads(path.read_text(encoding="utf-8")) == rows


def test_export_csv_encodes_composite_values(tmp_path):
    rows = [
        {"key": "user:1", "type": "string", "ttl": -1, "value": "alice"},
        {"key": "profile", "type": "hash", "ttl": 30, "value": {"name": "bob"}},
    ]
    path = export_rows(rows, "csv", tmp_path / "keys.csv")

    df = pd.read_csv(path)
    assert list(df.columns) == ["key", "type", "ttl", "value"]
    assert df["value"].tolist() == ["alice", '{"name": "bob"}']


def test_export_xlsx_is_formatted(tmp_path):
    rows = [{"key": "user:1", "type": "string", "ttl": -1, "value": "alice"}]
    path = export_rows(rows, "xlsx", tmp_path / "keys.xlsx")

    ws = load_workbook(path)["Keys"]
    assert [c.value for c in ws[1]] == ["key", "type", "ttl", "value"]
    assert ws["A1"].font.bold
    assert ws.freeze_panes == "A2"
    assert ws["A2"].value == "user:1"


def test_export_unknown_format(tmp_path):
    with pytest.raises(ValueError):
        export_rows([{"key": "a", "type": "string", "ttl": -1, "value": "1"}], "parquet", tmp_path / "a")

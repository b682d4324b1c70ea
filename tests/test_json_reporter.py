"""Conversion of result shapes to JSON and writing report files."""

from __future__ import annotations

import datetime
import decimal
import json

from dal_helper.infra.reporting.json_reporter import result_to_json, table_to_json, write_json
from dal_helper.results import ResultSetCollection, Table


def test_table_to_json_converts_sql_server_types():
    table = Table(
        ["fecha", "monto", "firma", "nombre"],
        [(datetime.date(2024, 1, 31), decimal.Decimal("10.50"), b"\x01\xff", "Ana")],
    )
    assert table_to_json(table) == [
        {"fecha": "2024-01-31", "monto": "10.50", "firma": "01ff", "nombre": "Ana"}
    ]


def test_result_to_json_handles_every_shape():
    table = Table(["a"], [(2,), (1,)])
    assert result_to_json(4) == 4
    assert result_to_json(table) == [{"a": 2}, {"a": 1}]
    assert result_to_json(table.as_view().sorted_by("a")) == [{"a": 1}, {"a": 2}]
    assert result_to_json(ResultSetCollection([table, Table(["b"], [])])) == [
        [{"a": 2}, {"a": 1}],
        [],
    ]


def test_write_json_creates_directories(tmp_path):
    target = tmp_path / "out" / "nested" / "result.json"
    write_json(str(target), [{"nombre": "Peña"}])
    assert json.loads(target.read_text(encoding="utf-8")) == [{"nombre": "Peña"}]

"""
JSON reporting utilities.

Helpers to turn result shapes into JSON friendly structures and to
write them to disk, creating the target directory when needed.
"""

from __future__ import annotations

import datetime
import decimal
import json
import logging
import os
import uuid
from pathlib import Path
from typing import Any, Dict, List

from ...results import ResultSetCollection, Table


def ensure_dir(directory: str) -> None:
    """Ensure a directory exists, creating it recursively if necessary."""
    if not directory:
        return
    logging.info("[jsonReporter] ensure_dir", extra={"dir": directory})
    Path(directory).mkdir(parents=True, exist_ok=True)


def _jsonable(value: Any) -> Any:
    if isinstance(value, (datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, (decimal.Decimal, uuid.UUID)):
        return str(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    return value


def table_to_json(table: Table) -> List[Dict[str, Any]]:
    """Convert a table into a list of ``{column: value}`` records."""
    return [{k: _jsonable(v) for k, v in row.items()} for row in table.records()]


def result_to_json(result: Any) -> Any:
    """Convert any runner result (count, table, view, collection) to JSON data."""
    if isinstance(result, ResultSetCollection):
        return [table_to_json(t) for t in result]
    if isinstance(result, Table):
        return table_to_json(result)
    if hasattr(result, "to_table"):
        return table_to_json(result.to_table())
    return _jsonable(result)


def write_json(file_path: str, data: Any) -> None:
    """Write an object to a JSON file, ensuring the directory exists."""
    ensure_dir(os.path.dirname(file_path))
    logging.info("[jsonReporter] write_json", extra={"file": file_path})
    with open(file_path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2, ensure_ascii=False)

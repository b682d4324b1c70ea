"""Shared fixtures: a fake DB-API driver standing in for SQL Server."""

from __future__ import annotations

from typing import Any, List, Optional, Sequence, Tuple

import pytest

from dal_helper.config import Config
from dal_helper.infra.db import Db
from dal_helper.runner import DatabaseCommandRunner


class FakeDriverError(Exception):
    pass


class FakeCursor:
    """Serves canned result sets; each set is ``(columns, rows)`` or ``None`` for DML."""

    def __init__(self, result_sets: Sequence[Optional[Tuple[Sequence[str], List[tuple]]]],
                 rowcount: int = -1, fail: Optional[Exception] = None) -> None:
        self._sets = list(result_sets) or [None]
        self._index = 0
        self._pos = 0
        self.rowcount = rowcount
        self.fail = fail
        self.executed: List[Tuple[str, Any]] = []
        self.closed = False

    @property
    def description(self):
        current = self._sets[self._index]
        if current is None:
            return None
        return [(name, None, None, None, None, None, None) for name in current[0]]

    def execute(self, operation, params=None):
        self.executed.append((operation, params))
        if self.fail is not None:
            raise self.fail

    def _rows(self):
        current = self._sets[self._index]
        return current[1] if current else []

    def fetchall(self):
        rows = self._rows()[self._pos:]
        self._pos = len(self._rows())
        return rows

    def fetchone(self):
        rows = self._rows()
        if self._pos >= len(rows):
            return None
        self._pos += 1
        return rows[self._pos - 1]

    def nextset(self):
        if self._index + 1 >= len(self._sets):
            return None
        self._index += 1
        self._pos = 0
        return True

    def close(self):
        self.closed = True


class FakeConnection:
    def __init__(self, cursor: FakeCursor) -> None:
        self._cursor = cursor
        self.closed = False

    def cursor(self):
        return self._cursor

    def close(self):
        self.closed = True


class FakeFactory:
    """Connection factory that records every connection it hands out."""

    def __init__(self, result_sets=(), rowcount: int = -1, fail: Optional[Exception] = None,
                 driver: str = "pymssql") -> None:
        self.result_sets = list(result_sets)
        self.rowcount = rowcount
        self.fail = fail
        self.driver = driver
        self.connections: List[FakeConnection] = []
        self.cursors: List[FakeCursor] = []

    def __call__(self, config: Config) -> Db:
        cursor = FakeCursor(self.result_sets, self.rowcount, self.fail)
        conn = FakeConnection(cursor)
        self.cursors.append(cursor)
        self.connections.append(conn)
        return Db(conn, self.driver)

    @property
    def executed(self) -> List[Tuple[str, Any]]:
        return [call for cursor in self.cursors for call in cursor.executed]


VALID_CONNECTION_STRING = r"Data Source = .\TestDatabase;"


@pytest.fixture
def config() -> Config:
    return Config(CONNECTION_STRING=VALID_CONNECTION_STRING)


@pytest.fixture
def factory() -> FakeFactory:
    return FakeFactory(result_sets=[(["value"], [(1,)])], rowcount=1)


@pytest.fixture
def runner(config: Config, factory: FakeFactory) -> DatabaseCommandRunner:
    return DatabaseCommandRunner(config=config, connection_factory=factory)

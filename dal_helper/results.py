"""
Result shapes returned by ``DatabaseCommandRunner``.

``Table`` and ``ResultSetCollection`` are materialised in memory and do
not hold on to the connection.  ``StreamingReader`` is the one shape
that keeps the connection open; its owner must close it.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple


def _columns(description: Optional[Sequence[Sequence[Any]]]) -> Tuple[str, ...]:
    return tuple(col[0] for col in description) if description else ()


def _skip_to_rows(cursor: Any) -> None:
    # DML without SET NOCOUNT reports column-less results ahead of the rows.
    while not cursor.description:
        if not cursor.nextset():
            return


class Table:
    """A fully materialised result set."""

    def __init__(self, columns: Sequence[str], rows: Sequence[Sequence[Any]]) -> None:
        self.columns: Tuple[str, ...] = tuple(columns)
        self.rows: Tuple[Tuple[Any, ...], ...] = tuple(tuple(r) for r in rows)

    @classmethod
    def from_cursor(cls, cursor: Any) -> "Table":
        _skip_to_rows(cursor)
        columns = _columns(cursor.description)
        rows = cursor.fetchall() if columns else []
        return cls(columns, rows or [])

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[Tuple[Any, ...]]:
        return iter(self.rows)

    def __getitem__(self, index: int) -> Tuple[Any, ...]:
        return self.rows[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Table):
            return NotImplemented
        return self.columns == other.columns and self.rows == other.rows

    def __repr__(self) -> str:
        return f"Table(columns={list(self.columns)!r}, rows={len(self.rows)})"

    def index_of(self, column: str) -> int:
        """Return the position of ``column`` (case-insensitive)."""
        lowered = [c.lower() for c in self.columns]
        try:
            return lowered.index(column.lower())
        except ValueError:
            raise KeyError(f"No column named {column!r}") from None

    def column(self, name: str) -> List[Any]:
        idx = self.index_of(name)
        return [row[idx] for row in self.rows]

    def records(self) -> List[Dict[str, Any]]:
        """Return every row as a ``{column: value}`` dict."""
        return [dict(zip(self.columns, row)) for row in self.rows]

    def scalar(self) -> Any:
        """First column of the first row, or ``None`` for an empty table."""
        if not self.rows or not self.columns:
            return None
        return self.rows[0][0]

    def as_view(self) -> "TableView":
        return TableView(self)


class TableView:
    """Read-only projection over a ``Table``.

    A view never changes the underlying table.  ``sorted_by`` and
    ``where`` return new views sharing the same table.
    """

    def __init__(self, table: Table, order: Optional[Sequence[int]] = None) -> None:
        self._table = table
        self._order: Tuple[int, ...] = (
            tuple(order) if order is not None else tuple(range(len(table)))
        )

    @property
    def table(self) -> Table:
        return self._table

    @property
    def columns(self) -> Tuple[str, ...]:
        return self._table.columns

    def __len__(self) -> int:
        return len(self._order)

    def __getitem__(self, index: int) -> Mapping[str, Any]:
        return self._row(self._order[index])

    def __iter__(self) -> Iterator[Mapping[str, Any]]:
        for i in self._order:
            yield self._row(i)

    def _row(self, i: int) -> Mapping[str, Any]:
        return MappingProxyType(dict(zip(self._table.columns, self._table.rows[i])))

    def sorted_by(self, column: str, descending: bool = False) -> "TableView":
        idx = self._table.index_of(column)
        rows = self._table.rows

        def key(i: int) -> Tuple[bool, Any]:
            # NULLs sort first, like SQL Server's ascending order.
            value = rows[i][idx]
            return (value is not None, value)

        return TableView(self._table, sorted(self._order, key=key, reverse=descending))

    def where(self, predicate: Callable[[Mapping[str, Any]], bool]) -> "TableView":
        return TableView(self._table, [i for i in self._order if predicate(self._row(i))])

    def to_table(self) -> Table:
        return Table(self._table.columns, [self._table.rows[i] for i in self._order])


class ResultSetCollection(Sequence[Table]):
    """Every row-returning result set produced by one statement, in order."""

    def __init__(self, tables: Sequence[Table]) -> None:
        self._tables: Tuple[Table, ...] = tuple(tables)

    @classmethod
    def from_cursor(cls, cursor: Any) -> "ResultSetCollection":
        tables: List[Table] = []
        while True:
            # Sets without a description come from DML or SET NOCOUNT.
            if cursor.description:
                tables.append(Table.from_cursor(cursor))
            if not cursor.nextset():
                break
        return cls(tables)

    def __getitem__(self, index):  # type: ignore[override]
        return self._tables[index]

    def __len__(self) -> int:
        return len(self._tables)

    def __repr__(self) -> str:
        return f"ResultSetCollection(tables={len(self._tables)})"


class StreamingReader:
    """Forward-only reader that owns an open cursor and connection.

    Use it as a context manager, or call ``close`` when done; closing
    releases both the cursor and the connection.
    """

    def __init__(self, db: Any, cursor: Any) -> None:
        self._db = db
        self._cursor = cursor
        self._closed = False
        _skip_to_rows(cursor)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def columns(self) -> Tuple[str, ...]:
        self._check_open()
        return _columns(self._cursor.description)

    def _check_open(self) -> None:
        if self._closed:
            raise ValueError("Reader is closed")

    def fetchone(self) -> Optional[Tuple[Any, ...]]:
        self._check_open()
        if not self._cursor.description:
            return None
        row = self._cursor.fetchone()
        return tuple(row) if row is not None else None

    def __iter__(self) -> Iterator[Tuple[Any, ...]]:
        while True:
            row = self.fetchone()
            if row is None:
                return
            yield row

    def records(self) -> Iterator[Dict[str, Any]]:
        columns = self.columns
        for row in self:
            yield dict(zip(columns, row))

    def next_result(self) -> bool:
        """Advance to the next result set; ``False`` when there is none."""
        self._check_open()
        return bool(self._cursor.nextset())

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._cursor.close()
        finally:
            self._db.close()
        logging.debug("[DB] reader closed")

    def __enter__(self) -> "StreamingReader":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

"""
Execute SQL statements and stored procedures against SQL Server.

``DatabaseCommandRunner`` is the public entry point of the package.
Each call opens its own connection, runs one statement and returns the
result in the shape the caller asked for:

* ``execute`` – nothing.
* ``run`` – number of rows affected.
* ``query`` – a ``Table``.
* ``query_view`` – a read-only ``TableView`` over that table.
* ``query_multiple`` – every result set in a ``ResultSetCollection``.
* ``query_stream`` – a ``StreamingReader`` that keeps the connection
  open until the caller closes it.

``sql_text`` is a stored procedure name unless ``kind`` is
``StatementKind.QUERY``.  Parameters may be given as ``Parameter``
objects, ``(name, value)`` pairs or a mapping; they are bound in the
order supplied.

Example usage::

    from dal_helper import DatabaseCommandRunner, StatementKind
    runner = DatabaseCommandRunner()
    table = runner.query(
        "SELECT * FROM dbo.Cliente WHERE idCliente = @id",
        StatementKind.QUERY,
        {"id": 42},
    )
    runner.run("dbo.usp_ArchivarPedidos", parameters=[("dias", 30)])
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional, Tuple

from .config import Config, load_config
from .infra.db import ConnectionFactory, Db, get_connection
from .results import ResultSetCollection, StreamingReader, Table, TableView
from .statement import (
    ParametersLike,
    Parameter,
    StatementKind,
    as_parameters,
    bind,
    validate_procedure_name,
    validate_sql_text,
)

Prepared = Tuple[str, StatementKind, list]


def _close_outcome(db: Optional[Db] = None) -> Callable[["asyncio.Future[Any]"], None]:
    """Build a callback that releases what an abandoned worker produced."""

    def callback(task: "asyncio.Future[Any]") -> None:
        try:
            if not task.cancelled() and task.exception() is None:
                task.result().close()
        finally:
            if db is not None:
                db.close()

    return callback


async def _in_worker(
    on_abandon: Callable[["asyncio.Future[Any]"], None],
    func: Callable[..., Any],
    *args: Any,
) -> Any:
    """Run ``func`` in a thread.

    If the awaiting task is cancelled the thread keeps running; once it
    finishes ``on_abandon`` receives its outcome so handles are released.
    """
    task = asyncio.ensure_future(asyncio.to_thread(func, *args))
    try:
        return await asyncio.shield(task)
    except asyncio.CancelledError:
        task.add_done_callback(on_abandon)
        raise


class DatabaseCommandRunner:
    """Run one statement per call against the configured database."""

    def __init__(
        self,
        config: Optional[Config] = None,
        connection_factory: Optional[ConnectionFactory] = None,
    ) -> None:
        self._config = config if config is not None else load_config()
        self._connection_factory = connection_factory or get_connection

    @property
    def config(self) -> Config:
        return self._config

    def _prepare(self, sql_text: Any, kind: Any, parameters: ParametersLike) -> Prepared:
        # Nothing may touch the network before both checks pass.
        self._config.validate()
        text = validate_sql_text(sql_text)
        kind = StatementKind.coerce(kind)
        if kind is StatementKind.STORED_PROCEDURE:
            text = validate_procedure_name(text)
        return text, kind, as_parameters(parameters)

    def _open(self) -> Db:
        return self._connection_factory(self._config)

    def _execute(self, db: Db, operation: str, prepared: Prepared) -> Any:
        sql_text, kind, params = prepared
        statement, args = bind(sql_text, kind, params, db.paramstyle)
        logging.debug(
            f"[DB] {operation} executing",
            extra={"kind": kind.name, "params": [p.name for p in params]},
        )
        cursor = db.cursor()
        try:
            if args is None:
                cursor.execute(statement)
            else:
                cursor.execute(statement, args)
        except Exception as e:
            logging.error(f"[DB] {operation} failed", exc_info=e)
            cursor.close()
            raise
        return cursor

    @contextmanager
    def _command(self, operation: str, prepared: Prepared) -> Iterator[Any]:
        db = self._open()
        try:
            cursor = self._execute(db, operation, prepared)
            try:
                yield cursor
            finally:
                cursor.close()
        finally:
            db.close()

    def execute(
        self,
        sql_text: Optional[str],
        kind: StatementKind = StatementKind.STORED_PROCEDURE,
        parameters: ParametersLike = None,
    ) -> None:
        """Execute a statement and discard any result."""
        prepared = self._prepare(sql_text, kind, parameters)
        with self._command("execute", prepared):
            pass

    def run(
        self,
        sql_text: Optional[str],
        kind: StatementKind = StatementKind.STORED_PROCEDURE,
        parameters: ParametersLike = None,
    ) -> int:
        """Execute a statement and return the number of rows affected.

        Raises:
            MisconfiguredEnvironmentError: If the connection string is invalid.
            MissingInputError: If ``sql_text`` is ``None``.
            InvalidInputError: If ``sql_text`` is empty.
        """
        prepared = self._prepare(sql_text, kind, parameters)
        with self._command("run", prepared) as cursor:
            count = cursor.rowcount
        logging.info("[DB] run affected rows", extra={"count": count})
        return count

    def query(
        self,
        sql_text: Optional[str],
        kind: StatementKind = StatementKind.STORED_PROCEDURE,
        parameters: ParametersLike = None,
    ) -> Table:
        """Execute a statement and return its first result set as a ``Table``."""
        prepared = self._prepare(sql_text, kind, parameters)
        with self._command("query", prepared) as cursor:
            table = Table.from_cursor(cursor)
        logging.info("[DB] query returned rows", extra={"count": len(table)})
        return table

    def query_view(
        self,
        sql_text: Optional[str],
        kind: StatementKind = StatementKind.STORED_PROCEDURE,
        parameters: ParametersLike = None,
    ) -> TableView:
        return self.query(sql_text, kind, parameters).as_view()

    def query_multiple(
        self,
        sql_text: Optional[str],
        kind: StatementKind = StatementKind.STORED_PROCEDURE,
        parameters: ParametersLike = None,
    ) -> ResultSetCollection:
        """Execute a statement and collect every result set it produces."""
        prepared = self._prepare(sql_text, kind, parameters)
        with self._command("query_multiple", prepared) as cursor:
            results = ResultSetCollection.from_cursor(cursor)
        logging.info("[DB] query_multiple returned result sets", extra={"count": len(results)})
        return results

    def query_stream(
        self,
        sql_text: Optional[str],
        kind: StatementKind = StatementKind.STORED_PROCEDURE,
        parameters: ParametersLike = None,
    ) -> StreamingReader:
        """Execute a statement and return a reader over its rows.

        The connection stays open until the reader is closed, so use the
        reader as a context manager::

            with runner.query_stream("dbo.usp_Movimientos") as reader:
                for row in reader:
                    ...
        """
        prepared = self._prepare(sql_text, kind, parameters)
        db = self._open()
        try:
            cursor = self._execute(db, "query_stream", prepared)
        except BaseException:
            db.close()
            raise
        try:
            return StreamingReader(db, cursor)
        except BaseException:
            try:
                cursor.close()
            finally:
                db.close()
            raise

    async def _run_async(self, operation: str, prepared: Prepared) -> int:
        db = await _in_worker(_close_outcome(), self._open)
        abandoned = False
        try:
            try:
                cursor = await _in_worker(
                    _close_outcome(db), self._execute, db, operation, prepared
                )
            except asyncio.CancelledError:
                # The worker still uses the connection; it is closed when it returns.
                abandoned = True
                raise
            try:
                return cursor.rowcount
            finally:
                cursor.close()
        finally:
            if not abandoned:
                db.close()

    async def execute_async(
        self,
        sql_text: Optional[str],
        kind: StatementKind = StatementKind.STORED_PROCEDURE,
        parameters: ParametersLike = None,
    ) -> None:
        """Awaitable ``execute``; connect and execute run in worker threads."""
        prepared = self._prepare(sql_text, kind, parameters)
        await self._run_async("execute_async", prepared)

    async def run_async(
        self,
        sql_text: Optional[str],
        kind: StatementKind = StatementKind.STORED_PROCEDURE,
        parameters: ParametersLike = None,
    ) -> int:
        """Awaitable ``run``; connect and execute run in worker threads."""
        prepared = self._prepare(sql_text, kind, parameters)
        count = await self._run_async("run_async", prepared)
        logging.info("[DB] run_async affected rows", extra={"count": count})
        return count


__all__ = ["DatabaseCommandRunner", "Parameter", "StatementKind"]

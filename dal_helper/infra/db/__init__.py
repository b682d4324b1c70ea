"""
Database abstractions for SQL Server connections.

This subpackage defines a small wrapper around either the ``pymssql`` or
``pyodbc`` libraries.  It exposes a ``connect`` function that returns a
``Db`` object and a ``get_connection`` factory that opens one from a
``Config``.
"""

from .mssql import connect, parse_connection_string, Db  # noqa: F401
from .connection_factory import get_connection, ConnectionFactory  # noqa: F401

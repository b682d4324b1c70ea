"""
Small data-access helper for SQL Server.

``DatabaseCommandRunner`` opens a connection, executes a SQL statement
or stored procedure and returns the result as a row count, a ``Table``,
a ``TableView``, a ``ResultSetCollection`` or a ``StreamingReader``.
See ``dal_helper.runner`` for details.
"""

from .config import Config, load_config, STRICT_MARKERS  # noqa: F401
from .errors import (  # noqa: F401
    DalHelperError,
    InvalidArgumentError,
    InvalidInputError,
    MisconfiguredEnvironmentError,
    MissingInputError,
)
from .results import ResultSetCollection, StreamingReader, Table, TableView  # noqa: F401
from .runner import DatabaseCommandRunner  # noqa: F401
from .statement import Parameter, StatementKind  # noqa: F401

"""
Database connection factory.

``DatabaseCommandRunner`` asks this module for a fresh connection on
every call.  Tests and callers with special needs can hand the runner
any other callable with the same signature.
"""

from __future__ import annotations

from typing import Callable

from ...config import Config
from .mssql import connect, Db

ConnectionFactory = Callable[[Config], Db]


def get_connection(config: Config) -> Db:
    """Open a new database connection for ``config``.

    Args:
        config: A configuration that has already passed ``validate``.

    Returns:
        A new ``Db`` instance connected to the configured database.
    """
    return connect(
        config.CONNECTION_STRING or "",
        timeout=config.COMMAND_TIMEOUT,
        login_timeout=config.LOGIN_TIMEOUT,
    )

"""
Environment configuration loader.

The helper needs a single SQL Server connection string.  It is read
from the environment (a ``.env`` file is honoured through
``python-dotenv``) and exposed via a frozen ``Config`` dataclass that
is handed to ``DatabaseCommandRunner``.  Nothing is validated when the
configuration is loaded; ``Config.validate`` runs each time a
connection is about to be opened.

Supported variables:

* ``DALHELPER_CONNECTION_STRING`` – ADO style connection string, e.g.
  ``Data Source=db01;Initial Catalog=Sales;User ID=app;Password=...``.
* ``DALHELPER_REQUIRED_MARKERS`` – comma separated list of substrings
  the connection string must contain (default ``data source``).  The
  value ``strict`` selects ``STRICT_MARKERS``.
* ``DALHELPER_COMMAND_TIMEOUT`` – seconds before a statement is aborted.
* ``DALHELPER_LOGIN_TIMEOUT`` – seconds allowed for opening a connection.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Tuple
from dotenv import load_dotenv

from ..errors import MisconfiguredEnvironmentError

load_dotenv()

DEFAULT_MARKERS: Tuple[str, ...] = ("data source",)
STRICT_MARKERS: Tuple[str, ...] = ("data source", "initial catalog", "data provider")


@dataclass(frozen=True)
class Config:
    """Holds the connection configuration used by the helper."""

    CONNECTION_STRING: Optional[str] = None
    REQUIRED_MARKERS: Tuple[str, ...] = DEFAULT_MARKERS
    COMMAND_TIMEOUT: Optional[float] = None
    LOGIN_TIMEOUT: Optional[float] = None

    def validate(self) -> None:
        """Check that the connection string is present and well formed.

        Raises:
            MisconfiguredEnvironmentError: If the connection string is
                empty or any required marker is missing from it.
        """
        raw = self.CONNECTION_STRING
        if raw is None or not raw.strip():
            raise MisconfiguredEnvironmentError(
                "Please initialize the connection string before using the helper"
            )
        lowered = raw.lower()
        for marker in self.REQUIRED_MARKERS:
            if marker.lower() not in lowered:
                raise MisconfiguredEnvironmentError(
                    f"Please pass in a valid connection string. "
                    f"{marker.title()} is missing from the connection string."
                )


def _parse_markers(value: Optional[str]) -> Tuple[str, ...]:
    if not value or not value.strip():
        return DEFAULT_MARKERS
    if value.strip().lower() == "strict":
        return STRICT_MARKERS
    return tuple(m.strip().lower() for m in value.split(",") if m.strip())


def _parse_seconds(name: str, value: Optional[str]) -> Optional[float]:
    if value is None or not value.strip():
        return None
    try:
        seconds = float(value)
    except ValueError:
        raise MisconfiguredEnvironmentError(
            f"Environment variable {name} must be a number of seconds, got {value!r}"
        ) from None
    if seconds <= 0:
        raise MisconfiguredEnvironmentError(f"Environment variable {name} must be positive")
    return seconds


def load_config() -> Config:
    """Load configuration from environment variables.

    Raises:
        MisconfiguredEnvironmentError: If a timeout variable is not a
            positive number.

    Returns:
        Config: A populated configuration dataclass.
    """
    return Config(
        CONNECTION_STRING=os.environ.get("DALHELPER_CONNECTION_STRING"),
        REQUIRED_MARKERS=_parse_markers(os.environ.get("DALHELPER_REQUIRED_MARKERS")),
        COMMAND_TIMEOUT=_parse_seconds(
            "DALHELPER_COMMAND_TIMEOUT", os.environ.get("DALHELPER_COMMAND_TIMEOUT")
        ),
        LOGIN_TIMEOUT=_parse_seconds(
            "DALHELPER_LOGIN_TIMEOUT", os.environ.get("DALHELPER_LOGIN_TIMEOUT")
        ),
    )

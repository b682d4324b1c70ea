"""
Exceptions raised by the helper before anything reaches the database.

Failures reported by the driver itself (``pymssql.Error``,
``pyodbc.Error``) are not wrapped; they reach the caller unchanged.
"""

from __future__ import annotations


class DalHelperError(Exception):
    """Base class for errors raised by ``dal_helper``."""


class InvalidArgumentError(DalHelperError, ValueError):
    """An argument passed to the helper is not usable."""


class MissingInputError(InvalidArgumentError):
    """The SQL text was not provided at all (``None``)."""


class InvalidInputError(InvalidArgumentError):
    """The SQL text was provided but is empty."""


class MisconfiguredEnvironmentError(DalHelperError, ValueError):
    """The connection string is missing or lacks a required marker."""

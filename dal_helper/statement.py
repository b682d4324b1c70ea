"""
Statement kinds, parameters and driver binding.

SQL text uses SQL Server style named parameters (``@idCliente``).  The
DB-API drivers want their own placeholders: ``pymssql`` uses the
``pyformat`` style (``%(idCliente)s``) and ``pyodbc`` the ``qmark``
style (``?``).  ``bind`` performs that rewrite for ad hoc queries and
builds an ``EXEC`` call for stored procedures.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .errors import InvalidArgumentError, InvalidInputError, MissingInputError

_PARAM_TOKEN = re.compile(r"(?<![@\w])@([A-Za-z_][A-Za-z0-9_]*)")
_PARAM_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_NAME_PART = r"(?:[A-Za-z_@#][\w@$#]*|\[[^\]]+\])"
_PROCEDURE_NAME = re.compile(rf"{_NAME_PART}(?:\.{_NAME_PART}){{0,3}}")


class StatementKind(enum.Enum):
    """Whether the SQL text is an ad hoc query or a stored procedure name."""

    QUERY = 0
    STORED_PROCEDURE = 1

    @classmethod
    def coerce(cls, value: Any) -> "StatementKind":
        # Anything that is not explicitly a query runs as a procedure.
        if value is cls.QUERY or value == cls.QUERY.value:
            return cls.QUERY
        if isinstance(value, str) and value.strip().lower() == "query":
            return cls.QUERY
        return cls.STORED_PROCEDURE


@dataclass(frozen=True)
class Parameter:
    """A named value bound to a statement."""

    name: str
    value: Any = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str):
            raise InvalidArgumentError(f"Invalid parameter name: {self.name!r}")
        name = self.name[1:] if self.name.startswith("@") else self.name
        if not _PARAM_NAME.fullmatch(name):
            raise InvalidArgumentError(f"Invalid parameter name: {self.name!r}")
        object.__setattr__(self, "name", name)


ParametersLike = Union[None, Mapping[str, Any], Iterable[Union[Parameter, Tuple[str, Any]]]]


def as_parameters(params: ParametersLike) -> List[Parameter]:
    """Normalise the accepted parameter forms into an ordered list."""
    if params is None:
        return []
    items = params.items() if isinstance(params, Mapping) else params
    result: List[Parameter] = []
    seen = set()
    for item in items:
        param = item if isinstance(item, Parameter) else Parameter(*item)
        key = param.name.lower()
        if key in seen:
            raise InvalidArgumentError(f"Parameter @{param.name} supplied more than once")
        seen.add(key)
        result.append(param)
    return result


def validate_sql_text(sql_text: Any) -> str:
    """Reject missing or empty SQL text.

    Raises:
        MissingInputError: If ``sql_text`` is ``None``.
        InvalidInputError: If ``sql_text`` is an empty string.
        InvalidArgumentError: If ``sql_text`` is not a string.
    """
    if sql_text is None:
        raise MissingInputError(
            "The sql query text cannot be null. Please provide a valid sql query text."
        )
    if not isinstance(sql_text, str):
        raise InvalidArgumentError(f"SQL text must be a string, got {type(sql_text).__name__}")
    if len(sql_text) == 0:
        raise InvalidInputError("Please provide a valid sql query text.")
    return sql_text


def validate_procedure_name(sql_text: str) -> str:
    """Return the procedure name if it is a one to four part identifier.

    Raises:
        InvalidArgumentError: If the text is anything but a routine name,
            such as a batch of statements.
    """
    name = sql_text.strip()
    if not _PROCEDURE_NAME.fullmatch(name):
        raise InvalidArgumentError(f"Not a valid stored procedure name: {sql_text!r}")
    return name


def _placeholder(name: str, paramstyle: str) -> str:
    if paramstyle == "pyformat":
        return f"%({name})s"
    if paramstyle == "qmark":
        return "?"
    raise ValueError(f"Unsupported paramstyle: {paramstyle}")


def _args(parameters: List[Parameter], paramstyle: str) -> Union[Dict[str, Any], List[Any]]:
    if paramstyle == "pyformat":
        return {p.name: p.value for p in parameters}
    return [p.value for p in parameters]


def bind(
    sql_text: str,
    kind: StatementKind,
    parameters: List[Parameter],
    paramstyle: str,
) -> Tuple[str, Optional[Union[Dict[str, Any], List[Any]]]]:
    """Build the driver operation and arguments for a statement.

    Args:
        sql_text: Query text or stored procedure name.
        kind: How ``sql_text`` should be interpreted.
        parameters: Parameters in binding order.
        paramstyle: ``"pyformat"`` (pymssql) or ``"qmark"`` (pyodbc).

    Returns:
        A ``(operation, args)`` tuple.  ``args`` is ``None`` when there
        are no parameters, so the driver does not attempt any
        placeholder substitution.
    """
    if kind is StatementKind.STORED_PROCEDURE:
        assignments = ", ".join(
            f"@{p.name} = {_placeholder(p.name, paramstyle)}" for p in parameters
        )
        operation = f"EXEC {validate_procedure_name(sql_text)}"
        if assignments:
            operation = f"{operation} {assignments}"
        return operation, (_args(parameters, paramstyle) if parameters else None)

    if not parameters:
        return sql_text, None

    by_name = {p.name.lower(): p for p in parameters}
    text = sql_text.replace("%", "%%") if paramstyle == "pyformat" else sql_text
    ordered: List[Parameter] = []

    def replacer(match: "re.Match[str]") -> str:
        param = by_name.get(match.group(1).lower())
        if param is None:
            # Local variable or a name the caller did not bind.
            return match.group(0)
        ordered.append(param)
        return _placeholder(param.name, paramstyle)

    operation = _PARAM_TOKEN.sub(replacer, text)
    if paramstyle == "qmark":
        return operation, [p.value for p in ordered]
    return operation, _args(parameters, paramstyle)

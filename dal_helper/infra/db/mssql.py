"""
SQL Server connection utilities.

Connections are opened with ``pymssql`` when it is installed and with
``pyodbc`` otherwise (install the ``odbc`` extra and a Microsoft ODBC
driver for that route).  If neither driver is available ``connect``
raises ``ImportError``.

Connection strings use the ADO.NET ``key=value;`` syntax, e.g.::

    Data Source=db01,1433;Initial Catalog=Sales;User ID=app;Password=secret

The ``connect`` function returns an instance of ``Db``, a thin wrapper
around the DB-API connection that remembers which driver (and hence
which placeholder style) is in use.  Connections are opened in
autocommit mode so every statement commits on its own.

Example usage::

    from dal_helper.infra.db import connect
    db = connect(os.environ['DALHELPER_CONNECTION_STRING'])
    try:
        cursor = db.cursor()
        cursor.execute("SELECT 1 AS ok")
    finally:
        db.close()
"""

from __future__ import annotations

import math
import re
from typing import Any, Dict, Optional

_PARAMSTYLES = {"pymssql": "pyformat", "pyodbc": "qmark"}
_LOCAL_SERVERS = {".", "(local)", "(localdb)", "localhost"}


class Db:
    """Lightweight wrapper around a DB-API connection.

    Instances are returned by the ``connect`` function defined below.
    ``close`` may be called any number of times.
    """

    def __init__(self, conn: Any, driver: str) -> None:
        if driver not in _PARAMSTYLES:
            raise RuntimeError(f"Unsupported driver: {driver}")
        self._conn = conn
        self._driver = driver
        self._closed = False

    @property
    def driver(self) -> str:
        return self._driver

    @property
    def paramstyle(self) -> str:
        return _PARAMSTYLES[self._driver]

    @property
    def closed(self) -> bool:
        return self._closed

    def cursor(self) -> Any:
        if self._closed:
            raise RuntimeError("Connection is closed")
        return self._conn.cursor()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._conn.close()


def _normalise_server(server: str) -> str:
    host, sep, instance = server.partition("\\")
    if host.strip().lower() in _LOCAL_SERVERS:
        host = "localhost"
    return f"{host.strip()}{sep}{instance.strip()}"


def parse_connection_string(input_str: str) -> Dict[str, Any]:
    """Parse a SQL Server connection string into its components.

    It supports ``mssql://`` URLs or semicolon-separated key/value
    pairs.  The resulting dictionary contains keys such as ``server``,
    ``port``, ``user``, ``password`` and ``database`` as well as
    ``encrypt`` and ``trustServerCertificate`` flags.  Keys the helper
    does not understand (``Data Provider`` for instance) are ignored.

    Args:
        input_str: The connection string to parse.

    Returns:
        A dictionary of connection parameters.
    """
    s = (input_str or "").strip()
    if not s:
        raise ValueError("Empty connection string")
    # Normalise mssql:// prefix
    norm = re.sub(r"^sqlserver://", "mssql://", s, flags=re.IGNORECASE)
    if norm.lower().startswith("mssql://"):
        # Return URL as-is; downstream clients can handle it
        return {"url": norm}
    parts = [p.strip() for p in norm.split(";") if p.strip()]
    kv: Dict[str, str] = {}
    for p in parts:
        if '=' not in p:
            continue
        k, v = p.split('=', 1)
        kv[" ".join(k.lower().split())] = v.strip()
    server_raw = kv.get('data source') or kv.get('server') or kv.get('address') or kv.get('addr') or kv.get('network address')
    if not server_raw:
        raise ValueError('No Data Source= found in connection string')
    server = server_raw
    port: Optional[int] = None
    m = re.match(r"^(?:tcp:)?(.*?),\s*(\d+)$", server_raw, flags=re.IGNORECASE)
    if m:
        server = m.group(1)
        port = int(m.group(2))
    user = kv.get('uid') or kv.get('user id') or kv.get('user')
    password = kv.get('pwd') or kv.get('password')
    database = kv.get('database') or kv.get('initial catalog')
    encrypt_str = (kv.get('encrypt') or 'true').lower()
    tsc_str = (kv.get('trustservercertificate') or kv.get('trust server certificate') or 'true').lower()
    encrypt = encrypt_str in ('true', 'yes', '1')
    trust_server_certificate = tsc_str in ('true', 'yes', '1')
    return {
        'server': _normalise_server(server),
        'user': user,
        'password': password,
        'port': port,
        'database': database,
        'encrypt': encrypt,
        'trustServerCertificate': trust_server_certificate,
    }


def connect(raw: str, timeout: Optional[float] = None, login_timeout: Optional[float] = None) -> Db:
    """Connect to a SQL Server database.

    Args:
        raw: The connection string.
        timeout: Seconds a statement may run before the driver aborts it.
        login_timeout: Seconds allowed for opening the connection.

    Returns:
        A ``Db`` instance.

    Raises:
        ImportError: If neither ``pymssql`` nor ``pyodbc`` is installed.
    """
    cfg = parse_connection_string(raw)
    url = cfg.get('url')
    # Try pymssql first
    try:
        import pymssql  # type: ignore[import]
    except ImportError:
        pymssql = None
    if pymssql is not None and not url:
        kwargs: Dict[str, Any] = {
            'server': cfg.get('server'),
            'user': cfg.get('user') or '',
            'password': cfg.get('password') or '',
            'database': cfg.get('database') or '',
            'autocommit': True,
        }
        if cfg.get('port'):
            kwargs['port'] = cfg['port']
        if timeout:
            kwargs['timeout'] = math.ceil(timeout)
        if login_timeout:
            kwargs['login_timeout'] = math.ceil(login_timeout)
        return Db(pymssql.connect(**kwargs), "pymssql")
    # Fallback to pyodbc
    try:
        import pyodbc  # type: ignore[import]
    except ImportError:
        raise ImportError(
            "Neither pymssql nor pyodbc is installed. Install one of them to connect to SQL Server."
        ) from None
    login = math.ceil(login_timeout) if login_timeout else 0
    # If the URL form is provided, let pyodbc parse it
    if url:
        conn = pyodbc.connect(url, autocommit=True, timeout=login)
    else:
        driver = 'ODBC Driver 18 for SQL Server'
        server = cfg.get('server')
        port = cfg.get('port')
        server_expr = f"{server},{port}" if port else server
        conn_str = (
            f"DRIVER={{{driver}}};"
            f"SERVER={server_expr};"
            f"DATABASE={cfg.get('database') or ''};"
            f"Encrypt={'yes' if cfg.get('encrypt', True) else 'no'};"
            f"TrustServerCertificate={'yes' if cfg.get('trustServerCertificate', True) else 'no'};"
        )
        if cfg.get('user'):
            conn_str += f"UID={cfg['user']};PWD={cfg.get('password') or ''};"
        else:
            conn_str += "Trusted_Connection=yes;"
        conn = pyodbc.connect(conn_str, autocommit=True, timeout=login)
    if timeout:
        conn.timeout = math.ceil(timeout)
    return Db(conn, "pyodbc")

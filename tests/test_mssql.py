"""Connection string parsing and driver selection."""

from __future__ import annotations

import sys
import types

import pytest

from dal_helper.config import Config
from dal_helper.infra.db import Db, connect, get_connection, parse_connection_string


def test_parse_ado_connection_string():
    cfg = parse_connection_string(
        "Data Source=db01,1450;Initial Catalog=Sales;User ID=app;Password=s3cr=t;Encrypt=no"
    )
    assert cfg["server"] == "db01"
    assert cfg["port"] == 1450
    assert cfg["database"] == "Sales"
    assert cfg["user"] == "app"
    assert cfg["password"] == "s3cr=t"
    assert cfg["encrypt"] is False
    assert cfg["trustServerCertificate"] is True


@pytest.mark.parametrize("raw, server", [
    ("Data Source=.;", "localhost"),
    (r"Data Source = .\TestDatabase;", r"localhost\TestDatabase"),
    ("Server=(local);Database=x", "localhost"),
    ("Server=tcp:db01.example.com,1433", "db01.example.com"),
])
def test_parse_server_forms(raw, server):
    assert parse_connection_string(raw)["server"] == server


def test_parse_passes_urls_through():
    assert parse_connection_string("sqlserver://u:p@db01/Sales") == {"url": "mssql://u:p@db01/Sales"}


@pytest.mark.parametrize("raw", ["", "Initial Catalog=Sales"])
def test_parse_rejects_strings_without_server(raw):
    with pytest.raises(ValueError):
        parse_connection_string(raw)


class _Recorder:
    def __init__(self):
        self.calls = []

    def connect(self, *args, **kwargs):
        self.calls.append((args, kwargs))
        return types.SimpleNamespace(close=lambda: None, cursor=lambda: None, timeout=0)


def test_connect_prefers_pymssql(monkeypatch):
    fake = _Recorder()
    monkeypatch.setitem(sys.modules, "pymssql", fake)
    db = connect("Data Source=db01,1500;Initial Catalog=Sales;User ID=app;Password=pw",
                 timeout=30, login_timeout=5)
    assert db.driver == "pymssql"
    assert db.paramstyle == "pyformat"
    (args, kwargs), = fake.calls
    assert kwargs == {
        "server": "db01",
        "user": "app",
        "password": "pw",
        "database": "Sales",
        "autocommit": True,
        "port": 1500,
        "timeout": 30,
        "login_timeout": 5,
    }


def test_connect_falls_back_to_pyodbc(monkeypatch):
    fake = _Recorder()
    monkeypatch.setitem(sys.modules, "pymssql", None)
    monkeypatch.setitem(sys.modules, "pyodbc", fake)
    db = connect("Data Source=db01;Initial Catalog=Sales", timeout=12)
    assert db.driver == "pyodbc"
    assert db.paramstyle == "qmark"
    (args, kwargs), = fake.calls
    assert "SERVER=db01;" in args[0]
    assert "DATABASE=Sales;" in args[0]
    assert "Trusted_Connection=yes;" in args[0]
    assert kwargs == {"autocommit": True, "timeout": 0}
    assert db._conn.timeout == 12


def test_connect_without_any_driver(monkeypatch):
    monkeypatch.setitem(sys.modules, "pymssql", None)
    monkeypatch.setitem(sys.modules, "pyodbc", None)
    with pytest.raises(ImportError, match="Neither pymssql nor pyodbc"):
        connect("Data Source=db01")


def test_get_connection_uses_config_timeouts(monkeypatch):
    fake = _Recorder()
    monkeypatch.setitem(sys.modules, "pymssql", fake)
    get_connection(Config(CONNECTION_STRING="Data Source=db01", COMMAND_TIMEOUT=9, LOGIN_TIMEOUT=3))
    (_, kwargs), = fake.calls
    assert kwargs["timeout"] == 9
    assert kwargs["login_timeout"] == 3


def test_db_close_is_idempotent():
    closes = []
    db = Db(types.SimpleNamespace(close=lambda: closes.append(1), cursor=lambda: None), "pymssql")
    db.close()
    db.close()
    assert db.closed
    assert closes == [1]
    with pytest.raises(RuntimeError):
        db.cursor()


def test_db_rejects_unknown_driver():
    with pytest.raises(RuntimeError):
        Db(object(), "sqlite3")


def test_fractional_timeouts_round_up(monkeypatch):
    fake = _Recorder()
    monkeypatch.setitem(sys.modules, "pymssql", fake)
    connect("Data Source=db01", timeout=0.5, login_timeout=1.2)
    (_, kwargs), = fake.calls
    assert kwargs["timeout"] == 1
    assert kwargs["login_timeout"] == 2


def test_fractional_timeouts_round_up_with_pyodbc(monkeypatch):
    fake = _Recorder()
    monkeypatch.setitem(sys.modules, "pymssql", None)
    monkeypatch.setitem(sys.modules, "pyodbc", fake)
    db = connect("Data Source=db01", timeout=0.5, login_timeout=0.1)
    (_, kwargs), = fake.calls
    assert kwargs["timeout"] == 1
    assert db._conn.timeout == 1

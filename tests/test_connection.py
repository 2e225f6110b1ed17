"""Tests for pyodbc-backed server sessions."""

from unittest.mock import MagicMock

import pytest

from rgmigrate.exceptions import ScriptExecutionError, ServerConnectionError
from rgmigrate.models.migration import ServerConnection
from rgmigrate.services.connection import ServerSession

pyodbc = pytest.importorskip("pyodbc")


def make_cursor(description=None, rows=()):
    cursor = MagicMock()
    cursor.__enter__.return_value = cursor
    cursor.description = description
    cursor.fetchall.return_value = list(rows)
    cursor.nextset.return_value = False
    return cursor


def make_session(cursor):
    connection = MagicMock()
    connection.cursor.return_value = cursor
    return ServerSession(ServerConnection(server="SRC01"), connection), connection


class TestConnect:

    def test_opens_in_autocommit_mode(self, monkeypatch):
        calls = {}

        def fake_connect(conn_str, **kwargs):
            calls["conn_str"] = conn_str
            calls.update(kwargs)
            return MagicMock()

        monkeypatch.setattr(pyodbc, "connect", fake_connect)
        session = ServerSession.connect(ServerConnection(server="SRC01", timeout=5))

        assert calls["autocommit"] is True
        assert calls["timeout"] == 5
        assert "SERVER=SRC01;" in calls["conn_str"]
        assert session.settings.server == "SRC01"

    def test_driver_errors_are_wrapped(self, monkeypatch):
        def fake_connect(conn_str, **kwargs):
            raise pyodbc.OperationalError("HYT00", "Login timeout expired")

        monkeypatch.setattr(pyodbc, "connect", fake_connect)
        with pytest.raises(ServerConnectionError, match="SRC01"):
            ServerSession.connect(ServerConnection(server="SRC01"))


class TestQueries:

    def test_rows_become_dicts(self):
        cursor = make_cursor(
            description=(("pool_id", int), ("name", str)),
            rows=[(1, "internal"), (2, "default")],
        )
        session, _ = make_session(cursor)

        rows = session.query("SELECT pool_id, name FROM sys.resource_governor_resource_pools")

        assert rows == [{"pool_id": 1, "name": "internal"}, {"pool_id": 2, "name": "default"}]

    def test_parameters_are_passed_through(self):
        cursor = make_cursor(description=(("object_id", int),), rows=[(None,)])
        session, _ = make_session(cursor)

        assert session.query_one("SELECT OBJECT_ID(?) AS object_id", "[dbo].[fn]") == {"object_id": None}
        cursor.execute.assert_called_once_with("SELECT OBJECT_ID(?) AS object_id", "[dbo].[fn]")

    def test_no_result_set(self):
        session, _ = make_session(make_cursor(description=None))
        assert session.query("SET NOCOUNT ON") == []
        assert session.query_one("SET NOCOUNT ON") is None

    def test_query_errors_are_wrapped(self):
        cursor = make_cursor()
        cursor.execute.side_effect = pyodbc.ProgrammingError(
            "42000", "The SELECT permission was denied on the object 'resource_governor_configuration'"
        )
        session, _ = make_session(cursor)

        with pytest.raises(ScriptExecutionError, match="SELECT permission was denied") as exc_info:
            session.query("SELECT * FROM sys.resource_governor_configuration")

        assert exc_info.value.server == "SRC01"
        assert isinstance(exc_info.value.original, pyodbc.Error)

    def test_info_is_read_once(self):
        cursor = make_cursor(
            description=(("server_name",), ("product_version",), ("edition",), ("engine_edition",)),
            rows=[("HOST\\SQL01", "15.0.2000.5", "Developer Edition (64-bit)", 3)],
        )
        session, _ = make_session(cursor)

        assert session.name == "HOST\\SQL01"
        assert session.info.major_version == 15
        assert cursor.execute.call_count == 1


class TestExecute:

    def test_drains_result_sets(self):
        cursor = make_cursor()
        cursor.nextset.side_effect = [True, True, False]
        session, _ = make_session(cursor)

        session.execute("ALTER RESOURCE GOVERNOR RECONFIGURE")

        assert cursor.nextset.call_count == 3

    def test_errors_are_wrapped(self):
        cursor = make_cursor()
        cursor.execute.side_effect = pyodbc.ProgrammingError("42000", "Incorrect syntax near 'POOL'")
        session, _ = make_session(cursor)

        with pytest.raises(ScriptExecutionError) as exc_info:
            session.execute("CREATE RESOURCE POOL")

        assert exc_info.value.batch == "CREATE RESOURCE POOL"
        assert isinstance(exc_info.value.original, pyodbc.Error)

    def test_execute_script_runs_each_batch(self):
        cursor = make_cursor()
        session, _ = make_session(cursor)

        count = session.execute_script("CREATE RESOURCE POOL [a]\nGO\nCREATE RESOURCE POOL [b]\nGO\n")

        assert count == 2
        assert [c.args[0] for c in cursor.execute.call_args_list] == [
            "CREATE RESOURCE POOL [a]",
            "CREATE RESOURCE POOL [b]",
        ]

    def test_close(self):
        session, connection = make_session(make_cursor())
        with session:
            pass
        connection.close.assert_called_once()
        session.close()
        connection.close.assert_called_once()

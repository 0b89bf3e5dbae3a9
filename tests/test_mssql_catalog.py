from unittest.mock import MagicMock

import pytest

pyodbc = pytest.importorskip("pyodbc")

from dbrename.adapters import mssql_catalog
from dbrename.adapters.mssql_catalog import (
    PyodbcCatalog,
    build_connection_string,
    quote_identifier,
    quote_literal,
)
from dbrename.domain.errors import CatalogError
from dbrename.domain.models import FILESTREAM, MEMORY_OPTIMIZED, ROWS


def _connection(monkeypatch: pytest.MonkeyPatch, results: list[list[tuple]] | None = None) -> MagicMock:
    conn = MagicMock()
    cursor = conn.cursor.return_value
    cursor.execute.return_value = cursor
    cursor.fetchall.side_effect = list(results or [])
    monkeypatch.setattr(mssql_catalog.pyodbc, "connect", MagicMock(return_value=conn))
    return cursor


def _statements(cursor: MagicMock) -> list[str]:
    return [call.args[0] for call in cursor.execute.call_args_list]


def test_quoting() -> None:
    assert quote_identifier("odd]name") == "[odd]]name]"
    assert quote_literal("O'Brien") == "N'O''Brien'"


def test_connection_string_trusted_and_sql_login() -> None:
    trusted = build_connection_string("SQL01", "ODBC Driver 18 for SQL Server")
    login = build_connection_string("SQL01", "ODBC Driver 18 for SQL Server", "sa", "p}w", timeout=5)

    assert "Trusted_Connection=yes" in trusted
    assert "DRIVER={ODBC Driver 18 for SQL Server}" in trusted
    assert "UID=sa" in login
    assert "PWD={p}}w}" in login
    assert "Connection Timeout=5" in login


def test_get_instance_info_defaults_instance_name(monkeypatch: pytest.MonkeyPatch) -> None:
    _connection(monkeypatch, [[("SQLHOST", "SQLHOST", None, "SQLHOST")]])

    info = PyodbcCatalog("dsn").get_instance_info()

    assert info.computer_name == "SQLHOST"
    assert info.instance_name == "MSSQLSERVER"
    assert info.sql_instance == "SQLHOST"


def test_list_databases_maps_flags(monkeypatch: pytest.MonkeyPatch) -> None:
    _connection(
        monkeypatch,
        [[("HR", "ONLINE", 1, 0, 0, 0), ("Snap", "ONLINE", 1, 1, 0, 0), ("Old", "OFFLINE", 0, 0, 1, 1)]],
    )

    databases = PyodbcCatalog("dsn").list_databases()

    assert [database.name for database in databases] == ["HR", "Snap", "Old"]
    assert databases[1].is_snapshot
    assert not databases[2].is_accessible
    assert databases[2].is_mirrored and databases[2].is_ag_member


def test_get_database_builds_filegroups_and_log_files(monkeypatch: pytest.MonkeyPatch) -> None:
    cursor = _connection(
        monkeypatch,
        [
            [("HR", "ONLINE", 1, 0, 0, 0)],
            [(1, "PRIMARY", "FG"), (2, "Stream", "FD"), (3, "Mem", "FX")],
            [
                (1, "HR", "D:\\Data\\HR.mdf", "ROWS", 1),
                (2, "HR_log", "L:\\Logs\\HR_log.ldf", "LOG", 0),
                (3, "HR_fs", "F:\\Stream\\HR_fs", "FILESTREAM", 2),
            ],
        ],
    )

    database = PyodbcCatalog("dsn").get_database("HR")

    assert [(group.name, group.group_type) for group in database.filegroups] == [
        ("PRIMARY", ROWS),
        ("Stream", FILESTREAM),
        ("Mem", MEMORY_OPTIMIZED),
    ]
    assert [logical.name for logical in database.filegroups[0].files] == ["HR"]
    assert [logical.name for logical in database.filegroups[1].files] == ["HR_fs"]
    assert database.log_files[0].is_log
    assert "[HR].sys.filegroups" in _statements(cursor)[1]


def test_get_database_missing_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    _connection(monkeypatch, [[("Sales", "ONLINE", 1, 0, 0, 0)]])

    with pytest.raises(CatalogError, match="Database not found"):
        PyodbcCatalog("dsn").get_database("HR")


def test_rename_statements(monkeypatch: pytest.MonkeyPatch) -> None:
    cursor = _connection(monkeypatch)
    catalog = PyodbcCatalog("dsn")

    catalog.rename_database("HR", "HR2")
    catalog.rename_filegroup("HR2", "Archive", "HR_Archive")
    catalog.rename_logical_file("HR2", "HR", "HR2_data")
    catalog.set_physical_file_name("HR2", "HR2_data", "D:\\Data\\HR2.mdf")
    catalog.set_offline("HR2", force=True)
    catalog.set_online("HR2")

    assert _statements(cursor) == [
        "ALTER DATABASE [HR] MODIFY NAME = [HR2]",
        "ALTER DATABASE [HR2] MODIFY FILEGROUP [Archive] NAME = [HR_Archive]",
        "ALTER DATABASE [HR2] MODIFY FILE (NAME = N'HR', NEWNAME = N'HR2_data')",
        "ALTER DATABASE [HR2] MODIFY FILE (NAME = N'HR2_data', FILENAME = N'D:\\Data\\HR2.mdf')",
        "ALTER DATABASE [HR2] SET OFFLINE WITH ROLLBACK IMMEDIATE",
        "ALTER DATABASE [HR2] SET ONLINE",
    ]


def test_driver_errors_become_catalog_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    cursor = _connection(monkeypatch)
    cursor.execute.side_effect = pyodbc.Error("42000", "Cannot rename")

    with pytest.raises(CatalogError, match="Failed to rename database HR"):
        PyodbcCatalog("dsn").rename_database("HR", "HR2")


def test_connection_is_closed_after_each_call(monkeypatch: pytest.MonkeyPatch) -> None:
    cursor = _connection(monkeypatch)
    conn = mssql_catalog.pyodbc.connect.return_value
    catalog = PyodbcCatalog("dsn")

    catalog.set_online("HR")
    assert conn.close.call_count == 1

    cursor.execute.side_effect = pyodbc.Error("08S01", "Communication link failure")
    with pytest.raises(CatalogError):
        catalog.set_offline("HR")
    assert conn.close.call_count == 2

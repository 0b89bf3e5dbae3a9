from __future__ import annotations

import logging
from contextlib import closing
from typing import Any

import pyodbc

from dbrename.domain.errors import CatalogError
from dbrename.domain.models import (
    FILESTREAM,
    MEMORY_OPTIMIZED,
    OTHER,
    ROWS,
    Database,
    FileGroup,
    InstanceInfo,
    LogicalFile,
)
from dbrename.ports.catalog_port import CatalogPort

logger = logging.getLogger(__name__)

_FILEGROUP_TYPES = {
    "FG": ROWS,
    "FD": FILESTREAM,
    "FX": MEMORY_OPTIMIZED,
}

_INSTANCE_QUERY = """
SELECT
    CAST(SERVERPROPERTY('ComputerNamePhysicalNetBIOS') AS nvarchar(128)),
    CAST(SERVERPROPERTY('MachineName') AS nvarchar(128)),
    CAST(SERVERPROPERTY('InstanceName') AS nvarchar(128)),
    CAST(SERVERPROPERTY('ServerName') AS nvarchar(256))
"""

_DATABASES_QUERY = """
SELECT
    d.name,
    d.state_desc,
    HAS_DBACCESS(d.name),
    CASE WHEN d.source_database_id IS NULL THEN 0 ELSE 1 END,
    CASE WHEN m.mirroring_guid IS NULL THEN 0 ELSE 1 END,
    CASE WHEN d.replica_id IS NULL THEN 0 ELSE 1 END
FROM sys.databases AS d
LEFT JOIN sys.database_mirroring AS m ON m.database_id = d.database_id
ORDER BY d.name
"""

_INSTANCE_FILES_QUERY = "SELECT physical_name FROM sys.master_files"


def quote_identifier(name: str) -> str:
    """
    Quote a SQL Server identifier.

    Example:
        >>> quote_identifier("odd]name")
        '[odd]]name]'
    """
    return "[" + name.replace("]", "]]") + "]"


def quote_literal(value: str) -> str:
    """
    Quote a Unicode string literal.

    Example:
        >>> quote_literal("O'Brien")
        "N'O''Brien'"
    """
    return "N'" + value.replace("'", "''") + "'"


def build_connection_string(
    server: str,
    driver: str,
    username: str = "",
    password: str = "",
    trust_server_certificate: bool = True,
    timeout: int = 15,
) -> str:
    parts = [f"DRIVER={{{driver}}}", f"SERVER={server}", "DATABASE=master"]
    if username:
        escaped_password = password.replace("}", "}}")
        parts.append(f"UID={username}")
        parts.append(f"PWD={{{escaped_password}}}")
    else:
        parts.append("Trusted_Connection=yes")
    if trust_server_certificate:
        parts.append("TrustServerCertificate=yes")
    parts.append(f"Connection Timeout={timeout}")
    return ";".join(parts) + ";"


class PyodbcCatalog(CatalogPort):
    def __init__(self, connection_string: str, timeout: int = 15) -> None:
        self._connection_string = connection_string
        self._timeout = timeout

    def get_instance_info(self) -> InstanceInfo:
        row = self._fetch_one(_INSTANCE_QUERY, context="read instance properties")
        if row is None:
            raise CatalogError("Instance properties were not returned")
        computer_name = row[0] or row[1] or ""
        instance_name = row[2] or "MSSQLSERVER"
        return InstanceInfo(
            computer_name=computer_name,
            instance_name=instance_name,
            sql_instance=row[3] or computer_name,
        )

    def list_databases(self) -> list[Database]:
        rows = self._fetch_all(_DATABASES_QUERY, context="list databases")
        return [
            Database(
                name=row[0],
                state=row[1],
                is_accessible=bool(row[2]),
                is_snapshot=bool(row[3]),
                is_mirrored=bool(row[4]),
                is_ag_member=bool(row[5]),
            )
            for row in rows
        ]

    def get_database(self, name: str) -> Database:
        database = next(
            (candidate for candidate in self.list_databases() if candidate.name == name), None
        )
        if database is None:
            raise CatalogError(f"Database not found: {name}")

        db = quote_identifier(name)
        group_rows = self._fetch_all(
            f"SELECT data_space_id, name, type FROM {db}.sys.filegroups ORDER BY data_space_id",
            context=f"list filegroups of {name}",
        )
        file_rows = self._fetch_all(
            f"""
            SELECT file_id, name, physical_name, type_desc, data_space_id
            FROM {db}.sys.database_files
            ORDER BY file_id
            """,
            context=f"list files of {name}",
        )

        groups: dict[int, FileGroup] = {}
        for space_id, group_name, group_type in group_rows:
            groups[space_id] = FileGroup(
                name=group_name, group_type=_FILEGROUP_TYPES.get(group_type, OTHER)
            )
        for file_id, logical_name, physical_name, type_desc, space_id in file_rows:
            if type_desc == "LOG":
                database.log_files.append(
                    LogicalFile(file_id=file_id, name=logical_name, physical_name=physical_name, is_log=True)
                )
                continue
            group = groups.get(space_id)
            if group is None:
                continue
            group.files.append(LogicalFile(file_id=file_id, name=logical_name, physical_name=physical_name))
        database.filegroups = list(groups.values())
        return database

    def list_instance_physical_files(self) -> list[str]:
        rows = self._fetch_all(_INSTANCE_FILES_QUERY, context="list instance files")
        return [row[0] for row in rows]

    def rename_database(self, name: str, new_name: str) -> None:
        self._execute(
            f"ALTER DATABASE {quote_identifier(name)} MODIFY NAME = {quote_identifier(new_name)}",
            context=f"rename database {name}",
        )

    def rename_filegroup(self, database: str, name: str, new_name: str) -> None:
        self._execute(
            f"ALTER DATABASE {quote_identifier(database)} "
            f"MODIFY FILEGROUP {quote_identifier(name)} NAME = {quote_identifier(new_name)}",
            context=f"rename filegroup {name}",
        )

    def rename_logical_file(self, database: str, name: str, new_name: str) -> None:
        self._execute(
            f"ALTER DATABASE {quote_identifier(database)} "
            f"MODIFY FILE (NAME = {quote_literal(name)}, NEWNAME = {quote_literal(new_name)})",
            context=f"rename logical file {name}",
        )

    def set_physical_file_name(self, database: str, logical_name: str, path: str) -> None:
        self._execute(
            f"ALTER DATABASE {quote_identifier(database)} "
            f"MODIFY FILE (NAME = {quote_literal(logical_name)}, FILENAME = {quote_literal(path)})",
            context=f"change physical name of {logical_name}",
        )

    def set_offline(self, database: str, force: bool = False) -> None:
        statement = f"ALTER DATABASE {quote_identifier(database)} SET OFFLINE"
        if force:
            statement += " WITH ROLLBACK IMMEDIATE"
        self._execute(statement, context=f"set {database} offline")

    def set_online(self, database: str) -> None:
        self._execute(
            f"ALTER DATABASE {quote_identifier(database)} SET ONLINE",
            context=f"set {database} online",
        )

    def _connect(self) -> pyodbc.Connection:
        return pyodbc.connect(self._connection_string, autocommit=True, timeout=self._timeout)

    def _fetch_all(self, query: str, context: str) -> list[Any]:
        logger.debug("Query (%s): %s", context, query)
        try:
            with closing(self._connect()) as conn:
                return conn.cursor().execute(query).fetchall()
        except pyodbc.Error as exc:
            raise CatalogError(f"Failed to {context}: {exc}") from exc

    def _fetch_one(self, query: str, context: str) -> Any:
        rows = self._fetch_all(query, context)
        return rows[0] if rows else None

    def _execute(self, statement: str, context: str) -> None:
        logger.debug("Statement (%s): %s", context, statement)
        try:
            with closing(self._connect()) as conn:
                conn.cursor().execute(statement)
        except pyodbc.Error as exc:
            raise CatalogError(f"Failed to {context}: {exc}") from exc

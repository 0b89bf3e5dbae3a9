from __future__ import annotations

from typing import Any

from dbrename.adapters.file_mover import SubprocessFileMover
from dbrename.adapters.mssql_catalog import PyodbcCatalog, build_connection_string
from dbrename.adapters.sqlite_audit_log import SQLiteAuditLog
from dbrename.settings import (
    POWERSHELL_EXECUTABLE,
    REMOTE_PASSWORD,
    REMOTE_USERNAME,
    RENAME_AUDIT_DB,
    SQL_CONNECT_TIMEOUT,
    SQL_ODBC_DRIVER,
    SQL_PASSWORD,
    SQL_TRUST_SERVER_CERTIFICATE,
    SQL_USERNAME,
    get_secret,
)
from dbrename.services.rename_service import RenameService


def build_services(sql_instance: str, audit_path: str | None = None) -> dict[str, Any]:
    connection_string = build_connection_string(
        server=sql_instance,
        driver=SQL_ODBC_DRIVER,
        username=SQL_USERNAME,
        password=get_secret("sql_password", SQL_PASSWORD) if SQL_USERNAME else "",
        trust_server_certificate=SQL_TRUST_SERVER_CERTIFICATE,
        timeout=SQL_CONNECT_TIMEOUT,
    )
    catalog = PyodbcCatalog(connection_string, timeout=SQL_CONNECT_TIMEOUT)
    file_mover = SubprocessFileMover(
        powershell=POWERSHELL_EXECUTABLE,
        username=REMOTE_USERNAME,
        password=get_secret("remote_password", REMOTE_PASSWORD) if REMOTE_USERNAME else "",
    )
    audit_path = RENAME_AUDIT_DB if audit_path is None else audit_path
    audit_log = SQLiteAuditLog(audit_path) if audit_path else None
    return {
        "rename_service": RenameService(catalog, file_mover, audit_log),
        "catalog": catalog,
        "file_mover": file_mover,
        "audit_log": audit_log,
    }

from __future__ import annotations

import os

import keyring
from keyring.errors import KeyringError

KEYRING_SERVICE = "dbrename"

SQL_INSTANCE = os.getenv("SQL_INSTANCE", "localhost")
SQL_USERNAME = os.getenv("SQL_USERNAME", "")
SQL_PASSWORD = os.getenv("SQL_PASSWORD", "")
SQL_ODBC_DRIVER = os.getenv("SQL_ODBC_DRIVER", "ODBC Driver 18 for SQL Server")
SQL_CONNECT_TIMEOUT = int(os.getenv("SQL_CONNECT_TIMEOUT", "15"))
SQL_TRUST_SERVER_CERTIFICATE = os.getenv("SQL_TRUST_SERVER_CERTIFICATE", "true").lower() in {
    "1",
    "true",
    "yes",
}

REMOTE_USERNAME = os.getenv("REMOTE_USERNAME", "")
REMOTE_PASSWORD = os.getenv("REMOTE_PASSWORD", "")
POWERSHELL_EXECUTABLE = os.getenv("POWERSHELL_EXECUTABLE", "powershell")

RENAME_AUDIT_DB = os.getenv("RENAME_AUDIT_DB", "")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def get_secret(key: str, value: str = "") -> str:
    """Return `value` when set, otherwise the keyring entry stored for `key`."""
    if value:
        return value
    try:
        return keyring.get_password(KEYRING_SERVICE, key) or ""
    except KeyringError:
        return ""

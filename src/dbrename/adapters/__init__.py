from .file_mover import SubprocessFileMover
from .sqlite_audit_log import SQLiteAuditLog

__all__ = ["SQLiteAuditLog", "SubprocessFileMover"]

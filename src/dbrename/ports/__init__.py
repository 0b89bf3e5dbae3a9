from .audit_log_port import AuditLogPort
from .catalog_port import CatalogPort
from .file_mover_port import FileMoverPort

__all__ = ["AuditLogPort", "CatalogPort", "FileMoverPort"]

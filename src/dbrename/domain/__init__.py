from .errors import CatalogError, FileMoveError, RenameValidationError
from .models import (
    Database,
    FileGroup,
    LogicalFile,
    PendingRename,
    RenameMaps,
    RenameRequest,
    RenameResult,
    RenameTemplates,
)
from .rename_logic import resolve_unique_name, strip_fragments, substitute

__all__ = [
    "CatalogError",
    "Database",
    "FileGroup",
    "FileMoveError",
    "LogicalFile",
    "PendingRename",
    "RenameMaps",
    "RenameRequest",
    "RenameResult",
    "RenameTemplates",
    "RenameValidationError",
    "resolve_unique_name",
    "strip_fragments",
    "substitute",
]

class RenameValidationError(ValueError):
    """Raised before any database is touched when a request cannot run."""


class CatalogError(RuntimeError):
    """Raised by catalog adapters when a query or ALTER statement fails."""


class FileMoveError(RuntimeError):
    """Raised by file movers when a physical file cannot be renamed."""

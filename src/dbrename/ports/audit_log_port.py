from __future__ import annotations

from typing import Protocol, runtime_checkable

from dbrename.domain.models import RenameResult


@runtime_checkable
class AuditLogPort(Protocol):
    def save_rename_result(self, result: RenameResult, recorded_at: str) -> None:
        """Persist the outcome of one database rename."""

    def list_rename_results(self, database: str | None = None) -> list[RenameResult]:
        """Return recorded outcomes, newest first, optionally for one database."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from dbrename.domain.models import PendingRename


@runtime_checkable
class FileMoverPort(Protocol):
    def plan(self, computer_name: str, source: str, destination: str) -> PendingRename:
        """Return the move annotated with where and how it will run."""

    def move(self, pending: PendingRename) -> None:
        """Rename the physical file on the host that owns it."""

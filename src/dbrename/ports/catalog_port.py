from __future__ import annotations

from typing import Protocol, runtime_checkable

from dbrename.domain.models import Database, InstanceInfo


@runtime_checkable
class CatalogPort(Protocol):
    def get_instance_info(self) -> InstanceInfo:
        """Return the host, instance and connection names of the server."""

    def list_databases(self) -> list[Database]:
        """Return every database on the instance, without file inventory."""

    def get_database(self, name: str) -> Database:
        """Return one database with its filegroups, data files and log files."""

    def list_instance_physical_files(self) -> list[str]:
        """Return the physical path of every file of every database."""

    def rename_database(self, name: str, new_name: str) -> None:
        """Rename a database."""

    def rename_filegroup(self, database: str, name: str, new_name: str) -> None:
        """Rename a filegroup inside a database."""

    def rename_logical_file(self, database: str, name: str, new_name: str) -> None:
        """Rename the logical name of a data or log file."""

    def set_physical_file_name(self, database: str, logical_name: str, path: str) -> None:
        """Point a logical file at a new physical path (effective on next start)."""

    def set_offline(self, database: str, force: bool = False) -> None:
        """Take a database offline, rolling back open transactions when forced."""

    def set_online(self, database: str) -> None:
        """Bring a database back online."""

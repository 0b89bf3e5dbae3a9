from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable

from dbrename.domain.errors import CatalogError, FileMoveError, RenameValidationError
from dbrename.domain.models import (
    FULL,
    PARTIAL,
    Database,
    FileGroup,
    InstanceInfo,
    LogicalFile,
    PendingRename,
    RenameMaps,
    RenameRequest,
    RenameResult,
)
from dbrename.domain.rename_logic import (
    DATE,
    DBN,
    FGN,
    FNN,
    FT,
    LGN,
    PRIMARY_FILEGROUP,
    DisambiguationCounter,
    NameRegistry,
    current_date_token,
    file_type_tag,
    format_renames,
    join_physical_name,
    prune_identity,
    resolve_unique_name,
    split_physical_name,
    strip_fragments,
    substitute,
)
from dbrename.ports.audit_log_port import AuditLogPort
from dbrename.ports.catalog_port import CatalogPort
from dbrename.ports.file_mover_port import FileMoverPort
from dbrename.services.time_utils import local_today, now_local_iso

logger = logging.getLogger(__name__)


@dataclass
class _DatabasePass:
    """Everything one database accumulates while its levels are processed."""

    original_name: str
    database: Database
    computer_name: str
    database_registry: NameRegistry = field(default_factory=NameRegistry)
    maps: RenameMaps = field(default_factory=RenameMaps)
    pending: list[PendingRename] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)
    failed: bool = False
    partial: bool = False

    def fail(self, note: str) -> None:
        self.failed = True
        self.partial = True
        self.notes.append(note)


def _original_name(mapping: dict[str, str], current: str | None) -> str | None:
    if current is None:
        return None
    for old, new in mapping.items():
        if new == current:
            return old
    return current


class RenameService:
    def __init__(
        self,
        catalog: CatalogPort,
        file_mover: FileMoverPort,
        audit_log: AuditLogPort | None = None,
        today: Callable[[], date] | None = None,
    ) -> None:
        self._catalog = catalog
        self._file_mover = file_mover
        self._audit_log = audit_log
        self._today = today or local_today

    def validate(self, request: RenameRequest) -> None:
        if request.templates.is_empty():
            raise RenameValidationError(
                "at least one template required: DatabaseName, FileGroupName, LogicalName or FileName"
            )
        if not (request.databases or request.exclude_databases or request.all_databases):
            raise RenameValidationError("specify databases, excluded databases or all databases")
        if request.all_databases and request.databases:
            raise RenameValidationError("all databases cannot be combined with a database list")
        if (request.set_offline or request.move) and not request.templates.file_name:
            raise RenameValidationError("SetOffline and Move require a FileName template")

    def select_databases(self, request: RenameRequest) -> list[Database]:
        databases = self._catalog.list_databases()
        if request.databases and not request.all_databases:
            by_name = {database.name.casefold(): database for database in databases}
            candidates = []
            for name in request.databases:
                database = by_name.get(name.casefold())
                if database is None:
                    logger.warning("Database %s not found on the instance", name)
                    continue
                candidates.append(database)
        else:
            candidates = databases

        excluded = {name.casefold() for name in request.exclude_databases}
        selected: list[Database] = []
        for database in candidates:
            if database.name.casefold() in excluded:
                continue
            reason = _skip_reason(database)
            if reason is not None:
                logger.warning("Skipping database %s: %s", database.name, reason)
                continue
            selected.append(database)
        return selected

    def rename(self, request: RenameRequest) -> list[RenameResult]:
        self.validate(request)
        instance = self._catalog.get_instance_info()
        date_token = current_date_token(self._today())

        database_registry = NameRegistry(database.name for database in self._catalog.list_databases())
        results: list[RenameResult] = []
        for database in self.select_databases(request):
            result = self._rename_one(instance, database.name, request, date_token, database_registry)
            if self._audit_log is not None and not request.preview:
                self._record(result)
            results.append(result)
        return results

    def _record(self, result: RenameResult) -> None:
        try:
            self._audit_log.save_rename_result(result, now_local_iso())
        except RuntimeError as exc:
            logger.error("Failed to record rename result for %s: %s", result.database, exc)
            result.notes.append(f"Rename result was not recorded in the audit log: {exc}")

    def _rename_one(
        self,
        instance: InstanceInfo,
        name: str,
        request: RenameRequest,
        date_token: str,
        database_registry: NameRegistry,
    ) -> RenameResult:
        try:
            database = self._catalog.get_database(name)
        except CatalogError as exc:
            logger.error("Failed to read database %s: %s", name, exc)
            state = _DatabasePass(name, Database(name=name), instance.computer_name)
            state.fail(f"Failed to read database {name}: {exc}")
            return self._build_result(instance, state, request)
        state = _DatabasePass(name, database, instance.computer_name, database_registry)

        templates = request.templates
        steps: list[tuple[str, Callable[..., None]]] = [
            (templates.database_name, self._rename_database_name),
            (templates.filegroup_name, self._rename_filegroups),
            (templates.logical_name, self._rename_logical_files),
            (templates.file_name, self._rename_physical_files),
        ]
        for template, step in steps:
            if not template:
                continue
            step(state, template, request, date_token)
            if state.failed:
                logger.warning(
                    "Remaining renames for database %s were not attempted", state.original_name
                )
                break

        if not state.failed and not request.preview and state.pending:
            self._relocate_files(state, request)
        return self._build_result(instance, state, request)

    def _rename_database_name(
        self,
        state: _DatabasePass,
        template: str,
        request: RenameRequest,
        date_token: str,
    ) -> None:
        database = state.database
        registry = state.database_registry
        candidate = substitute(template, {DBN: database.name, DATE: date_token})
        final = resolve_unique_name(candidate, database.name, registry, DisambiguationCounter())
        if final == database.name:
            logger.info("Database %s keeps its name", database.name)
            return

        action = f"rename database {database.name} to {final}"
        if not self._apply(state, request, action, self._catalog.rename_database, database.name, final):
            return
        registry.replace(database.name, final)
        state.maps.database[database.name] = final
        database.name = final

    def _rename_filegroups(
        self,
        state: _DatabasePass,
        template: str,
        request: RenameRequest,
        date_token: str,
    ) -> None:
        database = state.database
        registry = NameRegistry(group.name for group in database.filegroups)
        counter = DisambiguationCounter()
        for group in database.filegroups:
            if group.name.upper() == PRIMARY_FILEGROUP:
                continue
            own_name = group.name
            if request.replace_before:
                own_name = strip_fragments(own_name, [state.original_name])
            candidate = substitute(template, {DBN: database.name, DATE: date_token, FGN: own_name})
            final = resolve_unique_name(candidate, group.name, registry, counter)
            if final == group.name:
                continue

            action = f"rename filegroup {group.name} to {final} in database {database.name}"
            if not self._apply(
                state, request, action, self._catalog.rename_filegroup, database.name, group.name, final
            ):
                return
            registry.replace(group.name, final)
            state.maps.filegroup[group.name] = final
            group.name = final

    def _rename_logical_files(
        self,
        state: _DatabasePass,
        template: str,
        request: RenameRequest,
        date_token: str,
    ) -> None:
        database = state.database
        registry = NameRegistry(logical.name for logical in _all_files(database))
        counter = DisambiguationCounter()
        for group, logical in _files_in_order(database):
            group_name = group.name if group is not None else ""
            own_name = logical.name
            if request.replace_before:
                own_name = strip_fragments(
                    own_name,
                    [
                        state.original_name,
                        _original_name(state.maps.filegroup, group.name if group is not None else None),
                    ],
                )
            candidate = substitute(
                template,
                {
                    DBN: database.name,
                    DATE: date_token,
                    FGN: group_name,
                    FT: file_type_tag(group.group_type if group is not None else None, logical.is_log),
                    LGN: own_name,
                },
            )
            final = resolve_unique_name(candidate, logical.name, registry, counter)
            if final == logical.name:
                continue

            action = f"rename logical file {logical.name} to {final} in database {database.name}"
            if not self._apply(
                state, request, action, self._catalog.rename_logical_file, database.name, logical.name, final
            ):
                return
            registry.replace(logical.name, final)
            state.maps.logical_file[logical.name] = final
            logical.name = final

    def _rename_physical_files(
        self,
        state: _DatabasePass,
        template: str,
        request: RenameRequest,
        date_token: str,
    ) -> None:
        database = state.database
        try:
            registry = NameRegistry(self._catalog.list_instance_physical_files())
        except CatalogError as exc:
            logger.error("Failed to list physical files of the instance: %s", exc)
            state.fail(f"Failed to list physical files of the instance: {exc}")
            return
        counter = DisambiguationCounter()
        for group, logical in _files_in_order(database):
            directory, stem, extension = split_physical_name(logical.physical_name)
            if request.replace_before:
                stem = strip_fragments(
                    stem,
                    [
                        state.original_name,
                        _original_name(state.maps.filegroup, group.name if group is not None else None),
                        _original_name(state.maps.logical_file, logical.name),
                    ],
                )
            new_stem = substitute(
                template,
                {
                    DBN: database.name,
                    DATE: date_token,
                    FGN: group.name if group is not None else "",
                    FT: file_type_tag(group.group_type if group is not None else None, logical.is_log),
                    LGN: logical.name,
                    FNN: stem,
                },
            )
            candidate = join_physical_name(directory, new_stem)
            final = resolve_unique_name(
                candidate, logical.physical_name, registry, counter, suffix=extension
            )
            if final == logical.physical_name:
                continue

            action = f"move file {logical.physical_name} to {final} in database {database.name}"
            if not self._apply(
                state,
                request,
                action,
                self._catalog.set_physical_file_name,
                database.name,
                logical.name,
                final,
            ):
                return
            registry.replace(logical.physical_name, final)
            state.maps.physical_file[logical.physical_name] = final
            state.pending.append(
                self._file_mover.plan(state.computer_name, logical.physical_name, final)
            )
            logical.physical_name = final

    def _relocate_files(self, state: _DatabasePass, request: RenameRequest) -> None:
        name = state.database.name
        if not (request.set_offline or request.move):
            state.partial = True
            state.notes.append(
                f"Database {name} must be taken offline and its files renamed before it is restarted"
            )
            return

        try:
            self._catalog.set_offline(name, force=request.force)
        except CatalogError as exc:
            logger.error("Failed to set database %s offline: %s", name, exc)
            state.fail(f"Failed to set database {name} offline: {exc}")
            return
        logger.info("Database %s is offline", name)

        if not request.move:
            state.partial = True
            state.notes.append(
                f"Database {name} is offline; rename the pending files and bring it online"
            )
            return

        remaining: list[PendingRename] = []
        for pending in state.pending:
            try:
                self._file_mover.move(pending)
            except FileMoveError as exc:
                logger.error("Failed to move %s to %s: %s", pending.source, pending.destination, exc)
                state.partial = True
                state.notes.append(f"Failed to move {pending.source} to {pending.destination}: {exc}")
                remaining.append(pending)
                continue
            logger.info("Moved %s to %s via %s", pending.source, pending.destination, pending.target)
        state.pending = remaining

        try:
            self._catalog.set_online(name)
        except CatalogError as exc:
            logger.error("Failed to bring database %s online: %s", name, exc)
            state.fail(f"Failed to bring database {name} online: {exc}")
            return
        logger.info("Database %s is online", name)

    def _apply(
        self,
        state: _DatabasePass,
        request: RenameRequest,
        action: str,
        call: Callable[..., Any],
        *args: Any,
    ) -> bool:
        if request.preview:
            logger.info("Preview: would %s", action)
            return True
        try:
            call(*args)
        except CatalogError as exc:
            logger.error("Failed to %s: %s", action, exc)
            state.fail(f"Failed to {action}: {exc}")
            return False
        logger.info("Applied: %s", action)
        return True

    @staticmethod
    def _build_result(
        instance: InstanceInfo, state: _DatabasePass, request: RenameRequest
    ) -> RenameResult:
        maps = RenameMaps(
            database=prune_identity(state.maps.database),
            filegroup=prune_identity(state.maps.filegroup),
            logical_file=prune_identity(state.maps.logical_file),
            physical_file=prune_identity(state.maps.physical_file),
        )
        partial = state.partial or (not request.preview and bool(state.pending))
        return RenameResult(
            computer_name=instance.computer_name,
            instance_name=instance.instance_name,
            sql_instance=instance.sql_instance,
            database=state.database.name,
            database_renames=format_renames(maps.database),
            filegroup_renames=format_renames(maps.filegroup),
            logical_name_renames=format_renames(maps.logical_file),
            file_name_renames=format_renames(maps.physical_file),
            pending_renames=list(state.pending),
            status=PARTIAL if partial else FULL,
            notes=list(state.notes),
            maps=maps,
        )


def _skip_reason(database: Database) -> str | None:
    if database.is_system:
        return "system database"
    if database.is_snapshot:
        return "database snapshot"
    if database.is_mirrored:
        return "database is mirrored"
    if database.is_ag_member:
        return "database is part of an availability group"
    if not database.is_accessible:
        return "database is not accessible"
    return None


def _all_files(database: Database) -> list[LogicalFile]:
    return database.data_files() + list(database.log_files)


def _files_in_order(database: Database) -> list[tuple[FileGroup | None, LogicalFile]]:
    ordered: list[tuple[FileGroup | None, LogicalFile]] = [
        (group, logical) for group in database.filegroups for logical in group.files
    ]
    ordered.extend((None, logical) for logical in database.log_files)
    return ordered

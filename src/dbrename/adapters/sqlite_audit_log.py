from __future__ import annotations

import json
import sqlite3
from dataclasses import asdict
from uuid import uuid4

from dbrename.domain.models import PendingRename, RenameMaps, RenameResult
from dbrename.domain.rename_logic import format_renames
from dbrename.ports.audit_log_port import AuditLogPort

_LEVELS = ("database", "filegroup", "logical_file", "physical_file")


class SQLiteAuditLog(AuditLogPort):
    def __init__(self, sqlite_path: str) -> None:
        self._sqlite_path = sqlite_path
        self._ensure_schema()

    def save_rename_result(self, result: RenameResult, recorded_at: str) -> None:
        run_id = str(uuid4())
        ops = [
            (run_id, level, old_name, new_name, index)
            for level in _LEVELS
            for index, (old_name, new_name) in enumerate(getattr(result.maps, level).items())
        ]
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO rename_results(
                        run_id, recorded_at, computer_name, instance_name, sql_instance,
                        database_name, status, notes_json, pending_json
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        run_id,
                        recorded_at,
                        result.computer_name,
                        result.instance_name,
                        result.sql_instance,
                        result.database,
                        result.status,
                        json.dumps(result.notes),
                        json.dumps([asdict(pending) for pending in result.pending_renames]),
                    ),
                )
                conn.executemany(
                    """
                    INSERT INTO rename_ops(run_id, level, old_name, new_name, op_index)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    ops,
                )
        except sqlite3.Error as exc:
            raise RuntimeError("Failed to save rename result") from exc

    def list_rename_results(self, database: str | None = None) -> list[RenameResult]:
        query = """
            SELECT run_id, computer_name, instance_name, sql_instance,
                   database_name, status, notes_json, pending_json
            FROM rename_results
        """
        params: tuple[str, ...] = ()
        if database is not None:
            query += " WHERE database_name = ?"
            params = (database,)
        query += " ORDER BY recorded_at DESC, rowid DESC"
        try:
            with self._connect() as conn:
                rows = conn.execute(query, params).fetchall()
                results = []
                for row in rows:
                    maps = RenameMaps()
                    for level, old_name, new_name in conn.execute(
                        """
                        SELECT level, old_name, new_name
                        FROM rename_ops
                        WHERE run_id = ?
                        ORDER BY op_index ASC
                        """,
                        (row[0],),
                    ).fetchall():
                        getattr(maps, level)[old_name] = new_name
                    results.append(
                        RenameResult(
                            computer_name=row[1],
                            instance_name=row[2],
                            sql_instance=row[3],
                            database=row[4],
                            database_renames=format_renames(maps.database),
                            filegroup_renames=format_renames(maps.filegroup),
                            logical_name_renames=format_renames(maps.logical_file),
                            file_name_renames=format_renames(maps.physical_file),
                            pending_renames=[
                                PendingRename(**item) for item in json.loads(row[7] or "[]")
                            ],
                            status=row[5],
                            notes=json.loads(row[6] or "[]"),
                            maps=maps,
                        )
                    )
            return results
        except sqlite3.Error as exc:
            raise RuntimeError("Failed to list rename results") from exc

    def _ensure_schema(self) -> None:
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS rename_results(
                        run_id TEXT PRIMARY KEY,
                        recorded_at TEXT,
                        computer_name TEXT,
                        instance_name TEXT,
                        sql_instance TEXT,
                        database_name TEXT,
                        status TEXT,
                        notes_json TEXT,
                        pending_json TEXT
                    )
                    """
                )
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS rename_ops(
                        run_id TEXT,
                        level TEXT,
                        old_name TEXT,
                        new_name TEXT,
                        op_index INTEGER
                    )
                    """
                )
        except sqlite3.Error as exc:
            raise RuntimeError("Failed to initialize audit log schema") from exc

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self._sqlite_path)

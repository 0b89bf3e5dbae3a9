from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict

from dotenv import load_dotenv

load_dotenv(override=False)

from dbrename.container import build_services
from dbrename.domain.errors import CatalogError, RenameValidationError
from dbrename.domain.models import PARTIAL, RenameRequest, RenameResult, RenameTemplates
from dbrename.settings import LOG_LEVEL, SQL_INSTANCE


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dbrename",
        description="Rename SQL Server databases, filegroups, logical names and physical files from templates.",
        epilog=(
            "Placeholders: <DBN> database, <DATE> yyyyMMdd, <FGN> filegroup, <FT> file type, "
            "<LGN> logical name, <FNN> file name without directory or extension."
        ),
    )
    parser.add_argument("--sql-instance", default=SQL_INSTANCE, help="Target instance (default: SQL_INSTANCE)")
    parser.add_argument("--database", action="append", default=[], help="Database to rename (repeatable)")
    parser.add_argument(
        "--exclude-database", action="append", default=[], help="Database to leave untouched (repeatable)"
    )
    parser.add_argument("--all-databases", action="store_true", help="Process every user database")
    parser.add_argument("--database-name", default="", help="Template for the database name")
    parser.add_argument("--filegroup-name", default="", help="Template for filegroup names")
    parser.add_argument("--logical-name", default="", help="Template for logical file names")
    parser.add_argument("--file-name", default="", help="Template for physical file names")
    parser.add_argument(
        "--replace-before",
        action="store_true",
        help="Strip already renamed parent names from current names before templating",
    )
    parser.add_argument("--preview", action="store_true", help="Report the renames without applying them")
    parser.add_argument("--set-offline", action="store_true", help="Take the database offline after file renames")
    parser.add_argument("--move", action="store_true", help="Rename physical files and bring the database online")
    parser.add_argument("--force", action="store_true", help="Roll back open transactions when going offline")
    parser.add_argument("--audit-db", default=None, help="SQLite file recording applied renames")
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    return parser


def request_from_args(args: argparse.Namespace) -> RenameRequest:
    return RenameRequest(
        templates=RenameTemplates(
            database_name=args.database_name,
            filegroup_name=args.filegroup_name,
            logical_name=args.logical_name,
            file_name=args.file_name,
        ),
        databases=list(args.database),
        exclude_databases=list(args.exclude_database),
        all_databases=args.all_databases,
        replace_before=args.replace_before,
        preview=args.preview,
        move=args.move,
        set_offline=args.set_offline or args.move,
        force=args.force,
    )


def render_result(result: RenameResult) -> str:
    lines = [
        f"ComputerName       : {result.computer_name}",
        f"InstanceName       : {result.instance_name}",
        f"SqlInstance        : {result.sql_instance}",
        f"Database           : {result.database}",
        f"DatabaseRenames    : {result.database_renames}",
        f"FileGroupsRenames  : {result.filegroup_renames}",
        f"LogicalNameRenames : {result.logical_name_renames}",
        f"FileNameRenames    : {result.file_name_renames}",
        f"PendingRenames     : {len(result.pending_renames)}",
    ]
    for pending in result.pending_renames:
        lines.append(f"    [{pending.target}] {pending.source} --> {pending.destination}")
    lines.append(f"Status             : {result.status}")
    for note in result.notes:
        lines.append(f"Note               : {note}")
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=LOG_LEVEL.upper(),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )
    request = request_from_args(args)
    services = build_services(args.sql_instance, audit_path=args.audit_db)
    try:
        results = services["rename_service"].rename(request)
    except RenameValidationError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    except CatalogError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 3

    if args.json:
        print(json.dumps([asdict(result) for result in results], indent=2))
    else:
        print("\n\n".join(render_result(result) for result in results))
    return 1 if any(result.status == PARTIAL for result in results) else 0


if __name__ == "__main__":
    raise SystemExit(main())

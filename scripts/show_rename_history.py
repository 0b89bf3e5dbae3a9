from __future__ import annotations

import argparse
import os
from pathlib import Path

from dotenv import load_dotenv

_REPO_ROOT = Path(__file__).resolve().parents[1]
load_dotenv(_REPO_ROOT / ".env", override=False)

from dbrename.adapters.sqlite_audit_log import SQLiteAuditLog
from dbrename.cli import render_result


def main() -> None:
    parser = argparse.ArgumentParser(description="Print renames recorded in the audit log.")
    parser.add_argument("--audit-db", default=os.getenv("RENAME_AUDIT_DB", "./dbrename.db"))
    parser.add_argument("--database", default=None, help="Only show renames of the database with exactly this resulting name")
    args = parser.parse_args()

    audit_log = SQLiteAuditLog(args.audit_db)
    results = audit_log.list_rename_results(args.database)
    if not results:
        print("No renames recorded.")
        return
    print("\n\n".join(render_result(result) for result in results))


if __name__ == "__main__":
    main()

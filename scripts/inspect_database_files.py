from __future__ import annotations

import argparse
import os
from pathlib import Path

from dotenv import load_dotenv

_REPO_ROOT = Path(__file__).resolve().parents[1]
load_dotenv(_REPO_ROOT / ".env", override=False)

from dbrename.container import build_services
from dbrename.domain.rename_logic import file_type_tag


def main() -> None:
    parser = argparse.ArgumentParser(description="Print filegroups and files of instance databases.")
    parser.add_argument("--sql-instance", default=os.getenv("SQL_INSTANCE", "localhost"))
    parser.add_argument("--database", action="append", default=[], help="Limit to these databases")
    args = parser.parse_args()

    catalog = build_services(args.sql_instance, audit_path="")["catalog"]
    info = catalog.get_instance_info()
    print("Instance:", info.sql_instance, f"({info.computer_name}\\{info.instance_name})")

    wanted = {name.casefold() for name in args.database}
    for database in catalog.list_databases():
        if wanted and database.name.casefold() not in wanted:
            continue
        print(f"\n{database.name} [{database.state}]")
        if database.is_system or not database.is_accessible:
            continue
        detail = catalog.get_database(database.name)
        for group in detail.filegroups:
            print(f"  {group.name} ({group.group_type})")
            for logical in group.files:
                print(f"    {file_type_tag(group.group_type)} {logical.name}: {logical.physical_name}")
        for logical in detail.log_files:
            print(f"    LOG {logical.name}: {logical.physical_name}")


if __name__ == "__main__":
    main()

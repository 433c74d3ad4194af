"""
Write the PM machine list to an .xlsx file.

Usage:
    python scripts/export_pm_machines.py <output.xlsx> [--search QUERY]
"""
import sys
import os
import argparse

# Add parent directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from pm_tracker.config import settings
from pm_tracker.db import Database
from pm_tracker.services.exporter import PmExporter
from pm_tracker.services.machines import PmMachineStore


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Export PM machines to Excel")
    parser.add_argument("output")
    parser.add_argument("--search", default=None, help="filter on pengelola, periode PM or status")
    args = parser.parse_args(argv)

    database = Database.from_settings(settings)
    db = database.session()
    try:
        machines = PmMachineStore(db).search(args.search)
        content = PmExporter(sheet_name=settings.export_sheet_name).export(machines)
    finally:
        db.close()
        database.dispose()

    with open(args.output, "wb") as f:
        f.write(content)
    print(f"[OK] Exported {len(machines)} machines to {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

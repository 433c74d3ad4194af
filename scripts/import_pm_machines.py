"""
Import PM machines from a spreadsheet straight into the configured database.

Rows whose Id Msn already exists update that machine; other rows create a new
machine with the next number. Bad rows are reported and skipped.

Usage:
    python scripts/import_pm_machines.py <path_to_xlsx_or_csv>

Accepted headers (either form per column, the first one wins when both are filled):
    - Id Msn / idMsn (required)
    - Alamat / alamat (required)
    - Pengelola / pengelola (required)
    - Periode PM / periodePM
    - Tgl Selesai PM / tglSelesaiPM
    - Status / status (Outstanding or Done, default Outstanding)
    - Teknisi / teknisi (required)
"""
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from pm_tracker.config import settings
from pm_tracker.db import Database
from pm_tracker.errors import InvalidImportFileError
from pm_tracker.services.importer import PmImporter
from pm_tracker.services.machines import PmMachineStore


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if len(argv) != 1:
        print(__doc__)
        return 1
    path = argv[0]
    if not os.path.exists(path):
        print(f"ERROR: File not found: {path}")
        return 1

    with open(path, "rb") as f:
        content = f.read()

    database = Database.from_settings(settings)
    database.create_all()
    db = database.session()
    try:
        summary = PmImporter(PmMachineStore(db)).import_file(content, os.path.basename(path))
    except InvalidImportFileError as e:
        print(f"ERROR: {e.message}")
        return 1
    finally:
        db.close()
        database.dispose()

    print(summary.message)
    print(f"  created: {summary.created}")
    print(f"  updated: {summary.updated}")
    if summary.errors:
        print(f"  errors ({len(summary.errors)}):")
        for error in summary.errors:
            print(f"    - {error}")
    return 0 if not summary.errors else 2


if __name__ == "__main__":
    sys.exit(main())

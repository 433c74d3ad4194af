"""
Create a login for the PM tracker, or reset the password of an existing one.

Usage:
    python scripts/create_user.py <username> <password> [--first-name X] [--last-name Y]
"""
import sys
import os
import argparse

# Add parent directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from pm_tracker.auth.security import create_user
from pm_tracker.config import settings
from pm_tracker.db import Database


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create or reset a PM tracker login")
    parser.add_argument("username")
    parser.add_argument("password")
    parser.add_argument("--first-name", default=None)
    parser.add_argument("--last-name", default=None)
    args = parser.parse_args(argv)

    if len(args.password) < 8:
        print("ERROR: password must be at least 8 characters")
        return 1

    database = Database.from_settings(settings)
    database.create_all()
    db = database.session()
    try:
        user = create_user(db, args.username, args.password, args.first_name, args.last_name)
        print(f"[OK] User ready: {user.username} ({user.id})")
    finally:
        db.close()
        database.dispose()
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""Storefront Orders database management CLI.

Creates and drops the ordering schema when a SQL provider is configured
(``PROTEAN_ENV=production`` points the default database at ``DATABASE_URL``).

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
"""

import argparse
import sys


def setup_databases():
    """Create the ordering tables."""
    from ordering.domain import ordering
    from ordering.utils.db import setup_db

    print("Initializing ordering domain...")
    ordering.init()
    print("Creating ordering database schema...")
    touched = setup_db(ordering)
    if touched:
        print(f"  schema ready on: {', '.join(touched)}")
    else:
        print("  no SQL provider configured, nothing to create.")
    print("Done.")


def drop_databases():
    """Drop the ordering tables."""
    from ordering.domain import ordering
    from ordering.utils.db import drop_db

    print("Initializing ordering domain...")
    ordering.init()
    print("Dropping ordering database schema...")
    touched = drop_db(ordering)
    if touched:
        print(f"  schema dropped on: {', '.join(touched)}")
    else:
        print("  no SQL provider configured, nothing to drop.")
    print("Done.")


def main():
    parser = argparse.ArgumentParser(description="Storefront Orders database management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_databases()
    elif args.command == "drop-db":
        drop_databases()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()

"""Drop and recreate the serving-store schema.

Destructive: every region, workout and seed-run marker is lost. Run
scripts/apply_migrations.py afterwards to recreate the tables.
"""

import argparse
import os
import sys
from pathlib import Path

import psycopg2
from dotenv import load_dotenv

env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        "--yes",
        action="store_true",
        help="Confirm that the schema should be dropped.",
    )
    args = parser.parse_args()

    pg_dsn = os.getenv("PG_DSN")
    pg_schema = os.getenv("PG_SCHEMA")
    if not pg_dsn or not pg_schema:
        print("ERROR: PG_DSN and PG_SCHEMA must be set", file=sys.stderr)
        return 1

    if not args.yes:
        print(f"Refusing to drop schema '{pg_schema}' without --yes", file=sys.stderr)
        return 1

    with psycopg2.connect(pg_dsn) as conn:
        conn.autocommit = True
        with conn.cursor() as cur:
            cur.execute(f'DROP SCHEMA IF EXISTS "{pg_schema}" CASCADE')
            cur.execute(f'CREATE SCHEMA "{pg_schema}"')

    print(f"Schema '{pg_schema}' reset.")
    return 0


if __name__ == "__main__":
    sys.exit(main())

import argparse
import os
from pathlib import Path

from alembic import command
from alembic.config import Config
from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parent.parent


def _resolve_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Apply Alembic migrations for the serving-store tables."
    )
    parser.add_argument(
        "--revision",
        default="head",
        help="Target revision. Defaults to head.",
    )
    parser.add_argument(
        "--sql",
        action="store_true",
        help="Print the SQL instead of running it (offline mode).",
    )
    return parser.parse_args()


def apply_migrations(*, revision: str, sql: bool = False) -> None:
    load_dotenv(dotenv_path=ROOT_DIR / ".env")
    if not os.getenv("PG_DSN"):
        raise ValueError("Postgres DSN must be supplied via PG_DSN.")
    if not os.getenv("PG_SCHEMA"):
        raise ValueError("Target schema must be supplied via PG_SCHEMA.")

    config = Config(str(ROOT_DIR / "alembic.ini"))
    config.set_main_option("script_location", str(ROOT_DIR / "alembic"))

    print(f"Upgrading schema '{os.getenv('PG_SCHEMA')}' to {revision}...")
    command.upgrade(config, revision, sql=sql)
    print("Migrations applied successfully.")


def main() -> None:
    args = _resolve_args()
    apply_migrations(revision=args.revision, sql=args.sql)


if __name__ == "__main__":
    main()

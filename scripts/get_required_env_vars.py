#!/usr/bin/env python3
"""
Print the environment variables the sync pipeline reads, and check which of
the required ones are set in the current environment (.env included).
"""
import os
import sys

from dotenv import load_dotenv

load_dotenv()

REQUIRED = [
    ("PG_DSN", "Serving-store Postgres DSN"),
    ("PG_SCHEMA", "Serving-store schema"),
]

WAREHOUSE = [
    ("BIGQUERY_CREDS", "Service-account JSON for the BigQuery warehouse"),
    ("WAREHOUSE_DSN", "Postgres DSN for the warehouse (used when BIGQUERY_CREDS is unset)"),
]

OPTIONAL = [
    ("BIGQUERY_DATASET", "defaults to f3_data_warehouse"),
    ("BIGQUERY_LOCATION", "defaults to US"),
    ("REGION_SEED_BATCH_SIZE", "defaults to 1000"),
    ("WORKOUT_SEED_BATCH_SIZE", "defaults to 1000"),
    ("WORKOUT_SEED_MAX_BATCHES", "unbounded if not set"),
    ("WORKOUT_SEED_UPDATED_AFTER", "ISO timestamp floor for the workout scan"),
    ("WORKOUT_SEED_UPSERT_CONCURRENCY", "defaults to 8"),
    ("WORKOUT_SEED_STRATEGY", "join (default) or fanout"),
    ("SEED_FORCE", "true to ignore per-record freshness"),
    ("FRESH_WINDOW_HOURS", "defaults to 48"),
    ("INGEST_GUARD_HOURS", "defaults to 20"),
    ("INGEST_TIME_BUDGET_MINUTES", "defaults to 5"),
    ("CRON_SECRET", "bearer token for the ingest trigger"),
    ("SLACK_BOT_AUTH_TOKEN", "Slack notifications (optional)"),
    ("SLACK_CHANNEL_ID", "Slack notifications (optional)"),
]


def _status(name: str) -> str:
    return "set" if os.getenv(name) else "MISSING"


def main() -> int:
    missing = False

    print("=" * 80)
    print("Required:")
    print("=" * 80)
    for name, description in REQUIRED:
        status = _status(name)
        missing = missing or status == "MISSING"
        print(f"{name:<34} {status:<8} # {description}")

    print("\n# Warehouse (one of):")
    warehouse_set = False
    for name, description in WAREHOUSE:
        warehouse_set = warehouse_set or bool(os.getenv(name))
        print(f"{name:<34} {_status(name):<8} # {description}")
    missing = missing or not warehouse_set

    print("\n# Optional:")
    for name, description in OPTIONAL:
        print(f"{name:<34} # {description}")

    return 1 if missing else 0


if __name__ == "__main__":
    sys.exit(main())

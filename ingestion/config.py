"""Environment-driven settings for the sync pipeline."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import timedelta
from typing import Mapping, Optional

from dotenv import load_dotenv

from ingestion.errors import ConfigError
from ingestion.utils.datetime import FRESH_WINDOW, INGEST_GUARD_WINDOW, to_utc_datetime

logger = logging.getLogger(__name__)

TRUTHY = ("true", "1", "yes")

DEFAULT_BIGQUERY_DATASET = "f3_data_warehouse"
DEFAULT_BIGQUERY_LOCATION = "US"
WORKOUT_STRATEGIES = ("join", "fanout")


@dataclass(frozen=True)
class Settings:
    pg_dsn: str
    pg_schema: str
    bigquery_creds: Optional[str] = None
    bigquery_dataset: str = DEFAULT_BIGQUERY_DATASET
    bigquery_location: str = DEFAULT_BIGQUERY_LOCATION
    warehouse_dsn: Optional[str] = None
    region_batch_size: int = 1000
    workout_batch_size: int = 1000
    workout_max_batches: Optional[int] = None
    workout_updated_after: Optional[str] = None
    upsert_concurrency: int = 8
    workout_strategy: str = "join"
    force: bool = False
    fresh_window: timedelta = FRESH_WINDOW
    ingest_guard_window: timedelta = INGEST_GUARD_WINDOW
    time_budget: timedelta = timedelta(minutes=5)
    cron_secret: Optional[str] = None
    slack_token: Optional[str] = None
    slack_channel: Optional[str] = None

    @property
    def warehouse_backend(self) -> str:
        return "bigquery" if self.bigquery_creds else "postgres"


def _is_truthy(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in TRUTHY


def _get_int(
    env: Mapping[str, str], name: str, default: Optional[int], minimum: Optional[int] = 1
) -> Optional[int]:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer. Got {raw!r}") from None
    if minimum is not None and value < minimum:
        raise ConfigError(f"{name} must be >= {minimum}. Got {value}")
    return value


def _get_hours(env: Mapping[str, str], name: str, default: timedelta) -> timedelta:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        hours = float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number of hours. Got {raw!r}") from None
    if hours < 0:
        raise ConfigError(f"{name} must not be negative. Got {hours}")
    return timedelta(hours=hours)


def _normalize_updated_after(raw: Optional[str]) -> Optional[str]:
    if not raw or not raw.strip():
        return None
    parsed = to_utc_datetime(raw.strip())
    if parsed is None:
        logger.warning("Ignoring invalid WORKOUT_SEED_UPDATED_AFTER=%r", raw)
        return None
    return parsed.isoformat()


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build settings from the environment (and .env), failing fast on bad values."""
    if env is None:
        load_dotenv()
        env = os.environ

    pg_dsn = env.get("PG_DSN")
    pg_schema = env.get("PG_SCHEMA")
    if not pg_dsn or not pg_schema:
        raise ConfigError(
            "Postgres DSN and schema must be configured via PG_DSN and PG_SCHEMA"
        )

    bigquery_creds = env.get("BIGQUERY_CREDS") or None
    warehouse_dsn = env.get("WAREHOUSE_DSN") or None
    if not bigquery_creds and not warehouse_dsn:
        raise ConfigError(
            "Warehouse credentials are not configured. "
            "Set BIGQUERY_CREDS (service-account JSON) or WAREHOUSE_DSN."
        )

    strategy = (env.get("WORKOUT_SEED_STRATEGY") or "join").strip().lower()
    if strategy not in WORKOUT_STRATEGIES:
        raise ConfigError(
            f"WORKOUT_SEED_STRATEGY must be one of {WORKOUT_STRATEGIES}. Got {strategy!r}"
        )

    budget_minutes = _get_int(env, "INGEST_TIME_BUDGET_MINUTES", 5)

    return Settings(
        pg_dsn=pg_dsn,
        pg_schema=pg_schema,
        bigquery_creds=bigquery_creds,
        bigquery_dataset=env.get("BIGQUERY_DATASET") or DEFAULT_BIGQUERY_DATASET,
        bigquery_location=env.get("BIGQUERY_LOCATION") or DEFAULT_BIGQUERY_LOCATION,
        warehouse_dsn=warehouse_dsn,
        region_batch_size=_get_int(env, "REGION_SEED_BATCH_SIZE", 1000),
        workout_batch_size=_get_int(env, "WORKOUT_SEED_BATCH_SIZE", 1000),
        workout_max_batches=_get_int(env, "WORKOUT_SEED_MAX_BATCHES", None),
        workout_updated_after=_normalize_updated_after(
            env.get("WORKOUT_SEED_UPDATED_AFTER")
        ),
        upsert_concurrency=max(
            1, _get_int(env, "WORKOUT_SEED_UPSERT_CONCURRENCY", 8, minimum=None)
        ),
        workout_strategy=strategy,
        force=_is_truthy(env.get("SEED_FORCE")),
        fresh_window=_get_hours(env, "FRESH_WINDOW_HOURS", FRESH_WINDOW),
        ingest_guard_window=_get_hours(env, "INGEST_GUARD_HOURS", INGEST_GUARD_WINDOW),
        time_budget=timedelta(minutes=budget_minutes),
        cron_secret=(env.get("CRON_SECRET") or "").strip() or None,
        slack_token=env.get("SLACK_BOT_AUTH_TOKEN") or None,
        slack_channel=env.get("SLACK_CHANNEL_ID") or None,
    )

from dataclasses import FrozenInstanceError
from datetime import timedelta

import pytest

from ingestion.config import Settings, load_settings
from ingestion.errors import ConfigError
from ingestion.utils.datetime import FRESH_WINDOW, INGEST_GUARD_WINDOW

BASE_ENV = {
    "PG_DSN": "postgresql://localhost/serving",
    "PG_SCHEMA": "region_pages",
    "WAREHOUSE_DSN": "postgresql://localhost/warehouse",
}


def _env(**overrides):
    env = dict(BASE_ENV)
    env.update(overrides)
    return {key: value for key, value in env.items() if value is not None}


class TestLoadSettings:
    def test_defaults(self):
        settings = load_settings(_env())

        assert settings.pg_schema == "region_pages"
        assert settings.warehouse_backend == "postgres"
        assert settings.region_batch_size == 1000
        assert settings.workout_batch_size == 1000
        assert settings.workout_max_batches is None
        assert settings.upsert_concurrency == 8
        assert settings.workout_strategy == "join"
        assert settings.force is False
        assert settings.fresh_window == timedelta(hours=48) == FRESH_WINDOW
        assert settings.ingest_guard_window == timedelta(hours=20) == INGEST_GUARD_WINDOW
        assert settings.bigquery_dataset == "f3_data_warehouse"

    def test_bigquery_takes_precedence(self):
        settings = load_settings(_env(BIGQUERY_CREDS='{"project_id": "f3"}'))
        assert settings.warehouse_backend == "bigquery"

    def test_tunables(self):
        settings = load_settings(
            _env(
                REGION_SEED_BATCH_SIZE="50",
                WORKOUT_SEED_BATCH_SIZE="200",
                WORKOUT_SEED_MAX_BATCHES="3",
                WORKOUT_SEED_UPSERT_CONCURRENCY="4",
                WORKOUT_SEED_STRATEGY=" FanOut ",
                SEED_FORCE="yes",
                FRESH_WINDOW_HOURS="12",
                CRON_SECRET="  s3cret ",
            )
        )

        assert settings.region_batch_size == 50
        assert settings.workout_batch_size == 200
        assert settings.workout_max_batches == 3
        assert settings.upsert_concurrency == 4
        assert settings.workout_strategy == "fanout"
        assert settings.force is True
        assert settings.fresh_window == timedelta(hours=12)
        assert settings.cron_secret == "s3cret"

    def test_concurrency_is_at_least_one(self):
        assert load_settings(_env(WORKOUT_SEED_UPSERT_CONCURRENCY="0")).upsert_concurrency == 1
        assert load_settings(_env(WORKOUT_SEED_UPSERT_CONCURRENCY="-5")).upsert_concurrency == 1

    def test_updated_after_is_normalized(self):
        settings = load_settings(_env(WORKOUT_SEED_UPDATED_AFTER="2025-01-01T00:00:00Z"))
        assert settings.workout_updated_after == "2025-01-01T00:00:00+00:00"

    def test_invalid_updated_after_is_ignored(self):
        settings = load_settings(_env(WORKOUT_SEED_UPDATED_AFTER="last tuesday"))
        assert settings.workout_updated_after is None

    @pytest.mark.parametrize("missing", ["PG_DSN", "PG_SCHEMA"])
    def test_serving_store_is_required(self, missing):
        with pytest.raises(ConfigError):
            load_settings(_env(**{missing: None}))

    def test_warehouse_is_required(self):
        with pytest.raises(ConfigError, match="BIGQUERY_CREDS"):
            load_settings(_env(WAREHOUSE_DSN=None))

    @pytest.mark.parametrize(
        "overrides",
        [
            {"WORKOUT_SEED_BATCH_SIZE": "lots"},
            {"WORKOUT_SEED_BATCH_SIZE": "0"},
            {"REGION_SEED_BATCH_SIZE": "-1"},
            {"WORKOUT_SEED_STRATEGY": "parallel"},
            {"FRESH_WINDOW_HOURS": "-2"},
            {"INGEST_GUARD_HOURS": "soon"},
        ],
    )
    def test_rejects_bad_values(self, overrides):
        with pytest.raises(ConfigError):
            load_settings(_env(**overrides))


def test_settings_are_immutable():
    settings = Settings(pg_dsn="x", pg_schema="y", warehouse_dsn="z")
    with pytest.raises(FrozenInstanceError):
        settings.pg_schema = "other"


def test_settings_default_windows():
    settings = Settings(pg_dsn="x", pg_schema="y", warehouse_dsn="z")
    assert settings.fresh_window == FRESH_WINDOW
    assert settings.ingest_guard_window == INGEST_GUARD_WINDOW

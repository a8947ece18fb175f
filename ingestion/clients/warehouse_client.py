"""Read-only query runners for the operational warehouse.

Two backends share one interface: ``run_query(label, query, params, types)``
returning a list of plain dicts. Queries are written with the placeholders of
the client's ``dialect`` (see ``ingestion.warehouse.queries``).
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

import psycopg2
from psycopg2.extras import RealDictCursor

from ingestion.errors import ConfigError, WarehouseQueryError

logger = logging.getLogger(__name__)

_warehouse_client = None


class BigQueryWarehouseClient:
    """Warehouse backed by a BigQuery dataset, authenticated with a service account."""

    dialect = "bigquery"

    def __init__(self, creds_json: str, dataset: str, location: str):
        try:
            creds = json.loads(creds_json)
        except ValueError as e:
            raise ConfigError(f"BIGQUERY_CREDS is not valid JSON: {e}") from None
        if not isinstance(creds, dict) or not creds.get("project_id"):
            raise ConfigError("BIGQUERY_CREDS must be a service-account JSON with project_id")

        self.project_id = creds["project_id"]
        self.dataset = dataset
        self.location = location
        self._creds = creds
        self._client = None

    def _get_client(self):
        if self._client is None:
            from google.cloud import bigquery
            from google.oauth2 import service_account

            credentials = service_account.Credentials.from_service_account_info(self._creds)
            self._client = bigquery.Client(
                project=self.project_id,
                credentials=credentials,
                location=self.location,
            )
        return self._client

    @staticmethod
    def _build_parameters(params: Mapping[str, Any], types: Mapping[str, str]):
        from google.cloud import bigquery

        query_params = []
        for name, value in params.items():
            type_hint = types.get(name, "STRING")
            if type_hint.startswith("ARRAY<"):
                element_type = type_hint[len("ARRAY<") : -1]
                query_params.append(
                    bigquery.ArrayQueryParameter(name, element_type, list(value or []))
                )
            else:
                query_params.append(bigquery.ScalarQueryParameter(name, type_hint, value))
        return query_params

    def run_query(
        self,
        label: str,
        query: str,
        params: Optional[Mapping[str, Any]] = None,
        types: Optional[Mapping[str, str]] = None,
    ) -> List[Dict[str, Any]]:
        from google.cloud import bigquery

        client = self._get_client()
        job_config = bigquery.QueryJobConfig(
            query_parameters=self._build_parameters(params or {}, types or {}),
            default_dataset=f"{self.project_id}.{self.dataset}",
        )
        try:
            job = client.query(query, job_config=job_config, location=self.location)
            rows = job.result()
        except Exception as e:
            raise WarehouseQueryError(label, e) from e
        return [dict(row.items()) for row in rows]

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None


class PostgresWarehouseClient:
    """Warehouse reachable through a Postgres connection string.

    The connection is opened on first use, marked read-only and reused for
    every query of the run.
    """

    dialect = "postgres"

    def __init__(self, dsn: str):
        self.dsn = dsn
        self._conn = None

    def _connect(self):
        if self._conn is None or self._conn.closed:
            conn = psycopg2.connect(self.dsn)
            conn.set_session(readonly=True, autocommit=True)
            self._conn = conn
        return self._conn

    @staticmethod
    def _adapt(value: Any) -> Any:
        # Warehouse timestamps are stored as UTC without a zone.
        if isinstance(value, datetime) and value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    def run_query(
        self,
        label: str,
        query: str,
        params: Optional[Mapping[str, Any]] = None,
        types: Optional[Mapping[str, str]] = None,
    ) -> List[Dict[str, Any]]:
        adapted = {name: self._adapt(value) for name, value in (params or {}).items()}
        try:
            with self._connect().cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(query, adapted)
                return [dict(row) for row in cur.fetchall()]
        except psycopg2.Error as e:
            raise WarehouseQueryError(label, e) from e

    def close(self) -> None:
        if self._conn is not None and not self._conn.closed:
            self._conn.close()
        self._conn = None


def build_warehouse_client(settings):
    if settings.bigquery_creds:
        return BigQueryWarehouseClient(
            settings.bigquery_creds,
            settings.bigquery_dataset,
            settings.bigquery_location,
        )
    if settings.warehouse_dsn:
        return PostgresWarehouseClient(settings.warehouse_dsn)
    raise ConfigError("Set BIGQUERY_CREDS or WAREHOUSE_DSN to reach the warehouse")


def get_warehouse_client(settings):
    """Process-wide warehouse client, created on first use."""
    global _warehouse_client
    if _warehouse_client is None:
        _warehouse_client = build_warehouse_client(settings)
        logger.info(
            "[WAREHOUSE] Using %s warehouse backend", _warehouse_client.dialect
        )
    return _warehouse_client


def reset_warehouse_client() -> None:
    global _warehouse_client
    if _warehouse_client is not None:
        _warehouse_client.close()
    _warehouse_client = None

import logging

import psycopg2

from .postgres_mixins import EnrichMixin, FreshnessMixin, PruneMixin, UpsertMixin

logger = logging.getLogger(__name__)

_postgres_client = None


class PostgresClient(FreshnessMixin, UpsertMixin, PruneMixin, EnrichMixin):
    """Serving-store access. One connection, opened lazily and reused for the run.

    Every ``with self._connect() as conn`` block is its own transaction:
    psycopg2 commits on success and rolls back on error.
    """

    def __init__(self, dsn, schema):
        self.dsn = dsn
        self.schema = schema
        self._conn = None

    def _connect(self):
        if self._conn is None or self._conn.closed:
            self._conn = psycopg2.connect(self.dsn)
        return self._conn

    def close(self):
        if self._conn is not None and not self._conn.closed:
            self._conn.close()
        self._conn = None

    # Methods for freshness/upserts/prunes/enrichment are inherited from mixins


def get_postgres_client(settings) -> PostgresClient:
    """Process-wide serving-store client, created on first use."""
    global _postgres_client
    if _postgres_client is None:
        _postgres_client = PostgresClient(settings.pg_dsn, settings.pg_schema)
        logger.info("[SERVING STORE] Using schema %s", settings.pg_schema)
    return _postgres_client

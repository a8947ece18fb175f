from datetime import datetime
import logging
from typing import Dict, Iterable, List, Optional, Sequence, Set

from psycopg2.extras import RealDictCursor, execute_values

from constants import Tables
from ingestion.errors import UpsertError

logger = logging.getLogger(__name__)

REGION_COLUMNS = (
    "id",
    "slug",
    "name",
    "description",
    "website",
    "image",
    "email",
    "facebook",
    "twitter",
    "instagram",
    "city",
    "state",
    "zip",
    "country",
    "latitude",
    "longitude",
    "zoom",
    "last_ingested_at",
)

# Owned by the enrichment pass; a region upsert only sets them on insert.
REGION_GEOMETRY_COLUMNS = (
    "city",
    "state",
    "zip",
    "country",
    "latitude",
    "longitude",
    "zoom",
)

WORKOUT_COLUMNS = (
    "id",
    "region_id",
    "name",
    "time",
    "type",
    "types",
    "group",
    "notes",
    "latitude",
    "longitude",
    "city",
    "state",
    "zip",
    "country",
    "location",
    "last_ingested_at",
)


def _chunks(records: Sequence[dict], size: int) -> Iterable[Sequence[dict]]:
    for start in range(0, len(records), size):
        yield records[start : start + size]


class FreshnessMixin:
    def get_seed_run(self, key: str) -> Optional[datetime]:
        with self._connect() as conn, conn.cursor() as cur:
            cur.execute(
                f'SELECT last_ingested_at FROM "{self.schema}"."{Tables.SEED_RUNS}" WHERE key = %s',
                (key,),
            )
            row = cur.fetchone()

        if row:
            return row[0]
        return None

    def record_seed_run(self, key: str, ingested_at: str) -> None:
        with self._connect() as conn, conn.cursor() as cur:
            cur.execute(
                f"""
                INSERT INTO "{self.schema}"."{Tables.SEED_RUNS}" (key, last_ingested_at)
                VALUES (%s, %s)
                ON CONFLICT (key) DO UPDATE
                SET last_ingested_at = EXCLUDED.last_ingested_at
                """,
                (key, ingested_at),
            )

    def load_ingestion_map(self, table_name: str) -> Dict[str, Optional[datetime]]:
        """id -> last_ingested_at for every row of ``table_name``."""
        with self._connect() as conn, conn.cursor() as cur:
            cur.execute(f'SELECT id, last_ingested_at FROM "{self.schema}"."{table_name}"')
            return {row[0]: row[1] for row in cur.fetchall()}


class UpsertMixin:
    def _upsert_chunks(
        self,
        table_name: str,
        columns: Sequence[str],
        update_columns: Sequence[str],
        records: Sequence[dict],
        chunk_size: int,
    ) -> int:
        """
        Insert-or-update ``records`` keyed on id, ``chunk_size`` rows per statement.

        Each chunk commits on its own, so a failure leaves earlier chunks in
        place and reports exactly which ids were in the failed chunk.
        """
        if not records:
            return 0

        column_sql = ", ".join(f'"{col}"' for col in columns)
        update_sql = ",\n                    ".join(
            f'"{col}" = EXCLUDED."{col}"' for col in update_columns
        )
        query = f"""
                INSERT INTO "{self.schema}"."{table_name}" ({column_sql})
                VALUES %s
                ON CONFLICT (id) DO UPDATE SET
                    {update_sql}
                """

        written = 0
        for chunk in _chunks(records, max(1, chunk_size)):
            rows = [tuple(record.get(col) for col in columns) for record in chunk]
            try:
                with self._connect() as conn, conn.cursor() as cur:
                    execute_values(cur, query, rows, page_size=len(rows))
            except Exception as e:
                raise UpsertError(
                    table_name,
                    [record.get("id") for record in chunk],
                    [record.get("name") for record in chunk],
                    e,
                ) from e
            written += len(chunk)
        return written

    def upsert_regions(self, regions: Sequence[dict], chunk_size: int) -> int:
        update_columns = [
            col
            for col in REGION_COLUMNS
            if col != "id" and col not in REGION_GEOMETRY_COLUMNS
        ]
        return self._upsert_chunks(
            Tables.REGIONS, REGION_COLUMNS, update_columns, regions, chunk_size
        )

    def upsert_workouts(self, workouts: Sequence[dict], chunk_size: int) -> int:
        update_columns = [col for col in WORKOUT_COLUMNS if col != "id"]
        return self._upsert_chunks(
            Tables.WORKOUTS, WORKOUT_COLUMNS, update_columns, workouts, chunk_size
        )


class PruneMixin:
    def list_regions(self) -> List[dict]:
        with self._connect() as conn, conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(f'SELECT id, name FROM "{self.schema}"."{Tables.REGIONS}"')
            return [dict(row) for row in cur.fetchall()]

    def get_region_ids(self) -> Set[str]:
        return {region["id"] for region in self.list_regions()}

    def list_workouts(self) -> List[dict]:
        with self._connect() as conn, conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(
                f'SELECT id, name, region_id FROM "{self.schema}"."{Tables.WORKOUTS}"'
            )
            return [dict(row) for row in cur.fetchall()]

    def delete_region_cascade(self, region_id: str) -> List[str]:
        """Delete a region and its workouts in one transaction. Returns the removed workout names."""
        with self._connect() as conn, conn.cursor() as cur:
            cur.execute(
                f'DELETE FROM "{self.schema}"."{Tables.WORKOUTS}" WHERE region_id = %s '
                "RETURNING name",
                (region_id,),
            )
            workouts_removed = [row[0] for row in cur.fetchall()]
            cur.execute(
                f'DELETE FROM "{self.schema}"."{Tables.REGIONS}" WHERE id = %s',
                (region_id,),
            )
        return workouts_removed

    def delete_workouts(self, workout_ids: Sequence[str]) -> int:
        if not workout_ids:
            return 0
        with self._connect() as conn, conn.cursor() as cur:
            cur.execute(
                f'DELETE FROM "{self.schema}"."{Tables.WORKOUTS}" WHERE id = ANY(%s)',
                (list(workout_ids),),
            )
            return cur.rowcount


class EnrichMixin:
    def list_regions_for_enrichment(self) -> List[dict]:
        with self._connect() as conn, conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(
                f"""
                SELECT id, name, city, state, zip, country, latitude, longitude, zoom
                  FROM "{self.schema}"."{Tables.REGIONS}"
                 ORDER BY name ASC
                """
            )
            return [dict(row) for row in cur.fetchall()]

    def list_workout_locations(self, region_id: str) -> List[dict]:
        with self._connect() as conn, conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(
                f"""
                SELECT name, city, state, zip, country, latitude, longitude
                  FROM "{self.schema}"."{Tables.WORKOUTS}"
                 WHERE region_id = %s
                 ORDER BY id ASC
                """,
                (region_id,),
            )
            return [dict(row) for row in cur.fetchall()]

    def update_region_geometry(self, region_id: str, geometry: dict) -> None:
        columns = [col for col in REGION_GEOMETRY_COLUMNS if col in geometry]
        if not columns:
            return
        set_sql = ", ".join(f'"{col}" = %s' for col in columns)
        with self._connect() as conn, conn.cursor() as cur:
            cur.execute(
                f'UPDATE "{self.schema}"."{Tables.REGIONS}" SET {set_sql} WHERE id = %s',
                (*[geometry[col] for col in columns], region_id),
            )

"""Cursor-batched reads from the warehouse.

Scans walk a table in ``(updated, id)`` order. Each page reports the cursor of
its last row; the next page asks for rows strictly after it. A page whose
cursor does not move past the previous one ends the scan.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Set

from ingestion.errors import RowShapeError
from ingestion.utils.datetime import to_utc_datetime
from ingestion.warehouse import queries
from ingestion.warehouse.rows import WarehouseEventRow, WarehouseRegionRow

logger = logging.getLogger(__name__)

STRATEGY_JOIN = "join"
STRATEGY_FANOUT = "fanout"


@dataclass(frozen=True, order=True)
class Cursor:
    updated: datetime
    id: int


@dataclass
class ScanPage:
    rows: List[Any] = field(default_factory=list)
    malformed: int = 0
    raw_count: int = 0
    next_cursor: Optional[Cursor] = None


def cursor_from_row(row: Mapping[str, Any]) -> Optional[Cursor]:
    updated = to_utc_datetime(row.get("updated"))
    try:
        row_id = int(str(row.get("id")).strip())
    except ValueError:
        row_id = None
    if updated is None or row_id is None:
        logger.warning(
            "[WAREHOUSE] Cannot build cursor from row id=%r updated=%r",
            row.get("id"),
            row.get("updated"),
        )
        return None
    return Cursor(updated=updated, id=row_id)


def _int_ids(values) -> List[int]:
    ids = set()
    for value in values:
        if value is None:
            continue
        try:
            ids.add(int(str(value).strip()))
        except ValueError:
            continue
    return sorted(ids)


class WarehouseReader:
    """Typed, paginated access to warehouse organizations and events."""

    def __init__(self, client, strategy: str = STRATEGY_JOIN):
        if strategy not in (STRATEGY_JOIN, STRATEGY_FANOUT):
            raise ValueError(f"Unknown workout fetch strategy: {strategy}")
        self.client = client
        self.dialect = queries.Dialect(client.dialect)
        self.strategy = strategy

    @staticmethod
    def _scan_params(
        cursor: Optional[Cursor], batch_size: int, updated_after: Optional[datetime]
    ) -> Dict[str, Any]:
        return {
            "batch_size": batch_size,
            "updated_after": updated_after,
            "cursor_updated": cursor.updated if cursor else None,
            "cursor_id": cursor.id if cursor else None,
        }

    def _page(
        self,
        raw_rows: List[Dict[str, Any]],
        decode: Callable[[Mapping[str, Any]], Any],
        previous: Optional[Cursor],
    ) -> ScanPage:
        page = ScanPage(raw_count=len(raw_rows))
        if not raw_rows:
            return page

        for raw in raw_rows:
            try:
                page.rows.append(decode(raw))
            except RowShapeError as e:
                page.malformed += 1
                logger.warning("[WAREHOUSE] %s", e)

        next_cursor = cursor_from_row(raw_rows[-1])
        if previous is not None and next_cursor is not None and next_cursor <= previous:
            logger.warning(
                "[WAREHOUSE] Cursor did not advance (updated=%s, id=%s); "
                "stopping to avoid repeat batches",
                next_cursor.updated.isoformat(),
                next_cursor.id,
            )
            next_cursor = None
        page.next_cursor = next_cursor
        return page

    def _scan(
        self,
        fetch_page: Callable[[Optional[Cursor], int, Optional[datetime]], ScanPage],
        batch_size: int,
        updated_after: Optional[datetime],
        max_batches: Optional[int],
    ) -> Iterator[ScanPage]:
        cursor: Optional[Cursor] = None
        batches = 0
        while True:
            if max_batches and batches >= max_batches:
                logger.info("[WAREHOUSE] Stopping after %s batch(es) per max_batches", batches)
                return
            page = fetch_page(cursor, batch_size, updated_after)
            if not page.raw_count:
                return
            batches += 1
            yield page
            if page.next_cursor is None:
                return
            cursor = page.next_cursor

    # Workouts -----------------------------------------------------------------

    def fetch_workout_page(
        self,
        cursor: Optional[Cursor],
        batch_size: int,
        updated_after: Optional[datetime] = None,
    ) -> ScanPage:
        if self.strategy == STRATEGY_FANOUT:
            raw_rows = self._fetch_workout_rows_fanout(cursor, batch_size, updated_after)
        else:
            query, types = queries.workout_join_query(self.dialect)
            raw_rows = self.client.run_query(
                "workout_scan",
                query,
                self._scan_params(cursor, batch_size, updated_after),
                types,
            )
        return self._page(raw_rows, WarehouseEventRow.from_mapping, cursor)

    def iter_workout_pages(
        self,
        batch_size: int,
        updated_after: Optional[datetime] = None,
        max_batches: Optional[int] = None,
    ) -> Iterator[ScanPage]:
        return self._scan(self.fetch_workout_page, batch_size, updated_after, max_batches)

    def _fetch_workout_rows_fanout(
        self,
        cursor: Optional[Cursor],
        batch_size: int,
        updated_after: Optional[datetime],
    ) -> List[Dict[str, Any]]:
        """Same rows as the join query, assembled from one query per related table."""
        query, types = queries.event_scan_query(self.dialect)
        events = self.client.run_query(
            "workout_events",
            query,
            self._scan_params(cursor, batch_size, updated_after),
            types,
        )
        if not events:
            return []

        aos = self._orgs_by_id(_int_ids(e.get("ao_id") for e in events))
        regions = self._orgs_by_id(_int_ids(ao.get("parent_id") for ao in aos.values()))
        locations = self._by_id(
            "locations_by_id",
            queries.locations_by_id_query,
            _int_ids(e.get("location_id") for e in events),
        )
        type_names = self._type_names(_int_ids(e.get("id") for e in events))

        assembled = []
        for event in events:
            row = dict(event)
            ao = aos.get(str(event.get("ao_id")), {})
            region_id = ao.get("parent_id")
            region = regions.get(str(region_id), {}) if region_id is not None else {}
            location = locations.get(str(event.get("location_id")), {})
            row.update(
                {
                    "event_types": type_names.get(str(event.get("id")), []),
                    "ao_org_type": ao.get("org_type"),
                    "ao_is_active": ao.get("is_active"),
                    "region_id": region_id,
                    "region_org_type": region.get("org_type"),
                    "region_is_active": region.get("is_active"),
                    "latitude": location.get("latitude"),
                    "longitude": location.get("longitude"),
                    "street": location.get("street"),
                    "street2": location.get("street2"),
                    "city": location.get("city"),
                    "state": location.get("state"),
                    "zip": location.get("zip"),
                    "country": location.get("country"),
                }
            )
            assembled.append(row)
        return assembled

    def _by_id(self, label: str, build_query, ids: List[int]) -> Dict[str, Dict[str, Any]]:
        if not ids:
            return {}
        query, types = build_query(self.dialect)
        rows = self.client.run_query(label, query, {"ids": ids}, types)
        return {str(row["id"]): row for row in rows}

    def _orgs_by_id(self, ids: List[int]) -> Dict[str, Dict[str, Any]]:
        return self._by_id("orgs_by_id", queries.orgs_by_id_query, ids)

    def _type_names(self, event_ids: List[int]) -> Dict[str, List[str]]:
        if not event_ids:
            return {}
        query, types = queries.event_type_names_query(self.dialect)
        rows = self.client.run_query("event_type_names", query, {"ids": event_ids}, types)
        names: Dict[str, List[str]] = {}
        for row in rows:
            bucket = names.setdefault(str(row["event_id"]), [])
            if row.get("name") and row["name"] not in bucket:
                bucket.append(row["name"])
        for bucket in names.values():
            bucket.sort()
        return names

    # Regions ------------------------------------------------------------------

    def fetch_region_page(
        self,
        cursor: Optional[Cursor],
        batch_size: int,
        updated_after: Optional[datetime] = None,
    ) -> ScanPage:
        query, types = queries.region_scan_query(self.dialect)
        raw_rows = self.client.run_query(
            "region_scan",
            query,
            self._scan_params(cursor, batch_size, updated_after),
            types,
        )
        return self._page(raw_rows, WarehouseRegionRow.from_mapping, cursor)

    def iter_region_pages(
        self,
        batch_size: int,
        updated_after: Optional[datetime] = None,
        max_batches: Optional[int] = None,
    ) -> Iterator[ScanPage]:
        return self._scan(self.fetch_region_page, batch_size, updated_after, max_batches)

    # Active sets for pruning --------------------------------------------------

    def fetch_active_region_ids(self) -> Set[str]:
        query, types = queries.active_region_ids_query(self.dialect)
        rows = self.client.run_query("active_region_ids", query, {}, types)
        return {str(row["id"]) for row in rows}

    def fetch_active_events(self) -> Dict[str, Dict[str, Any]]:
        """Active event id -> its AO and parent region type and activity."""
        query, types = queries.active_events_query(self.dialect)
        rows = self.client.run_query("active_events", query, {}, types)
        return {str(row["id"]): row for row in rows}

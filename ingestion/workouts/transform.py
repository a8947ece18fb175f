"""Validate warehouse event rows and map them to serving-store workout rows."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import AbstractSet, Dict, Optional, Tuple

from constants import OrgTypes, SkipReasons
from ingestion.utils.datetime import FRESH_WINDOW, is_fresh
from ingestion.warehouse.rows import WarehouseEventRow


def format_time_range(start: Optional[str], end: Optional[str]) -> str:
    if start and end:
        return f"{start} - {end}"
    return start or end or ""


def format_location(row: WarehouseEventRow) -> str:
    parts = [row.street, row.street2, row.city, row.state, row.zip, row.country]
    return ", ".join(part.strip() for part in parts if part and part.strip())


def rejection_reason(
    row: WarehouseEventRow,
    region_ids: AbstractSet[str],
    *,
    last_ingested_at=None,
    force: bool = False,
    fresh_window: timedelta = FRESH_WINDOW,
    now: Optional[datetime] = None,
) -> Optional[str]:
    """
    Why ``row`` must not be written, or None when it is valid.

    The freshness check runs first since it is the cheapest way out. An event
    is only valid when its AO and that AO's parent region are both active and
    the region already exists in the serving store.
    """
    if not force and is_fresh(last_ingested_at, fresh_window, now):
        return SkipReasons.FRESH

    if not row.event_types:
        return SkipReasons.MISSING_TYPE

    if row.ao_org_type != OrgTypes.AO or row.ao_is_active is not True:
        return SkipReasons.MISSING_AO

    if (
        not row.region_id
        or row.region_org_type != OrgTypes.REGION
        or row.region_is_active is not True
        or row.region_id not in region_ids
    ):
        return SkipReasons.MISSING_REGION

    if not row.day_of_week:
        return SkipReasons.MISSING_GROUP

    if not row.location_id:
        return SkipReasons.MISSING_LOCATION

    return None


def normalize_workout(row: WarehouseEventRow, ingested_at: str) -> Dict:
    return {
        "id": row.id,
        "region_id": row.region_id,
        "name": row.name,
        "time": format_time_range(row.start_time, row.end_time),
        "type": row.event_types[0],
        "types": list(row.event_types),
        "group": row.day_of_week,
        "notes": row.notes,
        "latitude": row.latitude,
        "longitude": row.longitude,
        "city": row.city,
        "state": row.state,
        "zip": row.zip,
        "country": row.country,
        "location": format_location(row),
        "last_ingested_at": ingested_at,
    }


def transform_workout(
    row: WarehouseEventRow,
    region_ids: AbstractSet[str],
    ingested_at: str,
    **freshness,
) -> Tuple[Optional[Dict], Optional[str]]:
    """Return ``(workout, None)`` for a valid row or ``(None, reason)`` for a rejected one."""
    reason = rejection_reason(row, region_ids, **freshness)
    if reason:
        return None, reason
    return normalize_workout(row, ingested_at), None

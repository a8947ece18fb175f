"""Typed records decoded from raw warehouse rows.

Warehouse rows arrive as loosely typed dicts. They are decoded here, at the
boundary, and rejected with ``RowShapeError`` when the shape is wrong.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional, Tuple

from ingestion.errors import RowShapeError
from ingestion.utils.datetime import to_utc_datetime


def _opt_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None


def _opt_bool(value: Any) -> Optional[bool]:
    if value is None or isinstance(value, bool):
        return value
    raise TypeError(f"expected boolean, got {type(value).__name__}")


def _opt_float(value: Any) -> Optional[float]:
    """Numeric coordinate or None when missing or not finite."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _require_id(row: Mapping[str, Any]) -> str:
    raw = row.get("id")
    if raw is None:
        raise RowShapeError(None, "missing id")
    text = str(raw).strip()
    try:
        int(text)
    except ValueError:
        raise RowShapeError(text, "id is not an integer") from None
    return text


def _require_updated(row_id: str, row: Mapping[str, Any]) -> datetime:
    updated = to_utc_datetime(row.get("updated"))
    if updated is None:
        raise RowShapeError(row_id, f"unparseable updated value {row.get('updated')!r}")
    return updated


def _type_names(value: Any) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str) or not hasattr(value, "__iter__"):
        raise TypeError("event_types must be a list")
    names = []
    for name in value:
        if name and name not in names:
            names.append(str(name))
    return tuple(names)


@dataclass(frozen=True)
class WarehouseEventRow:
    """An active event joined with its AO, parent region, location and types."""

    id: str
    name: str
    updated: datetime
    ao_id: Optional[str] = None
    location_id: Optional[str] = None
    notes: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    day_of_week: Optional[str] = None
    event_types: Tuple[str, ...] = ()
    ao_org_type: Optional[str] = None
    ao_is_active: Optional[bool] = None
    region_id: Optional[str] = None
    region_org_type: Optional[str] = None
    region_is_active: Optional[bool] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    street: Optional[str] = None
    street2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    country: Optional[str] = None

    @property
    def cursor_key(self) -> Tuple[datetime, int]:
        return self.updated, int(self.id)

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> "WarehouseEventRow":
        row_id = _require_id(row)
        name = _opt_str(row.get("name"))
        if name is None:
            raise RowShapeError(row_id, "missing name")
        try:
            return cls(
                id=row_id,
                name=name,
                updated=_require_updated(row_id, row),
                ao_id=_opt_str(row.get("ao_id")),
                location_id=_opt_str(row.get("location_id")),
                notes=row.get("notes"),
                start_time=_opt_str(row.get("start_time")),
                end_time=_opt_str(row.get("end_time")),
                day_of_week=_opt_str(row.get("day_of_week")),
                event_types=_type_names(row.get("event_types")),
                ao_org_type=_opt_str(row.get("ao_org_type")),
                ao_is_active=_opt_bool(row.get("ao_is_active")),
                region_id=_opt_str(row.get("region_id")),
                region_org_type=_opt_str(row.get("region_org_type")),
                region_is_active=_opt_bool(row.get("region_is_active")),
                latitude=_opt_float(row.get("latitude")),
                longitude=_opt_float(row.get("longitude")),
                street=_opt_str(row.get("street")),
                street2=_opt_str(row.get("street2")),
                city=_opt_str(row.get("city")),
                state=_opt_str(row.get("state")),
                zip=_opt_str(row.get("zip")),
                country=_opt_str(row.get("country")),
            )
        except TypeError as e:
            raise RowShapeError(row_id, str(e)) from None


@dataclass(frozen=True)
class WarehouseRegionRow:
    """An active organization of type region."""

    id: str
    name: str
    updated: datetime
    description: Optional[str] = None
    website: Optional[str] = None
    logo_url: Optional[str] = None
    email: Optional[str] = None
    facebook: Optional[str] = None
    twitter: Optional[str] = None
    instagram: Optional[str] = None

    @property
    def cursor_key(self) -> Tuple[datetime, int]:
        return self.updated, int(self.id)

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> "WarehouseRegionRow":
        row_id = _require_id(row)
        name = _opt_str(row.get("name"))
        if name is None:
            raise RowShapeError(row_id, "missing name")
        return cls(
            id=row_id,
            name=name.strip(),
            updated=_require_updated(row_id, row),
            description=row.get("description"),
            website=_opt_str(row.get("website")),
            logo_url=_opt_str(row.get("logo_url")),
            email=row.get("email"),
            facebook=row.get("facebook"),
            twitter=row.get("twitter"),
            instagram=row.get("instagram"),
        )

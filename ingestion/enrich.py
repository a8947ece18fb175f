"""Derive each region's address, map center and zoom from its workouts."""

from __future__ import annotations

import logging
import math
from collections import Counter
from typing import Dict, List, Optional, Sequence

from constants import (
    DEFAULT_CENTER_LATITUDE,
    DEFAULT_CENTER_LONGITUDE,
    DEFAULT_ZOOM,
    MAX_ZOOM,
    MIN_ZOOM,
)

logger = logging.getLogger(__name__)

BOUNDS_PADDING = 0.2
KM_PER_DEGREE = 111


def most_common_zip_workout(workouts: Sequence[dict]) -> Optional[dict]:
    """First workout carrying the most frequent zip. Ties go to the zip seen first."""
    counts = Counter(w["zip"] for w in workouts if w.get("zip"))
    if not counts:
        return None
    # Counter.most_common keeps first-encountered order among equal counts.
    top_zip = counts.most_common(1)[0][0]
    return next(w for w in workouts if w.get("zip") == top_zip)


def zoom_for_span(max_degrees: float) -> int:
    if max_degrees <= 0:
        return MAX_ZOOM
    zoom = math.floor(15.5 - math.log2(max_degrees * KM_PER_DEGREE))
    return min(max(zoom, MIN_ZOOM), MAX_ZOOM)


def compute_region_geometry(region: dict, workouts: Sequence[dict]) -> Dict:
    """
    Approximate address, center and zoom for a region.

    The address comes from the workout with the most common zip; when no
    workout has a zip the region keeps its current address. The center is
    the middle of the workouts' bounding box padded 20% per axis, and the
    zoom is derived from the wider padded axis. Regions without coordinates
    fall back to the continental US view.
    """
    geometry = {
        "city": region.get("city"),
        "state": region.get("state"),
        "zip": region.get("zip"),
        "country": region.get("country"),
    }

    anchor = most_common_zip_workout(workouts)
    if anchor:
        for key in ("city", "state", "zip", "country"):
            geometry[key] = anchor.get(key)

    points = [
        (w["latitude"], w["longitude"])
        for w in workouts
        if w.get("latitude") is not None and w.get("longitude") is not None
    ]
    if not points:
        geometry.update(
            latitude=DEFAULT_CENTER_LATITUDE,
            longitude=DEFAULT_CENTER_LONGITUDE,
            zoom=DEFAULT_ZOOM,
        )
        return geometry

    lats = [lat for lat, _ in points]
    lngs = [lng for _, lng in points]
    min_lat, max_lat = min(lats), max(lats)
    min_lng, max_lng = min(lngs), max(lngs)

    lat_padding = (max_lat - min_lat) * BOUNDS_PADDING
    lng_padding = (max_lng - min_lng) * BOUNDS_PADDING
    padded_min_lat, padded_max_lat = min_lat - lat_padding, max_lat + lat_padding
    padded_min_lng, padded_max_lng = min_lng - lng_padding, max_lng + lng_padding

    geometry.update(
        latitude=(padded_min_lat + padded_max_lat) / 2,
        longitude=(padded_min_lng + padded_max_lng) / 2,
        zoom=zoom_for_span(
            max(padded_max_lat - padded_min_lat, padded_max_lng - padded_min_lng)
        ),
    )
    return geometry


def enrich_regions(store) -> int:
    logger.info("[ENRICH REGIONS] Enriching regions...")
    regions: List[dict] = store.list_regions_for_enrichment()

    for index, region in enumerate(regions, start=1):
        workouts = store.list_workout_locations(region["id"])
        geometry = compute_region_geometry(region, workouts)
        store.update_region_geometry(region["id"], geometry)
        logger.debug(
            "[ENRICH REGIONS] %s/%s %s: workouts=%s center=(%.4f, %.4f) zoom=%s",
            index,
            len(regions),
            region["name"],
            len(workouts),
            geometry["latitude"],
            geometry["longitude"],
            geometry["zoom"],
        )

    logger.info("[ENRICH REGIONS] ✓ Enriched %s region(s)", len(regions))
    return len(regions)

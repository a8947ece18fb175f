"""Map warehouse region orgs to serving-store region rows."""

from typing import Dict

from constants import DEFAULT_CENTER_LATITUDE, DEFAULT_CENTER_LONGITUDE, DEFAULT_ZOOM
from ingestion.utils.normalize import (
    kebab_case,
    normalize_email,
    transform_facebook_url,
    transform_instagram_url,
    transform_twitter_url,
)
from ingestion.warehouse.rows import WarehouseRegionRow


def normalize_region(row: WarehouseRegionRow, ingested_at: str) -> Dict:
    """
    Build a ``regions`` row from a warehouse org.

    Address, center and zoom are placeholders for new rows only; the
    enrichment pass owns them and region upserts never overwrite them.
    """
    return {
        "id": row.id,
        "slug": kebab_case(row.name),
        "name": row.name,
        "description": row.description,
        "website": row.website,
        "image": row.logo_url,
        "email": normalize_email(row.email),
        "facebook": transform_facebook_url(row.facebook),
        "twitter": transform_twitter_url(row.twitter),
        "instagram": transform_instagram_url(row.instagram),
        "city": None,
        "state": None,
        "zip": None,
        "country": None,
        "latitude": DEFAULT_CENTER_LATITUDE,
        "longitude": DEFAULT_CENTER_LONGITUDE,
        "zoom": DEFAULT_ZOOM,
        "last_ingested_at": ingested_at,
    }

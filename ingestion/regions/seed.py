from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

from constants import Tables
from ingestion.regions.transform import normalize_region
from ingestion.utils.datetime import FRESH_WINDOW, current_ingested_at, is_fresh

logger = logging.getLogger(__name__)


@dataclass
class RegionSeedResult:
    upserted: int = 0
    skipped_fresh: int = 0
    malformed: int = 0
    batches: int = 0
    names: List[str] = field(default_factory=list)


def seed_regions(
    reader,
    store,
    *,
    batch_size: int = 1000,
    force: bool = False,
    fresh_window: timedelta = FRESH_WINDOW,
    now: Optional[datetime] = None,
) -> RegionSeedResult:
    """Upsert every active warehouse region, skipping ones synced inside the freshness window."""
    logger.info("[SEED REGIONS] Starting (batch_size=%s, force=%s)", batch_size, force)

    ingested_at = current_ingested_at(now)
    last_ingested_by_id = store.load_ingestion_map(Tables.REGIONS)
    result = RegionSeedResult()

    for page in reader.iter_region_pages(batch_size):
        result.malformed += page.malformed

        buffer = []
        for row in page.rows:
            if not force and is_fresh(last_ingested_by_id.get(row.id), fresh_window, now):
                result.skipped_fresh += 1
                continue
            buffer.append(normalize_region(row, ingested_at))

        result.batches += 1
        if buffer:
            store.upsert_regions(buffer, chunk_size=batch_size)
            result.upserted += len(buffer)
            result.names.extend(region["name"] for region in buffer)

        logger.info(
            "[SEED REGIONS] Batch %s: upserted=%s, skipped_fresh=%s, malformed=%s",
            result.batches,
            len(buffer),
            len(page.rows) - len(buffer),
            page.malformed,
        )

    logger.info(
        "[SEED REGIONS] ✓ Complete: upserted=%s, skipped_fresh=%s across %s batch(es)",
        result.upserted,
        result.skipped_fresh,
        result.batches,
    )
    return result

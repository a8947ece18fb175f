from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

from constants import SkipReasons, Tables
from ingestion.utils.datetime import (
    FRESH_WINDOW,
    DatetimeInput,
    current_ingested_at,
    to_utc_datetime,
)
from ingestion.workouts.transform import transform_workout

logger = logging.getLogger(__name__)


@dataclass
class WorkoutSeedResult:
    upserted: int = 0
    batches: int = 0
    skipped: Counter = field(default_factory=Counter)
    names: List[str] = field(default_factory=list)

    @property
    def skipped_total(self) -> int:
        return sum(self.skipped.values())


def _format_skips(skipped: Counter) -> str:
    return ", ".join(
        f"{reason}={skipped[reason]}" for reason in SkipReasons.ALL if skipped[reason]
    )


def seed_workouts(
    reader,
    store,
    *,
    batch_size: int = 1000,
    max_batches: Optional[int] = None,
    updated_after: Optional[DatetimeInput] = None,
    upsert_concurrency: int = 8,
    force: bool = False,
    fresh_window: timedelta = FRESH_WINDOW,
    now: Optional[datetime] = None,
) -> WorkoutSeedResult:
    """
    Scan active warehouse events in cursor order and upsert the valid ones.

    Regions must already be seeded: a workout is only written when its parent
    region is present in the serving store.
    """
    if batch_size <= 0:
        raise ValueError(f"batch_size must be a positive number. Got {batch_size}")

    floor = to_utc_datetime(updated_after) if updated_after else None
    ingested_at = current_ingested_at(now)
    last_ingested_by_id = store.load_ingestion_map(Tables.WORKOUTS)
    region_ids = store.get_region_ids()

    logger.info(
        "[SEED WORKOUTS] Config: batch_size=%s, updated_after=%s, max_batches=%s, "
        "concurrency=%s, force=%s, known_regions=%s",
        batch_size,
        floor.isoformat() if floor else "none",
        max_batches or "unbounded",
        upsert_concurrency,
        force,
        len(region_ids),
    )

    result = WorkoutSeedResult()
    for page in reader.iter_workout_pages(batch_size, floor, max_batches):
        batch_skipped = Counter()
        batch_skipped[SkipReasons.MALFORMED] += page.malformed

        workouts = []
        for row in page.rows:
            workout, reason = transform_workout(
                row,
                region_ids,
                ingested_at,
                last_ingested_at=last_ingested_by_id.get(row.id),
                force=force,
                fresh_window=fresh_window,
                now=now,
            )
            if reason:
                batch_skipped[reason] += 1
                continue
            workouts.append(workout)

        if workouts:
            store.upsert_workouts(workouts, chunk_size=upsert_concurrency)
            result.upserted += len(workouts)
            result.names.extend(workout["name"] for workout in workouts)

        result.batches += 1
        result.skipped.update(batch_skipped)

        skipped_total = sum(batch_skipped.values())
        logger.info(
            "[SEED WORKOUTS] Batch %s: upserted=%s, skipped=%s%s",
            result.batches,
            len(workouts),
            skipped_total,
            f" ({_format_skips(batch_skipped)})" if skipped_total else "",
        )

    logger.info(
        "[SEED WORKOUTS] ✓ Complete: upserted=%s across %s batch(es), skipped=%s",
        result.upserted,
        result.batches,
        result.skipped_total,
    )
    return result

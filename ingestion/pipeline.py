"""Daily sync run: prune, seed regions, seed workouts, enrich.

The run is guarded by the ``daily-ingest`` seed-run marker: a trigger that
arrives within the guard window of the last successful run is a no-op. The
guard is a plain read-then-write, so two triggers landing in the same instant
can both pass it; that is tolerated because every write is an idempotent
upsert or delete keyed by id.
"""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence

from constants import SUMMARY_NAME_LIMIT, SeedRunKeys
from ingestion.enrich import enrich_regions
from ingestion.prune import prune_regions, prune_workouts
from ingestion.regions.seed import seed_regions
from ingestion.utils.datetime import current_ingested_at, to_utc_datetime, utc_now
from ingestion.workouts.seed import seed_workouts

logger = logging.getLogger(__name__)


class RunState(str, enum.Enum):
    IDLE = "idle"
    PRUNING = "pruning"
    SEEDING_REGIONS = "seeding_regions"
    SEEDING_WORKOUTS = "seeding_workouts"
    ENRICHING = "enriching"
    DONE = "done"
    SKIPPED = "skipped"
    ERROR = "error"


TERMINAL_STATES = (RunState.DONE, RunState.SKIPPED, RunState.ERROR)


@dataclass
class RunSummary:
    duration_seconds: float = 0.0
    regions_pruned: int = 0
    regions_seeded: int = 0
    regions_skipped_fresh: int = 0
    workouts_pruned: int = 0
    workouts_seeded: int = 0
    workouts_skipped: int = 0
    workout_batches: int = 0
    regions_enriched: int = 0
    workouts_skipped_by_reason: Dict[str, int] = field(default_factory=dict)
    pruned_region_names: List[str] = field(default_factory=list)
    pruned_workout_names: List[str] = field(default_factory=list)
    seeded_region_names: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "durationSeconds": round(self.duration_seconds, 2),
            "regionsPruned": self.regions_pruned,
            "regionsSeeded": self.regions_seeded,
            "regionsSkippedFresh": self.regions_skipped_fresh,
            "workoutsPruned": self.workouts_pruned,
            "workoutsSeeded": self.workouts_seeded,
            "workoutsSkipped": self.workouts_skipped,
            "workoutBatches": self.workout_batches,
            "regionsEnriched": self.regions_enriched,
            "workoutsSkippedByReason": dict(self.workouts_skipped_by_reason),
            "prunedRegionNames": format_names(self.pruned_region_names),
            "prunedWorkoutNames": format_names(self.pruned_workout_names),
            "seededRegionNames": format_names(self.seeded_region_names),
        }


@dataclass
class RunResult:
    status: str
    state: RunState
    summary: RunSummary
    message: str = ""
    last_ingested_at: Optional[str] = None
    completed_at: Optional[str] = None
    error: Optional[BaseException] = None

    def to_dict(self) -> Dict:
        body = {"status": self.status, "message": self.message}
        if self.status == "skipped":
            body["lastIngestedAt"] = self.last_ingested_at
        else:
            body["stats"] = self.summary.to_dict()
        if self.completed_at:
            body["completedAt"] = self.completed_at
        return body


def format_names(names: Sequence[str], limit: int = SUMMARY_NAME_LIMIT) -> str:
    """"a, b, c" or "a, b, and 3 more" once past ``limit``."""
    if not names:
        return ""
    shown = ", ".join(names[:limit])
    remaining = len(names) - limit
    return f"{shown}, and {remaining} more" if remaining > 0 else shown


def format_success_message(summary: RunSummary, completed_at: str) -> str:
    lines = [
        f":white_check_mark: Region pages daily ingest completed successfully at {completed_at}",
        f"• Duration: {summary.duration_seconds:.1f}s",
        f"• Regions: pruned={summary.regions_pruned}, seeded={summary.regions_seeded}, "
        f"skipped_fresh={summary.regions_skipped_fresh}, enriched={summary.regions_enriched}",
        f"• Workouts: pruned={summary.workouts_pruned}, seeded={summary.workouts_seeded}, "
        f"skipped={summary.workouts_skipped}, batches={summary.workout_batches}",
    ]
    if summary.pruned_region_names:
        lines.append(f"• Pruned regions: {format_names(summary.pruned_region_names)}")
    if summary.pruned_workout_names:
        lines.append(f"• Pruned workouts: {format_names(summary.pruned_workout_names)}")
    return "\n".join(lines)


def format_failure_message(error: BaseException, state: RunState) -> str:
    return f":x: Region pages daily ingest failed during {state.value}: {error}"


class IngestPipeline:
    def __init__(
        self,
        reader,
        store,
        settings,
        notifier=None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.reader = reader
        self.store = store
        self.settings = settings
        self.notifier = notifier
        self.clock = clock
        self.state = RunState.IDLE
        self.history: List[RunState] = [RunState.IDLE]

    def _transition(self, state: RunState) -> None:
        logger.info("[PIPELINE] %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    def _notify(self, message: str) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.notify(message)
        except Exception:
            logger.exception("[PIPELINE] Notifier failed; continuing")

    def check_guard(self, now: datetime) -> Optional[str]:
        """ISO timestamp of the last run when it is inside the guard window, else None."""
        last_run = to_utc_datetime(self.store.get_seed_run(SeedRunKeys.DAILY_INGEST))
        if last_run is None:
            return None
        if now - last_run < self.settings.ingest_guard_window:
            return current_ingested_at(last_run)
        return None

    def run(self, force: bool = False) -> RunResult:
        """
        Execute one run and return its result. Never raises for pipeline failures.

        ``force`` bypasses both the daily guard and the per-entity freshness skips.
        """
        self.state = RunState.IDLE
        self.history = [RunState.IDLE]
        started = time.monotonic()
        summary = RunSummary()
        now = self.clock()

        try:
            if not force:
                last_ingested_at = self.check_guard(now)
                if last_ingested_at:
                    self._transition(RunState.SKIPPED)
                    logger.info("[PIPELINE] Already ingested at %s; skipping", last_ingested_at)
                    return RunResult(
                        status="skipped",
                        state=self.state,
                        summary=summary,
                        message="Already ingested today",
                        last_ingested_at=last_ingested_at,
                    )

            self._run_stages(summary, now, force or self.settings.force)

            summary.duration_seconds = time.monotonic() - started
            completed_at = current_ingested_at(self.clock())
            self.store.record_seed_run(SeedRunKeys.DAILY_INGEST, completed_at)
            self._transition(RunState.DONE)
        except Exception as e:
            failed_state = self.state
            summary.duration_seconds = time.monotonic() - started
            logger.exception("[PIPELINE] Ingest failed during %s", failed_state.value)
            self._transition(RunState.ERROR)
            self._notify(format_failure_message(e, failed_state))
            return RunResult(
                status="error",
                state=self.state,
                summary=summary,
                message=str(e),
                error=e,
            )

        if summary.duration_seconds > self.settings.time_budget.total_seconds():
            logger.warning(
                "[PIPELINE] Run took %.1fs, over the %.0fs budget",
                summary.duration_seconds,
                self.settings.time_budget.total_seconds(),
            )
        logger.info("[PIPELINE] ✓ Complete: %s", summary.to_dict())
        self._notify(format_success_message(summary, completed_at))
        return RunResult(
            status="success",
            state=self.state,
            summary=summary,
            message="Ingest completed",
            completed_at=completed_at,
        )

    def _run_stages(self, summary: RunSummary, now: datetime, force: bool) -> None:
        settings = self.settings

        self._transition(RunState.PRUNING)
        pruned_regions = prune_regions(self.reader, self.store)
        pruned_workouts = prune_workouts(self.reader, self.store)
        summary.regions_pruned = pruned_regions.removed
        summary.pruned_region_names = pruned_regions.names
        summary.workouts_pruned = pruned_workouts.removed + pruned_regions.cascaded_workouts
        summary.pruned_workout_names = pruned_regions.cascaded_workout_names + pruned_workouts.names

        self._transition(RunState.SEEDING_REGIONS)
        regions = seed_regions(
            self.reader,
            self.store,
            batch_size=settings.region_batch_size,
            force=force,
            fresh_window=settings.fresh_window,
            now=now,
        )
        summary.regions_seeded = regions.upserted
        summary.regions_skipped_fresh = regions.skipped_fresh
        summary.seeded_region_names = regions.names

        self._transition(RunState.SEEDING_WORKOUTS)
        workouts = seed_workouts(
            self.reader,
            self.store,
            batch_size=settings.workout_batch_size,
            max_batches=settings.workout_max_batches,
            updated_after=settings.workout_updated_after,
            upsert_concurrency=settings.upsert_concurrency,
            force=force,
            fresh_window=settings.fresh_window,
            now=now,
        )
        summary.workouts_seeded = workouts.upserted
        summary.workouts_skipped = workouts.skipped_total
        summary.workout_batches = workouts.batches
        summary.workouts_skipped_by_reason = {
            reason: count for reason, count in workouts.skipped.items() if count
        }

        self._transition(RunState.ENRICHING)
        summary.regions_enriched = enrich_regions(self.store)

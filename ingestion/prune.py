"""Remove serving-store rows whose warehouse source is gone or inactive."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from constants import OrgTypes, PruneReasons

logger = logging.getLogger(__name__)

_REASON_LOG = {
    PruneReasons.MISSING_REGION: "region is missing",
    PruneReasons.INACTIVE_IN_WAREHOUSE: "it is not active in warehouse",
    PruneReasons.INACTIVE_AO: "its AO is inactive",
    PruneReasons.INACTIVE_REGION: "its region is inactive in warehouse",
}


@dataclass
class PruneResult:
    removed: int = 0
    names: List[str] = field(default_factory=list)
    reasons: Counter = field(default_factory=Counter)
    cascaded_workouts: int = 0
    cascaded_workout_names: List[str] = field(default_factory=list)


def prune_regions(reader, store) -> PruneResult:
    """Delete regions that are no longer active regions in the warehouse, with their workouts."""
    logger.info("[PRUNE REGIONS] Pruning regions no longer in the warehouse...")

    active_region_ids = reader.fetch_active_region_ids()
    result = PruneResult()

    for region in store.list_regions():
        if region["id"] in active_region_ids:
            continue

        logger.info("[PRUNE REGIONS] Removing region %s (%s)", region["name"], region["id"])
        workout_names = store.delete_region_cascade(region["id"])
        result.cascaded_workouts += len(workout_names)
        result.cascaded_workout_names.extend(workout_names)
        result.removed += 1
        result.names.append(region["name"])
        result.reasons[PruneReasons.INACTIVE_IN_WAREHOUSE] += 1

    logger.info(
        "[PRUNE REGIONS] ✓ Pruned %s region(s) and %s of their workout(s)",
        result.removed,
        result.cascaded_workouts,
    )
    return result


def _warehouse_reason(event: Optional[Mapping[str, Any]]) -> Optional[str]:
    """Why the warehouse no longer backs a workout, or None while it is eligible."""
    if event is None:
        return PruneReasons.INACTIVE_IN_WAREHOUSE
    if event.get("ao_org_type") != OrgTypes.AO or event.get("ao_is_active") is not True:
        return PruneReasons.INACTIVE_AO
    if (
        event.get("region_org_type") != OrgTypes.REGION
        or event.get("region_is_active") is not True
    ):
        return PruneReasons.INACTIVE_REGION
    return None


def prune_workouts(reader, store) -> PruneResult:
    """
    Delete workouts whose event, AO or parent region is inactive, or whose region is missing.

    The missing-region check runs against the serving store only, so it also
    catches orphans left by an earlier partial run. The warehouse checks match
    the eligibility rules seeding applies, so a workout whose AO is
    deactivated after it was stored is removed on the next run.
    """
    logger.info("[PRUNE WORKOUTS] Pruning workouts no longer in the warehouse...")

    active_events: Dict[str, Dict[str, Any]] = reader.fetch_active_events()
    region_ids = store.get_region_ids()
    result = PruneResult()
    doomed = []

    for workout in store.list_workouts():
        if not workout.get("region_id") or workout["region_id"] not in region_ids:
            reason = PruneReasons.MISSING_REGION
        else:
            reason = _warehouse_reason(active_events.get(workout["id"]))
        if reason is None:
            continue

        logger.info(
            "[PRUNE WORKOUTS] Removing workout %s (%s) because %s",
            workout["name"],
            workout["id"],
            _REASON_LOG[reason],
        )
        doomed.append(workout["id"])
        result.names.append(workout["name"])
        result.reasons[reason] += 1

    result.removed = store.delete_workouts(doomed) if doomed else 0

    logger.info(
        "[PRUNE WORKOUTS] ✓ Pruned %s workout(s) (%s)",
        result.removed,
        ", ".join(f"{reason}={count}" for reason, count in sorted(result.reasons.items()))
        or "none",
    )
    return result

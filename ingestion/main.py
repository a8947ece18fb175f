from __future__ import annotations

import argparse
import json
import logging
import sys

from ingestion.clients import SlackNotifier, get_postgres_client, get_warehouse_client
from ingestion.config import Settings, load_settings
from ingestion.enrich import enrich_regions
from ingestion.errors import IngestError
from ingestion.pipeline import IngestPipeline
from ingestion.prune import prune_regions, prune_workouts
from ingestion.regions.seed import seed_regions
from ingestion.utils.log_config import configure_logging
from ingestion.warehouse import WarehouseReader
from ingestion.workouts.seed import seed_workouts

logger = logging.getLogger(__name__)


def build_pipeline(settings: Settings) -> IngestPipeline:
    reader = WarehouseReader(get_warehouse_client(settings), settings.workout_strategy)
    store = get_postgres_client(settings)
    notifier = SlackNotifier(settings.slack_token, settings.slack_channel)
    return IngestPipeline(reader, store, settings, notifier=notifier)


def run_ingest(settings: Settings, force: bool = False) -> int:
    result = build_pipeline(settings).run(force=force)
    print(json.dumps(result.to_dict(), indent=2))
    return 1 if result.status == "error" else 0


def _run_stage(settings: Settings, stage: str, force: bool) -> int:
    reader = WarehouseReader(get_warehouse_client(settings), settings.workout_strategy)
    store = get_postgres_client(settings)
    force = force or settings.force

    if stage == "prune-regions":
        prune_regions(reader, store)
    elif stage == "prune-workouts":
        prune_workouts(reader, store)
    elif stage == "seed-regions":
        seed_regions(
            reader,
            store,
            batch_size=settings.region_batch_size,
            force=force,
            fresh_window=settings.fresh_window,
        )
    elif stage == "seed-workouts":
        seed_workouts(
            reader,
            store,
            batch_size=settings.workout_batch_size,
            max_batches=settings.workout_max_batches,
            updated_after=settings.workout_updated_after,
            upsert_concurrency=settings.upsert_concurrency,
            force=force,
            fresh_window=settings.fresh_window,
        )
    elif stage == "enrich":
        enrich_regions(store)
    return 0


def _parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Sync regions and workouts from the warehouse into the serving store."
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="run",
        choices=[
            "run",
            "prune-regions",
            "prune-workouts",
            "seed-regions",
            "seed-workouts",
            "enrich",
        ],
        help="Full guarded run (default) or a single stage.",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Ignore the daily guard and per-record freshness.",
    )
    parser.add_argument("--verbose", action="store_true", help="Log at DEBUG level.")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = _parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.INFO)

    try:
        settings = load_settings()
    except IngestError as e:
        logger.error("[CONFIG] %s", e)
        return 2

    if args.command == "run":
        return run_ingest(settings, force=args.force)
    return _run_stage(settings, args.command, args.force)


if __name__ == "__main__":
    sys.exit(main())

"""In-memory stand-ins for the warehouse and the serving store."""

from datetime import datetime, timedelta, timezone

import pytest

from ingestion.config import Settings
from ingestion.errors import UpsertError, WarehouseQueryError
from ingestion.clients.postgres_mixins import REGION_GEOMETRY_COLUMNS

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
NOW = datetime(2025, 6, 2, 12, 0, tzinfo=timezone.utc)


class FakeWarehouseClient:
    """Answers the reader's queries by label, following the SQL's semantics."""

    dialect = "postgres"

    def __init__(self):
        self.orgs = {}
        self.events = {}
        self.locations = {}
        self.event_types = {}
        self.event_type_links = []
        self.calls = []
        self.fail_on = set()
        self._clock = datetime(2025, 1, 1, tzinfo=timezone.utc)

    # Data builders ------------------------------------------------------------

    def _tick(self):
        self._clock += timedelta(minutes=1)
        return self._clock

    def add_region(self, org_id, name, active=True, updated=None, **extra):
        self.orgs[org_id] = {
            "id": org_id,
            "org_type": "region",
            "is_active": active,
            "parent_id": None,
            "name": name,
            "description": extra.get("description"),
            "website": extra.get("website"),
            "logo_url": extra.get("logo_url"),
            "email": extra.get("email"),
            "facebook": extra.get("facebook"),
            "twitter": extra.get("twitter"),
            "instagram": extra.get("instagram"),
            "updated": updated or self._tick(),
        }
        return org_id

    def add_ao(self, org_id, name, parent_id, active=True, updated=None):
        self.orgs[org_id] = {
            "id": org_id,
            "org_type": "ao",
            "is_active": active,
            "parent_id": parent_id,
            "name": name,
            "updated": updated or self._tick(),
        }
        return org_id

    def add_location(self, location_id, **fields):
        self.locations[location_id] = {
            "id": location_id,
            "latitude": fields.get("latitude"),
            "longitude": fields.get("longitude"),
            "street": fields.get("street"),
            "street2": fields.get("street2"),
            "city": fields.get("city"),
            "state": fields.get("state"),
            "zip": fields.get("zip"),
            "country": fields.get("country"),
        }
        return location_id

    def add_event(
        self,
        event_id,
        ao_id,
        name,
        types=("Bootcamp",),
        day="Monday",
        location_id=None,
        active=True,
        start_time="0600",
        end_time="0645",
        updated=None,
        description=None,
    ):
        self.events[event_id] = {
            "id": event_id,
            "org_id": ao_id,
            "location_id": location_id,
            "is_active": active,
            "name": name,
            "description": description,
            "start_time": start_time,
            "end_time": end_time,
            "day_of_week": day,
            "updated": updated if updated is not None else self._tick(),
        }
        for type_name in types:
            type_id = next(
                (tid for tid, tname in self.event_types.items() if tname == type_name),
                None,
            )
            if type_id is None:
                type_id = len(self.event_types) + 1
                self.event_types[type_id] = type_name
            self.event_type_links.append((event_id, type_id))
        return event_id

    # Query emulation ----------------------------------------------------------

    @staticmethod
    def _updated(row):
        return row["updated"] or EPOCH

    def _scan(self, rows, params):
        updated_after = params.get("updated_after")
        cursor_updated = params.get("cursor_updated")
        cursor_id = params.get("cursor_id")

        def keep(row):
            updated = self._updated(row)
            if updated_after is not None and updated < updated_after:
                return False
            if cursor_updated is None:
                return True
            if updated > cursor_updated:
                return True
            return updated == cursor_updated and cursor_id is not None and row["id"] > cursor_id

        selected = sorted(
            (row for row in rows if keep(row)),
            key=lambda row: (self._updated(row), row["id"]),
        )
        return selected[: params["batch_size"]]

    def _event_base(self, event):
        return {
            "id": str(event["id"]),
            "ao_id": str(event["org_id"]) if event["org_id"] is not None else None,
            "location_id": (
                str(event["location_id"]) if event["location_id"] is not None else None
            ),
            "name": event["name"],
            "notes": event["description"],
            "start_time": event["start_time"],
            "end_time": event["end_time"],
            "day_of_week": event["day_of_week"],
            "updated": self._updated(event),
        }

    def _type_names(self, event_id):
        return sorted(
            {self.event_types[tid] for eid, tid in self.event_type_links if eid == event_id}
        )

    def _join_row(self, event):
        row = self._event_base(event)
        ao = self.orgs.get(event["org_id"]) or {}
        region = self.orgs.get(ao.get("parent_id")) or {}
        location = self.locations.get(event["location_id"]) or {}
        row.update(
            {
                "event_types": self._type_names(event["id"]) or None,
                "ao_org_type": ao.get("org_type"),
                "ao_is_active": ao.get("is_active"),
                "region_id": str(ao["parent_id"]) if ao.get("parent_id") is not None else None,
                "region_org_type": region.get("org_type"),
                "region_is_active": region.get("is_active"),
            }
        )
        for key in ("latitude", "longitude", "street", "street2", "city", "state", "zip", "country"):
            row[key] = location.get(key)
        return row

    def run_query(self, label, query, params=None, types=None):
        params = params or {}
        self.calls.append((label, dict(params), dict(types or {})))
        if label in self.fail_on:
            raise WarehouseQueryError(label, RuntimeError("warehouse unavailable"))

        active_events = [e for e in self.events.values() if e["is_active"]]

        if label == "workout_scan":
            return [self._join_row(e) for e in self._scan(active_events, params)]
        if label == "workout_events":
            return [self._event_base(e) for e in self._scan(active_events, params)]
        if label == "orgs_by_id":
            return [
                {
                    "id": str(org["id"]),
                    "org_type": org["org_type"],
                    "is_active": org["is_active"],
                    "parent_id": str(org["parent_id"]) if org["parent_id"] is not None else None,
                }
                for org_id, org in self.orgs.items()
                if org_id in params["ids"]
            ]
        if label == "locations_by_id":
            return [
                dict(loc, id=str(loc_id))
                for loc_id, loc in self.locations.items()
                if loc_id in params["ids"]
            ]
        if label == "event_type_names":
            return [
                {"event_id": str(eid), "name": self.event_types[tid]}
                for eid, tid in sorted(self.event_type_links)
                if eid in params["ids"]
            ]
        if label == "region_scan":
            regions = [
                o for o in self.orgs.values() if o["org_type"] == "region" and o["is_active"]
            ]
            return [
                {
                    "id": str(o["id"]),
                    "name": o["name"],
                    "description": o.get("description"),
                    "website": o.get("website"),
                    "logo_url": o.get("logo_url"),
                    "email": o.get("email"),
                    "facebook": o.get("facebook"),
                    "twitter": o.get("twitter"),
                    "instagram": o.get("instagram"),
                    "updated": self._updated(o),
                }
                for o in self._scan(regions, params)
            ]
        if label == "active_region_ids":
            return [
                {"id": str(o["id"])}
                for o in self.orgs.values()
                if o["org_type"] == "region" and o["is_active"]
            ]
        if label == "active_events":
            rows = []
            for e in active_events:
                ao = self.orgs.get(e["org_id"]) or {}
                region = self.orgs.get(ao.get("parent_id")) or {}
                rows.append(
                    {
                        "id": str(e["id"]),
                        "ao_org_type": ao.get("org_type"),
                        "ao_is_active": ao.get("is_active"),
                        "region_org_type": region.get("org_type"),
                        "region_is_active": region.get("is_active"),
                    }
                )
            return rows
        raise AssertionError(f"unexpected warehouse query {label}")

    def labels(self):
        return [label for label, _, _ in self.calls]


class FakeStore:
    """Serving store with the same surface as PostgresClient."""

    def __init__(self):
        self.regions = {}
        self.workouts = {}
        self.seed_runs = {}
        self.upsert_calls = []
        self.fail_upserts_for = set()

    def get_seed_run(self, key):
        return self.seed_runs.get(key)

    def record_seed_run(self, key, ingested_at):
        self.seed_runs[key] = ingested_at

    def load_ingestion_map(self, table_name):
        rows = self.regions if table_name == "regions" else self.workouts
        return {row_id: row.get("last_ingested_at") for row_id, row in rows.items()}

    def _check_failures(self, table_name, records):
        failed = [r for r in records if r["id"] in self.fail_upserts_for]
        if failed:
            raise UpsertError(
                table_name,
                [r["id"] for r in records],
                [r["name"] for r in records],
                RuntimeError("write failed"),
            )

    def upsert_regions(self, regions, chunk_size):
        self.upsert_calls.append(("regions", len(regions), chunk_size))
        self._check_failures("regions", regions)
        for region in regions:
            existing = self.regions.get(region["id"])
            if existing:
                existing.update(
                    {k: v for k, v in region.items() if k not in REGION_GEOMETRY_COLUMNS}
                )
            else:
                self.regions[region["id"]] = dict(region)
        return len(regions)

    def upsert_workouts(self, workouts, chunk_size):
        self.upsert_calls.append(("workouts", len(workouts), chunk_size))
        self._check_failures("workouts", workouts)
        for workout in workouts:
            assert workout["region_id"] in self.regions, "foreign key violation"
            self.workouts[workout["id"]] = dict(workout)
        return len(workouts)

    def list_regions(self):
        return [{"id": r["id"], "name": r["name"]} for r in self.regions.values()]

    def get_region_ids(self):
        return set(self.regions)

    def list_workouts(self):
        return [
            {"id": w["id"], "name": w["name"], "region_id": w["region_id"]}
            for w in self.workouts.values()
        ]

    def delete_region_cascade(self, region_id):
        doomed = [wid for wid, w in self.workouts.items() if w["region_id"] == region_id]
        names = [self.workouts.pop(wid)["name"] for wid in doomed]
        self.regions.pop(region_id, None)
        return names

    def delete_workouts(self, workout_ids):
        removed = 0
        for wid in workout_ids:
            if self.workouts.pop(wid, None) is not None:
                removed += 1
        return removed

    def list_regions_for_enrichment(self):
        return sorted((dict(r) for r in self.regions.values()), key=lambda r: r["name"])

    def list_workout_locations(self, region_id):
        return [
            {k: w.get(k) for k in ("name", "city", "state", "zip", "country", "latitude", "longitude")}
            for wid, w in sorted(self.workouts.items())
            if w["region_id"] == region_id
        ]

    def update_region_geometry(self, region_id, geometry):
        self.regions[region_id].update(geometry)


class FakeNotifier:
    def __init__(self, fail=False):
        self.messages = []
        self.fail = fail

    def notify(self, message):
        self.messages.append(message)
        if self.fail:
            raise RuntimeError("slack is down")
        return True


@pytest.fixture
def warehouse():
    return FakeWarehouseClient()


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def settings():
    return Settings(pg_dsn="postgresql://localhost/test", pg_schema="serving", warehouse_dsn="x")


@pytest.fixture
def nashville(warehouse):
    """Nashville region with one AO ("The Wall") hosting a Monday bootcamp."""
    region_id = warehouse.add_region(1, "Nashville", twitter="@f3nashville")
    warehouse.add_ao(10, "The Wall", parent_id=region_id)
    warehouse.add_location(
        100,
        latitude=36.16,
        longitude=-86.78,
        street="1 Broadway",
        city="Nashville",
        state="TN",
        zip="37201",
        country="US",
    )
    warehouse.add_event(1000, 10, "6:00 AM Bootcamp", types=("Bootcamp",), location_id=100)
    return warehouse

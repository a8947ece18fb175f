class SeedRunKeys:
    DAILY_INGEST = "daily-ingest"


class Tables:
    REGIONS = "regions"
    WORKOUTS = "workouts"
    SEED_RUNS = "seed_runs"


class OrgTypes:
    REGION = "region"
    AO = "ao"


class SkipReasons:
    FRESH = "fresh"
    MISSING_TYPE = "missing_type"
    MISSING_AO = "missing_ao"
    MISSING_REGION = "missing_region"
    MISSING_GROUP = "missing_group"
    MISSING_LOCATION = "missing_location"
    MALFORMED = "malformed"

    ALL = (
        FRESH,
        MISSING_TYPE,
        MISSING_AO,
        MISSING_REGION,
        MISSING_GROUP,
        MISSING_LOCATION,
        MALFORMED,
    )


class PruneReasons:
    INACTIVE_IN_WAREHOUSE = "inactive_in_warehouse"
    INACTIVE_AO = "inactive_ao"
    INACTIVE_REGION = "inactive_region"
    MISSING_REGION = "missing_region"


# Continental US centroid, used when a region has no workout coordinates.
DEFAULT_CENTER_LATITUDE = 39.8283
DEFAULT_CENTER_LONGITUDE = -98.5795
DEFAULT_ZOOM = 4
MIN_ZOOM = 4
MAX_ZOOM = 13

SUMMARY_NAME_LIMIT = 10

"""Warehouse SQL, rendered for either BigQuery or Postgres.

Every query returns rows ordered by ``(updated, id)`` where it is scanned with
a cursor. Missing ``updated`` values sort as the Unix epoch.
"""

from __future__ import annotations

from typing import Dict, Tuple

from constants import OrgTypes

_PG_TYPES = {
    "TIMESTAMP": "timestamp",
    "INT64": "bigint",
    "STRING": "text",
    "ARRAY<INT64>": "bigint[]",
}


class Dialect:
    def __init__(self, name: str):
        if name not in ("bigquery", "postgres"):
            raise ValueError(f"Unknown warehouse dialect: {name}")
        self.name = name

    @property
    def is_bigquery(self) -> bool:
        return self.name == "bigquery"

    def param(self, name: str, type_hint: str) -> str:
        """Typed placeholder, so NULL comparisons know the parameter's type."""
        if self.is_bigquery:
            return f"@{name}"
        return f"CAST(%({name})s AS {_PG_TYPES[type_hint]})"

    def as_string(self, expr: str) -> str:
        return f"CAST({expr} AS {'STRING' if self.is_bigquery else 'TEXT'})"

    def updated(self, alias: str) -> str:
        epoch = (
            "TIMESTAMP '1970-01-01 00:00:00+00'"
            if self.is_bigquery
            else "TIMESTAMP '1970-01-01 00:00:00'"
        )
        return f"COALESCE({alias}.updated, {epoch})"

    def in_ids(self, column: str, name: str) -> str:
        if self.is_bigquery:
            return f"{column} IN UNNEST(@{name})"
        return f"{column} = ANY({self.param(name, 'ARRAY<INT64>')})"

    def agg_names(self, expr: str) -> str:
        if self.is_bigquery:
            return f"ARRAY_AGG(DISTINCT {expr} IGNORE NULLS ORDER BY {expr})"
        return f"ARRAY_AGG(DISTINCT {expr} ORDER BY {expr}) FILTER (WHERE {expr} IS NOT NULL)"


SCAN_TYPES = {
    "batch_size": "INT64",
    "updated_after": "TIMESTAMP",
    "cursor_updated": "TIMESTAMP",
    "cursor_id": "INT64",
}


def _scan_predicate(d: Dialect, alias: str) -> str:
    updated = d.updated(alias)
    updated_after = d.param("updated_after", "TIMESTAMP")
    cursor_updated = d.param("cursor_updated", "TIMESTAMP")
    cursor_id = d.param("cursor_id", "INT64")
    return f"""(
        {updated_after} IS NULL
        OR {updated} >= {updated_after}
      )
      AND (
        {cursor_updated} IS NULL
        OR {updated} > {cursor_updated}
        OR (
          {updated} = {cursor_updated}
          AND {cursor_id} IS NOT NULL
          AND {alias}.id > {cursor_id}
        )
      )"""


def _scan_order(d: Dialect, alias: str) -> str:
    return (
        f"ORDER BY {d.updated(alias)} ASC, {alias}.id ASC\n"
        f"    LIMIT {d.param('batch_size', 'INT64')}"
    )


def workout_join_query(d: Dialect) -> Tuple[str, Dict[str, str]]:
    """One round trip: event + AO + parent region + location + all type names."""
    query = f"""
    SELECT
      {d.as_string('e.id')} AS id,
      {d.as_string('e.org_id')} AS ao_id,
      {d.as_string('e.location_id')} AS location_id,
      e.name,
      e.description AS notes,
      e.start_time,
      e.end_time,
      e.day_of_week,
      {d.updated('e')} AS updated,
      {d.agg_names('et.name')} AS event_types,
      ao.org_type AS ao_org_type,
      ao.is_active AS ao_is_active,
      {d.as_string('ao.parent_id')} AS region_id,
      region.org_type AS region_org_type,
      region.is_active AS region_is_active,
      l.latitude,
      l.longitude,
      l.address_street AS street,
      l.address_street2 AS street2,
      l.address_city AS city,
      l.address_state AS state,
      l.address_zip AS zip,
      l.address_country AS country
    FROM events e
    LEFT JOIN orgs ao ON ao.id = e.org_id
    LEFT JOIN orgs region ON region.id = ao.parent_id
    LEFT JOIN locations l ON l.id = e.location_id
    LEFT JOIN events_x_event_types ex ON ex.event_id = e.id
    LEFT JOIN event_types et ON et.id = ex.event_type_id
    WHERE e.is_active = TRUE
      AND {_scan_predicate(d, 'e')}
    GROUP BY
      e.id, e.org_id, e.location_id, e.name, e.description, e.start_time,
      e.end_time, e.day_of_week, e.updated, ao.org_type, ao.is_active,
      ao.parent_id, region.org_type, region.is_active, l.latitude, l.longitude,
      l.address_street, l.address_street2, l.address_city, l.address_state,
      l.address_zip, l.address_country
    {_scan_order(d, 'e')}
    """
    return query, dict(SCAN_TYPES)


def event_scan_query(d: Dialect) -> Tuple[str, Dict[str, str]]:
    """Events only; related entities are resolved by the fan-out queries below."""
    query = f"""
    SELECT
      {d.as_string('e.id')} AS id,
      {d.as_string('e.org_id')} AS ao_id,
      {d.as_string('e.location_id')} AS location_id,
      e.name,
      e.description AS notes,
      e.start_time,
      e.end_time,
      e.day_of_week,
      {d.updated('e')} AS updated
    FROM events e
    WHERE e.is_active = TRUE
      AND {_scan_predicate(d, 'e')}
    {_scan_order(d, 'e')}
    """
    return query, dict(SCAN_TYPES)


def orgs_by_id_query(d: Dialect) -> Tuple[str, Dict[str, str]]:
    query = f"""
    SELECT
      {d.as_string('o.id')} AS id,
      o.org_type,
      o.is_active,
      {d.as_string('o.parent_id')} AS parent_id
    FROM orgs o
    WHERE {d.in_ids('o.id', 'ids')}
    """
    return query, {"ids": "ARRAY<INT64>"}


def locations_by_id_query(d: Dialect) -> Tuple[str, Dict[str, str]]:
    query = f"""
    SELECT
      {d.as_string('l.id')} AS id,
      l.latitude,
      l.longitude,
      l.address_street AS street,
      l.address_street2 AS street2,
      l.address_city AS city,
      l.address_state AS state,
      l.address_zip AS zip,
      l.address_country AS country
    FROM locations l
    WHERE {d.in_ids('l.id', 'ids')}
    """
    return query, {"ids": "ARRAY<INT64>"}


def event_type_names_query(d: Dialect) -> Tuple[str, Dict[str, str]]:
    query = f"""
    SELECT DISTINCT
      {d.as_string('ex.event_id')} AS event_id,
      et.name
    FROM events_x_event_types ex
    JOIN event_types et ON et.id = ex.event_type_id
    WHERE {d.in_ids('ex.event_id', 'ids')}
    ORDER BY event_id, et.name
    """
    return query, {"ids": "ARRAY<INT64>"}


def region_scan_query(d: Dialect) -> Tuple[str, Dict[str, str]]:
    query = f"""
    SELECT
      {d.as_string('o.id')} AS id,
      o.name,
      o.description,
      o.website,
      o.logo_url,
      o.email,
      o.facebook,
      o.twitter,
      o.instagram,
      {d.updated('o')} AS updated
    FROM orgs o
    WHERE o.org_type = '{OrgTypes.REGION}'
      AND o.is_active = TRUE
      AND {_scan_predicate(d, 'o')}
    {_scan_order(d, 'o')}
    """
    return query, dict(SCAN_TYPES)


def active_region_ids_query(d: Dialect) -> Tuple[str, Dict[str, str]]:
    query = f"""
    SELECT {d.as_string('id')} AS id
    FROM orgs
    WHERE org_type = '{OrgTypes.REGION}' AND is_active = TRUE
    """
    return query, {}


def active_events_query(d: Dialect) -> Tuple[str, Dict[str, str]]:
    """Active events with the AO and parent region fields that decide eligibility."""
    query = f"""
    SELECT
      {d.as_string('e.id')} AS id,
      ao.org_type AS ao_org_type,
      ao.is_active AS ao_is_active,
      region.org_type AS region_org_type,
      region.is_active AS region_is_active
    FROM events e
    LEFT JOIN orgs ao ON ao.id = e.org_id
    LEFT JOIN orgs region ON region.id = ao.parent_id
    WHERE e.is_active = TRUE
    """
    return query, {}

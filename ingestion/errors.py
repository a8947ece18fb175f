"""Exceptions raised by the region/workout sync pipeline."""

from __future__ import annotations

from typing import Optional, Sequence


class IngestError(Exception):
    """Base class for pipeline failures that should abort a run."""


class ConfigError(IngestError):
    """Missing or malformed configuration. Raised before any data is touched."""


class WarehouseQueryError(IngestError):
    def __init__(self, label: str, cause: Exception):
        super().__init__(f"Warehouse query '{label}' failed: {cause}")
        self.label = label
        self.cause = cause


class UpsertError(IngestError):
    """A chunk of serving-store writes failed.

    Carries the ids and names of the records in the failed chunk so the
    operator can tell exactly which rows did not land.
    """

    def __init__(
        self,
        table: str,
        ids: Sequence[str],
        names: Sequence[Optional[str]],
        cause: Exception,
    ):
        preview = ", ".join(
            f"{name} ({record_id})" for record_id, name in list(zip(ids, names))[:5]
        )
        if len(ids) > 5:
            preview += f", and {len(ids) - 5} more"
        super().__init__(f"Upsert into {table} failed for {preview}: {cause}")
        self.table = table
        self.ids = list(ids)
        self.names = list(names)
        self.cause = cause


class RowShapeError(ValueError):
    """A warehouse row could not be decoded into a typed record."""

    def __init__(self, row_id: Optional[str], problem: str):
        super().__init__(f"Malformed warehouse row {row_id!r}: {problem}")
        self.row_id = row_id
        self.problem = problem

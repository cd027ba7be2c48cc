"""Error taxonomy for the monitoring pipeline.

- ``DataSourceUnavailable``: a raw-data collaborator could not be reached or
  the expected resource (table, column, remote record) does not exist.
  Fatal for the current check of one entity, never swallowed into zeros.
- ``RecordParseError``: a raw record is missing a required field.
- ``InvariantViolation``: programmer / configuration error (negative
  counts, unordered ladder).  Raised loudly, never scored around.
- ``EntityNotFound``: a startup (or monitoring event) id does not resolve.

Insufficient history is NOT an error; the pure functions return a
well-defined zero / ``no_action`` result instead.
"""

from __future__ import annotations

from typing import Optional


class SentinelError(Exception):
    """Base class for all PoSC Sentinel errors."""


class DataSourceUnavailable(SentinelError):
    """Raised when a raw-data source cannot be queried."""

    def __init__(self, resource: str, detail: Optional[str] = None) -> None:
        self.resource = resource
        self.detail = detail
        message = f"Data source unavailable: {resource}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class RecordParseError(DataSourceUnavailable):
    """Raised when a raw record lacks a field the pipeline requires."""


class InvariantViolation(SentinelError, ValueError):
    """Raised when an input breaks a structural invariant."""


class EntityNotFound(SentinelError):
    """Raised when a startup id does not resolve to a stored entity."""

    def __init__(self, entity_id: str, kind: str = "Startup") -> None:
        self.entity_id = entity_id
        self.kind = kind
        super().__init__(f"{kind} {entity_id} not found")

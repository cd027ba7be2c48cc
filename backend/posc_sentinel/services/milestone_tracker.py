"""Milestone Tracker.

Given the current revenue, a fixed ascending ladder of thresholds and the
labels already achieved, returns the newly crossed milestones in ladder
order.  Achievement is historical: a label is never revoked when revenue
later drops.  The tracker is pure and returns only the delta; persisting
the union is the caller's job.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

from .. import constants
from ..errors import InvariantViolation
from ..schemas.milestone_schema import NewMilestone
from .clock import as_utc, utc_now


class MilestoneLadder:
    """Ordered (label, threshold) pairs with strictly increasing thresholds."""

    def __init__(self, rungs: Sequence[Tuple[str, float]]) -> None:
        rungs = [(str(label), float(threshold)) for label, threshold in rungs]
        labels = [label for label, _ in rungs]
        if len(set(labels)) != len(labels):
            raise InvariantViolation(f"Milestone labels must be unique: {labels}")
        for (prev_label, prev), (label, threshold) in zip(rungs, rungs[1:]):
            if threshold <= prev:
                raise InvariantViolation(
                    f"Milestone ladder must be strictly ascending: "
                    f"{label!r} ({threshold}) follows {prev_label!r} ({prev})"
                )
        self._rungs = rungs

    def __iter__(self):
        return iter(self._rungs)

    def __len__(self) -> int:
        return len(self._rungs)

    @property
    def labels(self) -> List[str]:
        return [label for label, _ in self._rungs]

    def threshold_for(self, label: str) -> float:
        for rung_label, threshold in self._rungs:
            if rung_label == label:
                return threshold
        raise KeyError(label)


DEFAULT_LADDER = MilestoneLadder(constants.MILESTONE_LADDER)


def detect_new_milestones(
    current_revenue: float,
    achieved: Iterable[str],
    ladder: MilestoneLadder = DEFAULT_LADDER,
    now: Optional[datetime] = None,
) -> List[NewMilestone]:
    """Return the milestones crossed for the first time at *current_revenue*.

    A label is new iff it is not in *achieved* and
    ``current_revenue >= threshold``.  Several labels may be crossed in one
    pass; they are returned in ascending ladder order.
    """
    if current_revenue < 0:
        raise InvariantViolation(f"Revenue must be non-negative, got {current_revenue}")

    achieved_set = set(achieved)
    achieved_at = as_utc(now) if now is not None else utc_now()

    return [
        NewMilestone(label=label, achieved_at=achieved_at, revenue=current_revenue)
        for label, threshold in ladder
        if label not in achieved_set and current_revenue >= threshold
    ]

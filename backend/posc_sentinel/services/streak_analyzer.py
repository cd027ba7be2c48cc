"""Streak Analyzer.

Single left-to-right scan over chronologically ordered growth rates
(oldest first).  A period with growth strictly above the threshold
extends the running streak; any other period closes it.  Fewer than two
periods is a valid "insufficient data" state and yields all zeros.
"""

from __future__ import annotations

from typing import Sequence

from .. import constants
from ..schemas.streak_schema import GrowthStreakState


def analyze_streaks(
    growth_rates: Sequence[float],
    threshold_pct: float = constants.STREAK_GROWTH_THRESHOLD_PCT,
) -> GrowthStreakState:
    """Compute current / longest streaks and completed-streak statistics."""
    if len(growth_rates) < constants.STREAK_MIN_PERIODS:
        return GrowthStreakState()

    current = 0
    longest = 0
    completed = 0
    total_duration = 0

    for rate in growth_rates:
        if rate > threshold_pct:
            current += 1
            longest = max(longest, current)
        else:
            if current > 0:
                completed += 1
                total_duration += current
            current = 0

    return GrowthStreakState(
        current_streak=current,
        longest_streak=longest,
        streak_count=completed,
        average_streak_duration=total_duration / completed if completed else 0.0,
    )

"""Centralized thresholds shared by every growth and funding rule.

This module is the SINGLE SOURCE OF TRUTH for the numbers the monitoring
pipeline compares against.  Reused by:
  - Metric Sample Builder / Revenue Snapshot
  - Milestone Tracker, Streak Analyzer, Eligibility Scorer
  - Trigger Evaluator and Funding Amount Estimator
  - Monitoring Service alerts

Percentages are expressed in percent (``20.0`` == 20 %) unless the name
ends in ``_FRACTION``.
"""

from __future__ import annotations

# ── Sampling windows ────────────────────────────────────────────────────
# Current window is [now - N days, now), previous is [now - 2N, now - N).

WINDOW_DAYS: dict[str, int] = {
    "weekly": 7,
    "monthly": 30,
}

# ── Surge detection ─────────────────────────────────────────────────────
# Strictly greater: a multiplier of exactly 1.5 is not a surge.
SURGE_MULTIPLIER: float = 1.5
SURGE_LOOKBACK_DAYS: int = 90

# ── Growth streaks ──────────────────────────────────────────────────────
STREAK_GROWTH_THRESHOLD_PCT: float = 5.0
STREAK_MIN_PERIODS: int = 2

# ── Trigger evaluation ──────────────────────────────────────────────────
MONTHS_TO_EVALUATE: int = 3
SUSTAINED_GROWTH_RATE_PCT: float = 20.0
SUSTAINED_GROWTH_MIN_PERIODS: int = 2
TRIGGER_AVG_GROWTH_PCT: float = 30.0
TRIGGER_MIN_SURGES: int = 2
MONITOR_AVG_GROWTH_PCT: float = 20.0
MONITOR_MIN_SURGES: int = 1

# ── Eligibility scoring bands ───────────────────────────────────────────
# (exclusive lower bound in percent, points), checked top-down.
GROWTH_BANDS: list[tuple[float, int]] = [
    (20.0, 40),
    (10.0, 30),
    (5.0, 20),
    (0.0, 10),
]

# (inclusive minimum streak length, points)
STREAK_BANDS: list[tuple[int, int]] = [
    (3, 30),
    (2, 20),
    (1, 10),
]

# (inclusive minimum milestone count, points)
MILESTONE_BANDS: list[tuple[int, int]] = [
    (3, 20),
    (2, 15),
    (1, 10),
]

RISK_POINTS_PER_FACTOR: int = 3
RISK_MAX_DEDUCTION: int = 10
HIGH_RISK_SEVERITIES: frozenset[str] = frozenset({"HIGH", "CRITICAL"})

SCORE_MIN: int = 0
SCORE_MAX: int = 100
FUNDING_ELIGIBILITY_THRESHOLD: int = 70

# ── Funding amount estimator ────────────────────────────────────────────
FUNDING_BASE_AMOUNT: int = 50_000
FUNDING_GROWTH_FACTOR: float = 10.0
FUNDING_GROWTH_CAP: float = 3.0
FUNDING_REVENUE_DIVISOR: float = 10_000.0
FUNDING_REVENUE_CAP: float = 2.0

# ── Monitoring alerts ───────────────────────────────────────────────────
GROWTH_RATE_THRESHOLD_FRACTION: float = 0.15
SUSTAINED_ALERT_MONTHS: int = 3
SUSTAINED_ALERT_MIN_GROWTH_PCT: float = 5.0

# ── Revenue events (first match wins) ───────────────────────────────────
REVENUE_EVENT_GROWTH_PCT: float = 20.0
REVENUE_EVENT_GROWTH_SHARE: float = 0.6
MRR_MILESTONE_THRESHOLD: float = 25_000.0
MRR_MILESTONE_RECOMMENDATION: int = 15_000
TRANSACTION_VOLUME_THRESHOLD: int = 100
TRANSACTION_VOLUME_MIN_GROWTH_PCT: float = 10.0
TRANSACTION_VOLUME_SHARE: float = 0.4

# ── Revenue milestone ladder ────────────────────────────────────────────
# LOCKED order: strictly ascending thresholds in major currency units.

MILESTONE_LADDER: list[tuple[str, float]] = [
    ("$5K", 5_000.0),
    ("$10K", 10_000.0),
    ("$25K", 25_000.0),
    ("$50K", 50_000.0),
    ("$100K", 100_000.0),
    ("$250K", 250_000.0),
    ("$500K", 500_000.0),
    ("$1M", 1_000_000.0),
]

# ── Signup table discovery ──────────────────────────────────────────────
USER_TABLE_HINTS: tuple[str, ...] = ("user", "account", "member", "customer")
DATE_COLUMN_HINTS: tuple[str, ...] = ("created", "signup", "registered", "joined")
DEFAULT_DATE_COLUMN: str = "created_at"

# Stripe amounts arrive in minor units (cents).
MINOR_UNITS_PER_MAJOR: int = 100
SUCCEEDED_STATUS: str = "succeeded"

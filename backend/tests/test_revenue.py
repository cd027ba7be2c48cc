"""Revenue snapshot, revenue event detector and trend label tests."""

import os
import sys

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from datetime import datetime, timedelta, timezone

import pytest

from posc_sentinel.errors import InvariantViolation
from posc_sentinel.schemas.event_schema import RevenueEventType
from posc_sentinel.schemas.metric_schema import RevenueSnapshot
from posc_sentinel.schemas.records_schema import PaymentTransaction
from posc_sentinel.services.revenue_events import classify_trend, detect_revenue_event
from posc_sentinel.services.revenue_snapshot import (
    build_revenue_snapshot,
    calculate_mrr,
    customer_totals,
)

NOW = datetime(2025, 2, 15, tzinfo=timezone.utc)


def _tx(tx_id, amount, days_ago, customer=None, status="succeeded"):
    return PaymentTransaction(
        id=tx_id,
        amount=amount,
        status=status,
        customer_key=customer,
        timestamp=NOW - timedelta(days=days_ago),
    )


TRANSACTIONS = [
    _tx("pi_1", 10_000, 1, "cus_a"),
    _tx("pi_2", 5_000, 3, "cus_a"),
    _tx("pi_3", 20_000, 10, "cus_b"),
    _tx("pi_4", 3_000, 12),
    _tx("pi_5", 99_999, 2, "cus_c", status="requires_payment_method"),
    _tx("pi_6", 20_000, 40, "cus_a"),
]


# ===================================================================== #
#  MRR / snapshot                                                         #
# ===================================================================== #

class TestCustomerTotals:
    def test_groups_by_customer_with_anonymous_fallback(self):
        totals = customer_totals(TRANSACTIONS[:5])
        assert totals == {"cus_a": 150.0, "cus_b": 200.0, "anon_pi_4": 30.0}

    def test_zero_amounts_ignored(self):
        assert customer_totals([_tx("pi_z", 0, 1, "cus_z")]) == {}

    def test_calculate_mrr(self):
        assert calculate_mrr(TRANSACTIONS[:5]) == 380.0


class TestBuildRevenueSnapshot:
    def test_snapshot(self):
        snap = build_revenue_snapshot("s-1", TRANSACTIONS, NOW)
        assert snap.period_key == "2025-02"
        assert snap.current_mrr == 380.0
        assert snap.previous_mrr == 200.0
        assert snap.growth_rate_pct == pytest.approx(90.0)
        assert snap.transaction_count == 5
        assert snap.customer_count == 3
        assert snap.window_start == NOW - timedelta(days=30)

    def test_empty_history(self):
        snap = build_revenue_snapshot("s-1", [], NOW)
        assert snap.current_mrr == 0.0
        assert snap.growth_rate_pct == 0.0
        assert snap.customer_count == 0

    def test_non_positive_window_rejected(self):
        with pytest.raises(InvariantViolation):
            build_revenue_snapshot("s-1", [], NOW, window_days=0)


# ===================================================================== #
#  Revenue events                                                         #
# ===================================================================== #

def _snapshot(current, previous, rate, tx_count=10):
    return RevenueSnapshot(
        entity_id="s-1",
        period_key="2025-02",
        window_start=NOW - timedelta(days=30),
        window_end=NOW,
        current_mrr=current,
        previous_mrr=previous,
        growth_rate_pct=rate,
        transaction_count=tx_count,
        customer_count=5,
    )


class TestDetectRevenueEvent:
    def test_revenue_growth(self):
        event = detect_revenue_event(_snapshot(12_000.0, 10_000.0, 20.0))
        assert event.type is RevenueEventType.REVENUE_GROWTH
        assert event.funding_recommendation == 7_200
        assert "20.0%" in event.rationale

    def test_growth_wins_over_milestone(self):
        event = detect_revenue_event(_snapshot(30_000.0, 20_000.0, 50.0))
        assert event.type is RevenueEventType.REVENUE_GROWTH

    def test_mrr_milestone_crossing(self):
        event = detect_revenue_event(_snapshot(25_500.0, 24_000.0, 6.25))
        assert event.type is RevenueEventType.MRR_MILESTONE
        assert event.funding_recommendation == 15_000

    def test_milestone_only_on_crossing(self):
        assert detect_revenue_event(_snapshot(27_000.0, 26_000.0, 3.85)) is None

    def test_transaction_volume(self):
        event = detect_revenue_event(_snapshot(10_000.0, 8_900.0, 12.0, tx_count=150))
        assert event.type is RevenueEventType.TRANSACTION_VOLUME
        assert event.funding_recommendation == 4_000

    def test_volume_needs_growth_above_ten(self):
        assert detect_revenue_event(_snapshot(10_000.0, 9_090.0, 10.0, tx_count=150)) is None

    def test_quiet_period(self):
        assert detect_revenue_event(_snapshot(1_000.0, 950.0, 5.0)) is None


class TestClassifyTrend:
    def test_labels(self):
        assert classify_trend(2, 1) == "INCREASING"
        assert classify_trend(1, 2) == "DECREASING"
        assert classify_trend(1, 1) == "STABLE"

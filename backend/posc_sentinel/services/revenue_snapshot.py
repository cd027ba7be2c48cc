"""Revenue Snapshot builder.

Derives MRR-style metrics from a raw transaction list:

1. keep successful transactions with a positive amount,
2. split them into the current and previous half-open windows,
3. group by customer identity (``anon_<transaction id>`` when absent),
4. sum per customer, then across customers.

The per-customer grouping yields the same total as summing every
successful amount directly; it is kept because ``customer_count`` and
future per-customer breakdowns are read from it.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Dict, Iterable, List

from .. import constants
from ..errors import InvariantViolation
from ..schemas.metric_schema import PeriodType, RevenueSnapshot
from ..schemas.records_schema import PaymentTransaction
from .clock import as_utc
from .metric_builder import compute_growth_rate, period_key_for
from .sources import RawTransactionSource

logger = logging.getLogger(__name__)


def _customer_key(tx: PaymentTransaction) -> str:
    return tx.customer_key or f"anon_{tx.id}"


def customer_totals(transactions: Iterable[PaymentTransaction]) -> Dict[str, float]:
    """Sum successful amounts per customer, in major currency units."""
    totals: Dict[str, float] = defaultdict(float)
    for tx in transactions:
        if tx.status != constants.SUCCEEDED_STATUS or tx.amount <= 0:
            continue
        totals[_customer_key(tx)] += tx.amount / constants.MINOR_UNITS_PER_MAJOR
    return dict(totals)


def calculate_mrr(transactions: Iterable[PaymentTransaction]) -> float:
    """Total revenue of *transactions* across all paying customers."""
    return round(sum(customer_totals(transactions).values()), 2)


def build_revenue_snapshot(
    entity_id: str,
    transactions: Iterable[PaymentTransaction],
    now: datetime,
    window_days: int = constants.WINDOW_DAYS["monthly"],
) -> RevenueSnapshot:
    """Build a ``RevenueSnapshot`` for the window ending at *now*."""
    if window_days <= 0:
        raise InvariantViolation(f"window_days must be positive, got {window_days}")

    now = as_utc(now)
    window = timedelta(days=window_days)
    window_start = now - window
    previous_start = now - 2 * window

    current: List[PaymentTransaction] = []
    previous: List[PaymentTransaction] = []
    for tx in transactions:
        ts = as_utc(tx.timestamp)
        if window_start <= ts < now:
            current.append(tx)
        elif previous_start <= ts < window_start:
            previous.append(tx)

    current_totals = customer_totals(current)
    current_mrr = round(sum(current_totals.values()), 2)
    previous_mrr = calculate_mrr(previous)

    return RevenueSnapshot(
        entity_id=str(entity_id),
        period_key=period_key_for(now, PeriodType.MONTHLY),
        window_start=window_start,
        window_end=now,
        current_mrr=current_mrr,
        previous_mrr=previous_mrr,
        growth_rate_pct=compute_growth_rate(current_mrr, previous_mrr),
        transaction_count=len(current),
        customer_count=len(current_totals),
    )


def collect_revenue_snapshot(
    source: RawTransactionSource,
    entity_id: str,
    now: datetime,
    window_days: int = constants.WINDOW_DAYS["monthly"],
) -> RevenueSnapshot:
    """Fetch both windows from *source* and build the snapshot."""
    now = as_utc(now)
    window = timedelta(days=window_days)
    transactions = source.fetch_transactions(str(entity_id), now - 2 * window, now)
    snapshot = build_revenue_snapshot(entity_id, transactions, now, window_days)

    logger.info(
        "Revenue snapshot %s for %s: MRR=%.2f previous=%.2f rate=%.1f%% tx=%d customers=%d",
        snapshot.period_key,
        entity_id,
        snapshot.current_mrr,
        snapshot.previous_mrr,
        snapshot.growth_rate_pct,
        snapshot.transaction_count,
        snapshot.customer_count,
    )
    return snapshot

"""SQL persistence tests: per-period uniqueness, ordering, surge counting, logs."""

import os
import sys

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import datetime as dt
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from posc_sentinel.database import Base
from posc_sentinel.errors import EntityNotFound
from posc_sentinel.models import Startup
from posc_sentinel.schemas.evaluation_schema import Recommendation, TriggerEvaluation
from posc_sentinel.schemas.event_schema import EventType
from posc_sentinel.schemas.metric_schema import DailyCount, MetricSample, PeriodType, RevenueSnapshot
from posc_sentinel.schemas.milestone_schema import NewMilestone
from posc_sentinel.services.repositories import (
    SqlEvaluationLog,
    SqlEventLog,
    SqlMilestoneStore,
    SqlSeriesRepository,
    event_out,
)

TEST_DATABASE_URL = "sqlite:///./test_repositories.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

NOW = datetime(2025, 3, 1, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def setup_db():
    """Create tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture
def startup_id(db):
    startup = Startup(name="Acme", email="founder@acme.io", company="Acme")
    db.add(startup)
    db.commit()
    return str(startup.id)


def _sample(entity_id, key, end, rate=10.0, surge=False, new=11, previous=10,
            period_type=PeriodType.MONTHLY, breakdown=None):
    days = 30 if period_type is PeriodType.MONTHLY else 7
    return MetricSample(
        entity_id=entity_id,
        period_type=period_type,
        period_key=key,
        window_start=end - timedelta(days=days),
        window_end=end,
        new_count=new,
        previous_count=previous,
        growth_rate_pct=rate,
        growth_multiplier=new / previous,
        surge=surge,
        daily_breakdown=breakdown,
    )


def _snapshot(entity_id, key, end, current, previous, rate):
    return RevenueSnapshot(
        entity_id=entity_id,
        period_key=key,
        window_start=end - timedelta(days=30),
        window_end=end,
        current_mrr=current,
        previous_mrr=previous,
        growth_rate_pct=rate,
        transaction_count=4,
        customer_count=2,
    )


# ===================================================================== #
#  Series                                                                 #
# ===================================================================== #

class TestSeriesAppend:
    def test_one_sample_per_period(self, db, startup_id):
        repo = SqlSeriesRepository(db)
        first = _sample(startup_id, "2025-02", NOW, rate=10.0)
        duplicate = _sample(startup_id, "2025-02", NOW + timedelta(hours=1), rate=99.0, new=20)

        assert repo.append(startup_id, first) is True
        assert repo.append(startup_id, duplicate) is False

        stored = repo.latest(startup_id, PeriodType.MONTHLY, 10)
        assert len(stored) == 1
        assert stored[0].growth_rate_pct == 10.0

    def test_same_key_different_period_type(self, db, startup_id):
        repo = SqlSeriesRepository(db)
        assert repo.append(startup_id, _sample(startup_id, "2025-09", NOW))
        assert repo.append(startup_id, _sample(startup_id, "2025-09", NOW, period_type=PeriodType.WEEKLY))

    def test_round_trip_preserves_fields(self, db, startup_id):
        repo = SqlSeriesRepository(db)
        breakdown = [DailyCount(date=dt.date(2025, 2, 27), count=3)]
        sample = _sample(startup_id, "2025-W09", NOW, period_type=PeriodType.WEEKLY, breakdown=breakdown)
        repo.append(startup_id, sample)

        stored = repo.latest(startup_id, PeriodType.WEEKLY, 1)[0]
        assert stored == sample


class TestSeriesQueries:
    def test_latest_is_newest_first_and_limited(self, db, startup_id):
        repo = SqlSeriesRepository(db)
        for i, key in enumerate(["2024-12", "2025-01", "2025-02"]):
            repo.append(startup_id, _sample(startup_id, key, NOW - timedelta(days=30 * (2 - i)), rate=float(i)))

        latest = repo.latest(startup_id, PeriodType.MONTHLY, 2)
        assert [s.period_key for s in latest] == ["2025-02", "2025-01"]

    def test_count_surges_in_lookback(self, db, startup_id):
        repo = SqlSeriesRepository(db)
        repo.append(startup_id, _sample(startup_id, "a", NOW - timedelta(days=5), surge=False))
        repo.append(startup_id, _sample(startup_id, "b", NOW - timedelta(days=10), surge=True))
        repo.append(startup_id, _sample(startup_id, "c", NOW - timedelta(days=60), surge=True))
        repo.append(startup_id, _sample(startup_id, "d", NOW - timedelta(days=100), surge=True))

        assert repo.count_surges(startup_id, 90, now=NOW) == 2
        assert repo.count_surges(startup_id, 30, now=NOW) == 1

    def test_monthly_stats(self, db, startup_id):
        repo = SqlSeriesRepository(db)
        assert repo.monthly_stats(startup_id).total_users == 0

        repo.append(startup_id, _sample(startup_id, "2025-01", NOW - timedelta(days=30), rate=20.0, surge=True))
        repo.append(startup_id, _sample(startup_id, "2025-02", NOW, rate=40.0, new=14, previous=10))

        stats = repo.monthly_stats(startup_id)
        assert stats.total_users == 24
        assert stats.avg_monthly_growth == 30.0
        assert stats.surge_months == 1

    def test_growth_trend_oldest_first(self, db, startup_id):
        repo = SqlSeriesRepository(db)
        repo.append(startup_id, _sample(startup_id, "2025-01", NOW - timedelta(days=30), rate=1.0))
        repo.append(startup_id, _sample(startup_id, "2025-02", NOW, rate=2.0))
        assert repo.growth_trend(startup_id) == [1.0, 2.0]


class TestRevenueSnapshots:
    def test_append_is_idempotent_per_month(self, db, startup_id):
        repo = SqlSeriesRepository(db)
        assert repo.append_revenue_snapshot(startup_id, _snapshot(startup_id, "2025-02", NOW, 500.0, 400.0, 25.0))
        assert not repo.append_revenue_snapshot(startup_id, _snapshot(startup_id, "2025-02", NOW, 9.0, 1.0, 800.0))

        stored = repo.latest_revenue_snapshots(startup_id, 5)
        assert len(stored) == 1
        assert stored[0].current_mrr == 500.0

    def test_growth_history_is_unbounded_and_oldest_first(self, db, startup_id):
        repo = SqlSeriesRepository(db)
        for months_back in range(15, 0, -1):
            end = NOW - timedelta(days=30 * months_back)
            repo.append_revenue_snapshot(
                startup_id, _snapshot(startup_id, f"p{months_back:02d}", end, 100.0, 100.0, float(months_back))
            )

        assert repo.revenue_growth_history(startup_id) == [float(m) for m in range(15, 0, -1)]


# ===================================================================== #
#  Milestones                                                             #
# ===================================================================== #

class TestMilestoneStore:
    def test_add_and_get(self, db, startup_id):
        store = SqlMilestoneStore(db)
        assert store.get(startup_id) == set()

        store.add(startup_id, [NewMilestone(label="$5K", achieved_at=NOW, revenue=6_000.0)])
        store.add(startup_id, [
            NewMilestone(label="$5K", achieved_at=NOW, revenue=7_000.0),
            NewMilestone(label="$10K", achieved_at=NOW, revenue=12_000.0),
        ])
        assert store.get(startup_id) == {"$5K", "$10K"}


# ===================================================================== #
#  Evaluation and event logs                                              #
# ===================================================================== #

class TestEvaluationLog:
    def test_latest(self, db, startup_id):
        log = SqlEvaluationLog(db)
        assert log.latest(startup_id) is None

        for day, rec in ((1, Recommendation.MONITOR), (2, Recommendation.TRIGGER)):
            log.record(TriggerEvaluation(
                entity_id=startup_id,
                evaluation_date=NOW + timedelta(days=day),
                avg_monthly_growth_rate=35.0,
                sustained_growth=True,
                recommendation=rec,
                reasoning="test",
                growth_rates=[35.0, 30.0],
                surge_count=2,
            ))

        latest = log.latest(startup_id)
        assert latest.recommendation is Recommendation.TRIGGER
        assert latest.growth_rates == [35.0, 30.0]
        assert latest.evaluation_date == NOW + timedelta(days=2)


class TestEventLog:
    def test_record_and_list(self, db, startup_id):
        log = SqlEventLog(db)
        log.record(startup_id, EventType.GROWTH_THRESHOLD, {"growth_rate": 0.2}, 0.2, 0.15)
        log.record(startup_id, EventType.SALES_MILESTONE, {"milestone": "$5K"}, 6_000, 5_000, severity="HIGH")

        events = log.list(startup_id)
        assert {e.event_type for e in events} == {"GROWTH_THRESHOLD", "SALES_MILESTONE"}
        out = event_out(events[0])
        assert isinstance(out.event_data, dict)

    def test_status_stamps(self, db, startup_id):
        log = SqlEventLog(db)
        event = log.record(startup_id, EventType.FUNDING_ELIGIBLE, {}, 80, 70, funding_eligible=True)

        notified = log.mark_notified(str(event.id), now=NOW)
        assert notified.notified_at == NOW.replace(tzinfo=None)
        again = log.mark_notified(str(event.id), now=NOW + timedelta(days=1))
        assert again.notified_at == NOW.replace(tzinfo=None)

        assert log.resolve(str(event.id), now=NOW).resolved_at is not None

    def test_unknown_event(self, db):
        with pytest.raises(EntityNotFound):
            SqlEventLog(db).resolve("00000000-0000-0000-0000-000000000000")

"""SQL signup source tests: table / column discovery and failure taxonomy."""

import os
import sys

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import datetime as dt
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import Column, Date, DateTime, Integer, MetaData, String, Table, create_engine
from sqlalchemy.orm import sessionmaker

from posc_sentinel.database import Base
from posc_sentinel.errors import DataSourceUnavailable, EntityNotFound, RecordParseError
from posc_sentinel.models import Startup
from posc_sentinel.services.sources import SqlSignupEventSource

# ---------------------------------------------------------------------------
# Service database (holds the Startup rows)
# ---------------------------------------------------------------------------
TEST_DATABASE_URL = "sqlite:///./test_sql_source.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

NOW = datetime(2025, 1, 22, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def setup_db():
    """Create tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


def _signup_db(path, table_name="users", date_column="created_at", rows=(), column_type=DateTime):
    """Create a startup-owned SQLite database with one user table."""
    url = f"sqlite:///{path}"
    signup_engine = create_engine(url)
    metadata = MetaData()
    table = Table(
        table_name,
        metadata,
        Column("id", Integer, primary_key=True),
        Column("email", String(255)),
        Column(date_column, column_type),
    )
    metadata.create_all(signup_engine)
    with signup_engine.begin() as conn:
        for i, ts in enumerate(rows):
            conn.execute(table.insert().values(email=f"u{i}@example.com", **{date_column: ts}))
    signup_engine.dispose()
    return url


def _startup(**kwargs):
    db = TestingSessionLocal()
    startup = Startup(name="Acme", email="founder@acme.io", company="Acme", **kwargs)
    db.add(startup)
    db.commit()
    startup_id = str(startup.id)
    db.close()
    return startup_id


def _naive(days):
    return (NOW - timedelta(days=days)).replace(tzinfo=None)


# ===================================================================== #
#  Happy paths                                                            #
# ===================================================================== #

class TestFetchEvents:
    def test_reads_configured_table(self, tmp_path):
        url = _signup_db(tmp_path / "signups.db", rows=[_naive(1), _naive(3), _naive(9), _naive(30)])
        startup_id = _startup(signup_db_url=url, signup_table="users", signup_date_column="created_at")

        source = SqlSignupEventSource(TestingSessionLocal)
        events = source.fetch_events(startup_id, NOW - timedelta(days=14), NOW)

        assert len(events) == 3
        assert all(e.timestamp.tzinfo is not None for e in events)

    def test_discovers_table_and_column(self, tmp_path):
        url = _signup_db(
            tmp_path / "signups.db",
            table_name="app_accounts",
            date_column="signup_date",
            rows=[_naive(2)],
        )
        startup_id = _startup(signup_db_url=url)

        events = SqlSignupEventSource(TestingSessionLocal).fetch_events(
            startup_id, NOW - timedelta(days=7), NOW
        )
        assert len(events) == 1

    def test_date_typed_column(self, tmp_path):
        url = _signup_db(
            tmp_path / "signups.db",
            rows=[_naive(2).date(), _naive(30).date()],
            column_type=Date,
        )
        startup_id = _startup(signup_db_url=url, signup_table="users", signup_date_column="created_at")

        events = SqlSignupEventSource(TestingSessionLocal).fetch_events(
            startup_id, NOW - timedelta(days=7), NOW
        )
        assert [e.timestamp for e in events] == [datetime(2025, 1, 20, tzinfo=timezone.utc)]

    def test_empty_window_is_not_an_error(self, tmp_path):
        url = _signup_db(tmp_path / "signups.db", rows=[_naive(100)])
        startup_id = _startup(signup_db_url=url)

        assert SqlSignupEventSource(TestingSessionLocal).fetch_events(
            startup_id, NOW - timedelta(days=7), NOW
        ) == []


# ===================================================================== #
#  Failures                                                               #
# ===================================================================== #

class TestFailures:
    def test_unknown_startup(self):
        with pytest.raises(EntityNotFound):
            SqlSignupEventSource(TestingSessionLocal).fetch_events(
                "00000000-0000-0000-0000-000000000000", NOW - timedelta(days=7), NOW
            )

    def test_no_configuration(self):
        startup_id = _startup()
        with pytest.raises(DataSourceUnavailable) as exc_info:
            SqlSignupEventSource(TestingSessionLocal).fetch_events(startup_id, NOW - timedelta(days=7), NOW)
        assert exc_info.value.resource == "signups"

    def test_missing_table(self, tmp_path):
        url = _signup_db(tmp_path / "signups.db")
        startup_id = _startup(signup_db_url=url, signup_table="people")
        with pytest.raises(DataSourceUnavailable) as exc_info:
            SqlSignupEventSource(TestingSessionLocal).fetch_events(startup_id, NOW - timedelta(days=7), NOW)
        assert exc_info.value.resource == "signups:people"

    def test_missing_column(self, tmp_path):
        url = _signup_db(tmp_path / "signups.db")
        startup_id = _startup(signup_db_url=url, signup_table="users", signup_date_column="joined_on")
        with pytest.raises(DataSourceUnavailable) as exc_info:
            SqlSignupEventSource(TestingSessionLocal).fetch_events(startup_id, NOW - timedelta(days=7), NOW)
        assert exc_info.value.resource == "signups:users.joined_on"

    def test_no_user_like_table(self, tmp_path):
        url = _signup_db(tmp_path / "signups.db", table_name="orders")
        startup_id = _startup(signup_db_url=url)
        with pytest.raises(DataSourceUnavailable):
            SqlSignupEventSource(TestingSessionLocal).fetch_events(startup_id, NOW - timedelta(days=7), NOW)


class TestCoerceTimestamp:
    def test_iso_string(self):
        ts = SqlSignupEventSource._coerce_timestamp("2025-01-20T10:00:00", "signups:users.created_at")
        assert ts == datetime(2025, 1, 20, 10, 0, tzinfo=timezone.utc)

    def test_garbage_string(self):
        with pytest.raises(RecordParseError):
            SqlSignupEventSource._coerce_timestamp("yesterday", "signups:users.created_at")

    def test_null(self):
        with pytest.raises(RecordParseError):
            SqlSignupEventSource._coerce_timestamp(None, "signups:users.created_at")

    def test_date_value_is_midnight_utc(self):
        ts = SqlSignupEventSource._coerce_timestamp(dt.date(2025, 1, 20), "signups:users.created_at")
        assert ts == datetime(2025, 1, 20, tzinfo=timezone.utc)


class TestClose:
    def test_disposes_cached_engines(self, tmp_path):
        url = _signup_db(tmp_path / "signups.db", rows=[_naive(1)])
        startup_id = _startup(signup_db_url=url)
        source = SqlSignupEventSource(TestingSessionLocal)
        source.fetch_events(startup_id, NOW - timedelta(days=7), NOW)
        assert source._engines

        source.close()
        assert source._engines == {}

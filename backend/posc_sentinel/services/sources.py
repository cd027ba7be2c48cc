"""Raw-data sources.

Defines the ``RawEventSource`` and ``RawTransactionSource`` interfaces and
the SQL-backed signup source.  The monitoring service interacts only with
the interfaces, so a data source is swappable without touching the
pipeline.

Contract
--------
- Return a fully materialised sequence of tagged records
- An empty sequence means "no records in the window", nothing else
- Any failure to ask (unreachable database, missing table / column,
  remote error) raises ``DataSourceUnavailable``
"""

from __future__ import annotations

import abc
import logging
import threading
from datetime import date, datetime, time, timezone
from typing import Callable, Dict, List, Optional, Sequence

from sqlalchemy import MetaData, Table, create_engine, inspect, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import constants
from ..errors import DataSourceUnavailable, EntityNotFound, RecordParseError
from ..models.startup import Startup
from ..schemas.records_schema import PaymentTransaction, SignupEvent
from .clock import as_naive_utc, as_utc

logger = logging.getLogger(__name__)


# ===================================================================== #
#  Abstract interfaces                                                    #
# ===================================================================== #

class RawEventSource(abc.ABC):
    """Supplies dated primary-growth records (signups, account creations)."""

    @abc.abstractmethod
    def fetch_events(
        self,
        entity_id: str,
        window_start: datetime,
        window_end: datetime,
    ) -> Sequence[SignupEvent]:
        """Return records with ``window_start <= timestamp < window_end``."""

    def close(self) -> None:
        """Release connections held by the source."""


class RawTransactionSource(abc.ABC):
    """Supplies payment transactions for revenue snapshots."""

    @abc.abstractmethod
    def fetch_transactions(
        self,
        entity_id: str,
        window_start: datetime,
        window_end: datetime,
    ) -> Sequence[PaymentTransaction]:
        """Return transactions created in ``[window_start, window_end)``."""

    def close(self) -> None:
        """Release connections held by the source."""


# ===================================================================== #
#  SQL signup source                                                      #
# ===================================================================== #

class SqlSignupEventSource(RawEventSource):
    """Counts rows of a startup's own user table by creation date.

    The startup row stores the connection URL and, optionally, the table
    and date column.  When they are not given, the table is discovered by
    name hints (``user``, ``account``, ``member``, ``customer``) and the
    date column by ``created``, ``signup``, ``registered``, ``joined``,
    falling back to ``created_at``.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory
        self._engines: Dict[str, Engine] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------ #
    #  Public                                                              #
    # ------------------------------------------------------------------ #

    def fetch_events(
        self,
        entity_id: str,
        window_start: datetime,
        window_end: datetime,
    ) -> List[SignupEvent]:
        db_url, table_hint, column_hint = self._load_config(entity_id)
        engine = self._engine_for(db_url)

        resource = f"signups:{table_hint or '<discover>'}"
        try:
            inspector = inspect(engine)
            table_name = self._resolve_table(inspector.get_table_names(), table_hint)
            resource = f"signups:{table_name}"
            columns = [col["name"] for col in inspector.get_columns(table_name)]
            date_column = self._resolve_date_column(columns, table_name, column_hint)
            resource = f"signups:{table_name}.{date_column}"

            table = Table(table_name, MetaData(), autoload_with=engine)
            column = table.c[date_column]
            stmt = select(column).where(
                column >= as_naive_utc(window_start),
                column < as_naive_utc(window_end),
            )
            with engine.connect() as conn:
                values = conn.execute(stmt).scalars().all()
        except SQLAlchemyError as exc:
            raise DataSourceUnavailable(resource, str(exc)) from exc
        except ValueError as exc:
            # driver-level conversion of a malformed stored timestamp
            raise RecordParseError(resource, str(exc)) from exc

        return [SignupEvent(timestamp=self._coerce_timestamp(v, resource)) for v in values]

    def close(self) -> None:
        with self._lock:
            engines, self._engines = list(self._engines.values()), {}
        for engine in engines:
            engine.dispose()

    # ------------------------------------------------------------------ #
    #  Internal helpers                                                    #
    # ------------------------------------------------------------------ #

    def _load_config(self, entity_id: str):
        db = self._session_factory()
        try:
            startup = db.get(Startup, entity_id)
            if startup is None:
                raise EntityNotFound(str(entity_id))
            if not startup.signup_db_url:
                raise DataSourceUnavailable("signups", "no signup database configured")
            return startup.signup_db_url, startup.signup_table, startup.signup_date_column
        finally:
            db.close()

    def _engine_for(self, db_url: str) -> Engine:
        with self._lock:
            engine = self._engines.get(db_url)
            if engine is None:
                try:
                    engine = create_engine(db_url, pool_pre_ping=True)
                except (SQLAlchemyError, ValueError) as exc:
                    raise DataSourceUnavailable("signups", f"invalid database URL: {exc}") from exc
                self._engines[db_url] = engine
            return engine

    @staticmethod
    def _resolve_table(tables: List[str], hint: Optional[str]) -> str:
        if hint:
            if hint not in tables:
                raise DataSourceUnavailable(f"signups:{hint}", "table not found")
            return hint

        candidates = [
            name for name in tables
            if any(h in name.lower() for h in constants.USER_TABLE_HINTS)
        ]
        if not candidates:
            raise DataSourceUnavailable(
                "signups:<discover>",
                "could not identify a users table; configure signup_table explicitly",
            )
        return candidates[0]

    @staticmethod
    def _resolve_date_column(columns: List[str], table: str, hint: Optional[str]) -> str:
        if hint:
            if hint not in columns:
                raise DataSourceUnavailable(f"signups:{table}.{hint}", "column not found")
            return hint

        for name in columns:
            if any(h in name.lower() for h in constants.DATE_COLUMN_HINTS):
                return name
        if constants.DEFAULT_DATE_COLUMN in columns:
            return constants.DEFAULT_DATE_COLUMN
        raise DataSourceUnavailable(
            f"signups:{table}.{constants.DEFAULT_DATE_COLUMN}",
            "no creation-date column found",
        )

    @staticmethod
    def _coerce_timestamp(value, resource: str) -> datetime:
        if isinstance(value, datetime):
            return as_utc(value)
        if isinstance(value, date):  # DATE-typed creation column
            return datetime.combine(value, time.min, tzinfo=timezone.utc)
        if isinstance(value, str):
            try:
                return as_utc(datetime.fromisoformat(value))
            except ValueError as exc:
                raise RecordParseError(resource, f"unparseable timestamp {value!r}") from exc
        raise RecordParseError(resource, f"missing or invalid timestamp {value!r}")

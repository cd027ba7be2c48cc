"""Monitoring scheduler tests: lifecycle, status bookkeeping, manual trigger."""

import os
import sys

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from posc_sentinel.schemas.monitoring_schema import CheckFailure, CheckOutcome
from posc_sentinel.services.scheduler import MonitoringScheduler

NOW = datetime(2025, 3, 1, tzinfo=timezone.utc)


def _outcome(entity_id, failed=False):
    failures = [CheckFailure(stage="signups", resource="signups", message="down")] if failed else []
    return CheckOutcome(entity_id=entity_id, checked_at=NOW, failures=failures)


def _scheduler(service=None, backend=None):
    service = service or MagicMock()
    backend = backend or MagicMock()
    return MonitoringScheduler(
        service,
        interval_seconds=300,
        scheduler_factory=lambda: backend,
        clock=lambda: NOW,
    ), service, backend


class TestLifecycle:
    def test_start_schedules_interval_job(self):
        scheduler, _, backend = _scheduler()

        assert scheduler.start() is True
        assert scheduler.is_running

        kwargs = backend.add_job.call_args.kwargs
        assert backend.add_job.call_args.args[1] == "interval"
        assert kwargs["seconds"] == 300
        assert kwargs["max_instances"] == 1
        assert kwargs["next_run_time"] == NOW
        backend.start.assert_called_once()

    def test_start_is_idempotent(self):
        scheduler, _, backend = _scheduler()
        scheduler.start()
        assert scheduler.start() is False
        assert backend.add_job.call_count == 1

    def test_stop(self):
        scheduler, _, backend = _scheduler()
        assert scheduler.stop() is False

        scheduler.start()
        assert scheduler.stop() is True
        backend.shutdown.assert_called_once_with(wait=False)
        assert scheduler.status().is_running is False

    def test_close_stops_and_releases_sources(self):
        scheduler, service, backend = _scheduler()
        scheduler.start()
        scheduler.close()
        backend.shutdown.assert_called_once_with(wait=False)
        service.close.assert_called_once_with()

    def test_restart_builds_a_fresh_scheduler(self):
        backends = [MagicMock(), MagicMock()]
        scheduler = MonitoringScheduler(MagicMock(), 60, scheduler_factory=lambda: backends.pop(0))
        scheduler.start()
        scheduler.stop()
        assert scheduler.start() is True
        assert backends == []

    def test_rejects_non_positive_interval(self):
        with pytest.raises(ValueError):
            MonitoringScheduler(MagicMock(), 0)


class TestWork:
    def test_run_once_updates_status(self):
        service = MagicMock()
        service.run_cycle.return_value = [_outcome("a"), _outcome("b", failed=True), _outcome("c")]
        scheduler, _, _ = _scheduler(service)

        assert scheduler.status().last_check is None
        scheduler.run_once()

        status = scheduler.status()
        assert status.last_check == NOW
        assert status.entities_checked == 3
        assert status.last_failures == 1
        assert status.interval_seconds == 300

    def test_trigger_delegates_to_service(self):
        service = MagicMock()
        service.check_entity.return_value = _outcome("a")
        scheduler, _, _ = _scheduler(service)

        assert scheduler.trigger("a").entity_id == "a"
        service.check_entity.assert_called_once_with("a")

"""
Tests for the Celery reaper task and the in-process reaper thread.
"""

import threading
from datetime import datetime, timezone
from unittest.mock import Mock

from flask import Flask

from dropbin.application.dependency_container import DependencyContainer
from dropbin.application.expiration_reaper import ExpirationReaper, ReapReport
from dropbin.tasks.cleanup_task import reap_expired_entries
from dropbin.tasks.reaper_scheduler import ReaperScheduler


def make_report(**kwargs):
    return ReapReport(started_at=datetime(2024, 1, 1, tzinfo=timezone.utc), **kwargs)


class TestReapTask:
    def test_resolves_reaper_from_container(self):
        reaper = Mock(spec=ExpirationReaper)
        reaper.run_cycle.return_value = make_report(scanned=3, reclaimed=2, failed=1, errors=["x"])
        app = Flask(__name__)
        app.container = DependencyContainer()
        app.container.register_singleton(ExpirationReaper, reaper)

        with app.app_context():
            result = reap_expired_entries()

        assert result["scanned"] == 3
        assert result["reclaimed"] == 2
        assert result["failed"] == 1

    def test_container_without_reaper(self):
        app = Flask(__name__)
        app.container = DependencyContainer()

        with app.app_context():
            result = reap_expired_entries()

        assert result["errors"] == ["Expiration reaper is not registered"]

    def test_without_container(self):
        app = Flask(__name__)

        with app.app_context():
            result = reap_expired_entries()

        assert result["reclaimed"] == 0
        assert result["errors"]


class TestReaperScheduler:
    def test_runs_cycles_until_shutdown(self):
        ran = threading.Event()
        reaper = Mock(spec=ExpirationReaper)

        def cycle():
            ran.set()
            return make_report()

        reaper.run_cycle.side_effect = cycle
        scheduler = ReaperScheduler(reaper, interval_seconds=0.01)

        scheduler.start()
        assert ran.wait(2)
        assert scheduler.running

        scheduler.shutdown(wait=True, timeout=2)
        assert not scheduler.running
        assert scheduler.last_report is not None

    def test_failed_cycle_keeps_thread_alive(self):
        recovered = threading.Event()
        calls = []
        reaper = Mock(spec=ExpirationReaper)

        def cycle():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("boom")
            recovered.set()
            return make_report()

        reaper.run_cycle.side_effect = cycle
        scheduler = ReaperScheduler(reaper, interval_seconds=0.01)
        scheduler.start()

        assert recovered.wait(2)
        scheduler.shutdown(wait=True, timeout=2)

    def test_run_once(self):
        reaper = Mock(spec=ExpirationReaper)
        report = make_report(reclaimed=1)
        reaper.run_cycle.return_value = report

        assert ReaperScheduler(reaper).run_once() is report

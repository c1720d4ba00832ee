# tests/unit/services/test_status_reporter.py
from __future__ import annotations

from datetime import timedelta

import pytest
from mcphub.services.status import StatusReporter
from mcphub.services.status.reporter import success_rate
from tests.factories.events import EventQueueItemFactory, ServiceHealthFactory
from tests.helpers.clock import FixedClock


@pytest.fixture()
def reporter(clock) -> StatusReporter:
    return StatusReporter(degraded_pending_threshold=3, clock=clock)


def test_empty_hub_is_healthy_with_full_success_rate(reporter, clock):
    clock.advance(minutes=2)

    report = reporter.report()

    assert report.status == "healthy"
    assert report.uptime_seconds == 120
    assert report.total_dispatched == 0
    assert report.success_rate == 100.0
    assert report.queue_depth == {"critical": 0, "high": 0, "normal": 0, "low": 0}
    assert report.last_dispatch is None
    assert report.services["central-hub"] == {"status": "connected", "latency_ms": 0}
    for service_id in ("minu-find", "minu-frame", "minu-build", "minu-keep"):
        assert report.services[service_id] == {"status": "disconnected"}


def test_statistics_and_queue_depth(reporter, session):
    EventQueueItemFactory.create_batch(2, status="completed")
    EventQueueItemFactory(status="failed")
    EventQueueItemFactory(status="processing", priority="critical")
    EventQueueItemFactory(status="pending", priority="critical")
    last = EventQueueItemFactory(status="pending", priority="low")
    session.commit()

    body = reporter.report().to_response()

    assert body["statistics"] == {
        "total_dispatched": 6,
        "successful": 2,
        "failed": 1,
        "pending": 2,
        "success_rate": 33.33,
    }
    assert body["queue_depth"] == {"critical": 1, "high": 0, "normal": 0, "low": 1}
    assert body["last_dispatch"] == last.created_at.isoformat()


def test_degraded_when_pending_exceeds_threshold(reporter, session):
    EventQueueItemFactory.create_batch(3)
    session.commit()
    assert reporter.report().status == "healthy"

    EventQueueItemFactory()
    session.commit()
    assert reporter.report().status == "degraded"


def test_service_connectivity_reflects_latest_health(reporter, session, clock):
    ServiceHealthFactory(service_id="minu-find", status="healthy", last_ping=clock.now())
    ServiceHealthFactory(service_id="minu-frame", status="degraded", metrics={})
    ServiceHealthFactory(service_id="minu-build", status="unhealthy")
    session.commit()

    services = reporter.report().to_response()["services"]

    assert services["minu-find"] == {
        "status": "connected",
        "last_ping": clock.now().isoformat(),
        "latency_ms": 42,
    }
    assert services["minu-frame"]["status"] == "degraded"
    assert "latency_ms" not in services["minu-frame"]
    assert services["minu-build"]["status"] == "disconnected"
    assert services["minu-keep"] == {"status": "disconnected"}


def test_stored_non_mapping_metrics_are_ignored(reporter, session):
    ServiceHealthFactory(service_id="minu-find", metrics=[1, 2, 3])
    session.commit()

    services = reporter.report().to_response()["services"]

    assert services["minu-find"]["status"] == "connected"
    assert "latency_ms" not in services["minu-find"]


def test_uptime_uses_the_injected_start_time():
    clock = FixedClock()
    clock.started_at = clock.current - timedelta(hours=1)
    assert StatusReporter(clock=clock).report().uptime_seconds == 3600


@pytest.mark.parametrize(
    "completed, total, expected",
    [(0, 0, 100.0), (1, 3, 33.33), (2, 3, 66.67), (5, 5, 100.0), (0, 4, 0.0)],
)
def test_success_rate(completed, total, expected):
    assert success_rate(completed, total) == expected

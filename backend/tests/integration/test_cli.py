# tests/integration/test_cli.py
from __future__ import annotations

from datetime import UTC, datetime, timedelta

from mcphub.models import EventQueueItem
from tests.factories.events import EventQueueItemFactory
from tests.factories.tokens import ServiceTokenFactory


def test_queue_stats(runner, session):
    EventQueueItemFactory.create_batch(2)
    EventQueueItemFactory(status="failed")
    session.commit()

    result = runner.invoke(args=["queue", "stats"])

    assert result.exit_code == 0, result.output
    lines = dict(line.split() for line in result.output.strip().splitlines())
    assert lines == {"pending": "2", "processing": "0", "completed": "0", "failed": "1"}


def test_queue_claim(runner, session):
    item = EventQueueItemFactory(priority="critical", event_type="billing.retry")
    session.commit()

    result = runner.invoke(args=["queue", "claim"])
    assert result.exit_code == 0, result.output
    assert item.id in result.output
    assert "billing.retry" in result.output

    result = runner.invoke(args=["queue", "claim"])
    assert "No pending items." in result.output


def test_queue_cleanup(runner, session):
    EventQueueItemFactory(status="completed", created_at=datetime.now(UTC) - timedelta(days=3))
    EventQueueItemFactory(status="completed")
    session.commit()

    result = runner.invoke(args=["queue", "cleanup", "--days", "1"])

    assert result.exit_code == 0, result.output
    assert "Deleted 1 finished item(s)." in result.output
    assert session.query(EventQueueItem).count() == 1


def test_queue_cleanup_rejects_negative_days(runner):
    result = runner.invoke(args=["queue", "cleanup", "--days", "-1"])
    assert result.exit_code != 0


def test_tokens_revoke_service(runner, session):
    tokens = ServiceTokenFactory.create_batch(2, service_id="minu-keep")
    ServiceTokenFactory(service_id="minu-find")
    session.commit()

    result = runner.invoke(args=["tokens", "revoke-service", "minu-keep", "--yes"])

    assert result.exit_code == 0, result.output
    assert "Revoked 2 token(s) of minu-keep." in result.output
    for token in tokens:
        session.refresh(token)
        assert token.is_revoked is True
        assert token.revoked_reason == "admin_revocation"


def test_tokens_revoke_service_asks_for_confirmation(runner, session):
    ServiceTokenFactory(service_id="minu-keep")
    session.commit()

    result = runner.invoke(args=["tokens", "revoke-service", "minu-keep"], input="n\n")

    assert result.exit_code != 0
    assert "Aborted" in result.output


def test_tokens_revoke_service_rejects_unknown_service(runner):
    result = runner.invoke(args=["tokens", "revoke-service", "stranger", "--yes"])
    assert result.exit_code == 2

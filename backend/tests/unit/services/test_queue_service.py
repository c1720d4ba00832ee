# tests/unit/services/test_queue_service.py
from __future__ import annotations

from datetime import timedelta

import pytest
from mcphub.models import EventQueueItem
from mcphub.services._shared.errors import NotFoundError, ValidationFailed
from mcphub.services.queue import EventQueueService
from sqlalchemy import select
from tests.factories.events import EventQueueItemFactory


@pytest.fixture()
def queue(clock) -> EventQueueService:
    return EventQueueService(clock=clock)


def _reload(session, item_id: str) -> EventQueueItem:
    item = session.get(EventQueueItem, item_id)
    session.refresh(item)
    return item


class TestClaim:
    def test_claims_most_urgent_then_oldest(self, queue, session, clock):
        low = EventQueueItemFactory(priority="low", created_at=clock.now() - timedelta(hours=2))
        old_high = EventQueueItemFactory(priority="high", created_at=clock.now() - timedelta(hours=1))
        new_high = EventQueueItemFactory(priority="high", created_at=clock.now())
        critical = EventQueueItemFactory(priority="critical", created_at=clock.now())
        session.commit()

        order = [queue.claim_next().id for _ in range(4)]

        assert order == [critical.id, old_high.id, new_high.id, low.id]
        assert queue.claim_next() is None
        assert _reload(session, low.id).status == "processing"

    def test_skips_items_waiting_for_retry(self, queue, session, clock):
        EventQueueItemFactory(next_retry_at=clock.now() + timedelta(seconds=30))
        session.commit()

        assert queue.claim_next() is None
        clock.advance(seconds=30)
        assert queue.claim_next() is not None

    def test_ignores_finished_items(self, queue, session):
        EventQueueItemFactory(status="completed")
        EventQueueItemFactory(status="failed")
        session.commit()
        assert queue.claim_next() is None


class TestTransitions:
    def test_complete(self, queue, session, clock):
        item = EventQueueItemFactory(status="processing")
        session.commit()

        queue.complete(item.id)

        stored = _reload(session, item.id)
        assert stored.status == "completed"
        assert stored.processed_at == clock.now()

    def test_complete_requires_processing(self, queue, session):
        item = EventQueueItemFactory(status="pending")
        session.commit()
        with pytest.raises(ValidationFailed) as excinfo:
            queue.complete(item.id)
        assert excinfo.value.code == "invalid_state"

    def test_unknown_item(self, queue):
        with pytest.raises(NotFoundError):
            queue.complete("does-not-exist")
        with pytest.raises(NotFoundError):
            queue.fail("does-not-exist", "boom")

    def test_fail_backs_off_exponentially_then_parks(self, queue, session, clock):
        item = EventQueueItemFactory(status="processing", max_retries=3)
        session.commit()

        first = queue.fail(item.id, "timeout")
        assert (first.status, first.retry_count) == ("pending", 1)
        assert first.next_retry_at == clock.now() + timedelta(seconds=2)
        assert first.error_message == "timeout"

        clock.advance(seconds=2)
        assert queue.claim_next().id == item.id
        second = queue.fail(item.id, "timeout")
        assert second.next_retry_at == clock.now() + timedelta(seconds=4)

        clock.advance(seconds=4)
        queue.claim_next()
        third = queue.fail(item.id, "gave up")
        assert (third.status, third.retry_count) == ("failed", 3)
        assert third.processed_at == clock.now()
        assert third.error_message == "gave up"

    def test_fail_requires_processing(self, queue, session):
        item = EventQueueItemFactory(status="completed")
        session.commit()
        with pytest.raises(ValidationFailed):
            queue.fail(item.id, "late")


class TestMaintenance:
    def test_stats_counts_every_status(self, queue, session):
        EventQueueItemFactory.create_batch(2)
        EventQueueItemFactory(status="failed")
        session.commit()
        assert queue.stats() == {"pending": 2, "processing": 0, "completed": 0, "failed": 1}

    def test_cleanup_deletes_only_old_finished_items(self, queue, session, clock):
        old = clock.now() - timedelta(days=8)
        EventQueueItemFactory(status="completed", created_at=old)
        EventQueueItemFactory(status="failed", created_at=old)
        kept_pending = EventQueueItemFactory(status="pending", created_at=old)
        kept_recent = EventQueueItemFactory(status="completed", created_at=clock.now())
        session.commit()

        assert queue.cleanup() == 2

        remaining = {i.id for i in session.execute(select(EventQueueItem)).scalars().all()}
        assert remaining == {kept_pending.id, kept_recent.id}

    def test_cleanup_rejects_negative_window(self, queue):
        with pytest.raises(ValidationFailed):
            queue.cleanup(older_than_days=-1)

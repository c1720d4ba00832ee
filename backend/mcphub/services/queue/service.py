from __future__ import annotations

import logging
from datetime import timedelta

from mcphub.models import EventQueueItem
from mcphub.services._shared.base import BaseService
from mcphub.services._shared.errors import NotFoundError, ValidationFailed

LOGGER = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 7


class EventQueueService(BaseService):
    """
    Worker-side maintenance of the generic event queue.

    Items move ``pending -> processing -> completed`` or, after exhausting
    their retries, ``failed``. Every transition is a conditional update so
    concurrent workers cannot act on the same item twice.
    """

    def claim_next(self) -> EventQueueItem | None:
        """Claim the most urgent due item, or return ``None`` when idle."""
        with self.rw_uow() as uow:
            item = uow.event_queue.claim_next(now=self.now())
        if item is not None:
            LOGGER.info(
                "Claimed queue item", extra={"dispatch_id": item.id, "event_type": item.event_type}
            )
        return item

    def complete(self, item_id: str) -> None:
        """
        Mark a claimed item as done.

        :raises NotFoundError: Unknown item.
        :raises ValidationFailed: ``invalid_state`` when the item is not processing.
        """
        now = self.now()
        with self.rw_uow() as uow:
            self._require(uow, item_id)
            changed = uow.event_queue.transition(
                item_id,
                from_status="processing",
                values={"status": "completed", "processed_at": now, "updated_at": now},
            )
            if not changed:
                raise ValidationFailed("Item is not being processed", code="invalid_state")
        LOGGER.info("Completed queue item", extra={"dispatch_id": item_id})

    def fail(self, item_id: str, error: str) -> EventQueueItem:
        """
        Record a processing failure.

        While ``retry_count`` stays below ``max_retries`` the item goes back to
        ``pending`` with an exponential backoff of ``2 ** retry_count`` seconds;
        otherwise it is parked as ``failed``.

        :raises NotFoundError: Unknown item.
        :raises ValidationFailed: ``invalid_state`` when the item is not processing.
        """
        now = self.now()
        with self.rw_uow() as uow:
            item = self._require(uow, item_id)
            retries = item.retry_count + 1
            values: dict = {"retry_count": retries, "error_message": error, "updated_at": now}
            if retries < item.max_retries:
                values.update(status="pending", next_retry_at=now + timedelta(seconds=2**retries))
            else:
                values.update(status="failed", processed_at=now)
            if not uow.event_queue.transition(item_id, from_status="processing", values=values):
                raise ValidationFailed("Item is not being processed", code="invalid_state")
            item = self._require(uow, item_id)

        LOGGER.warning(
            "Queue item failed (attempt %d, now %s)",
            retries,
            item.status,
            extra={"dispatch_id": item_id, "event_type": item.event_type},
        )
        return item

    def stats(self) -> dict[str, int]:
        with self.ro_uow() as uow:
            return uow.event_queue.count_by_status()

    def cleanup(self, older_than_days: int = DEFAULT_RETENTION_DAYS) -> int:
        """Delete finished (completed/failed) items older than the retention window."""
        if older_than_days < 0:
            raise ValidationFailed("older_than_days must not be negative")
        cutoff = self.now() - timedelta(days=older_than_days)
        with self.rw_uow() as uow:
            deleted = uow.event_queue.delete_finished_before(cutoff)
        LOGGER.info("Deleted %d finished queue items", deleted)
        return deleted

    @staticmethod
    def _require(uow, item_id: str) -> EventQueueItem:
        item = uow.event_queue.get(item_id)
        if item is None:
            raise NotFoundError(f"Queue item {item_id} not found")
        return item

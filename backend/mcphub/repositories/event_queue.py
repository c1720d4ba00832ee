"""Event queue repository: idempotency lookups, claims and aggregates."""

from __future__ import annotations

from datetime import datetime
from typing import Any, cast

from sqlalchemy import case, delete, func, or_, select, update

from mcphub.constants import PRIORITIES, QUEUE_STATUSES
from mcphub.models.event_queue import EventQueueItem
from mcphub.repositories.base import BaseRepository

# critical -> 0 ... low -> 3
_PRIORITY_ORDER = case(
    {name: rank for rank, name in enumerate(PRIORITIES)},
    value=EventQueueItem.priority,
    else_=len(PRIORITIES),
)


class EventQueueRepository(BaseRepository[EventQueueItem]):
    """Persistence-only repository for :class:`EventQueueItem`."""

    model = EventQueueItem

    # ---------------------------- Lookup helpers ----------------------------

    def get_by_idempotency_key(self, key: str) -> EventQueueItem | None:
        """Return the item recorded for ``key``, if any."""
        stmt = select(EventQueueItem).where(EventQueueItem.idempotency_key == key)
        return cast(EventQueueItem | None, self.session.execute(stmt).scalars().first())

    # ------------------------------ Aggregates ------------------------------

    def count_by_status(self) -> dict[str, int]:
        """Return item counts for every known status (missing ones are ``0``)."""
        stmt = select(EventQueueItem.status, func.count()).group_by(EventQueueItem.status)
        counts = {status: 0 for status in QUEUE_STATUSES}
        for status, total in self.session.execute(stmt).all():
            counts[status] = int(total)
        return counts

    def pending_count_by_priority(self) -> dict[str, int]:
        """Return the number of *pending* items per priority."""
        stmt = (
            select(EventQueueItem.priority, func.count())
            .where(EventQueueItem.status == "pending")
            .group_by(EventQueueItem.priority)
        )
        depth = {priority: 0 for priority in PRIORITIES}
        for priority, total in self.session.execute(stmt).all():
            depth[priority] = int(total)
        return depth

    def last_created_at(self) -> datetime | None:
        """Return the creation time of the most recent item."""
        stmt = select(EventQueueItem.created_at).order_by(EventQueueItem.created_at.desc()).limit(1)
        return cast(datetime | None, self.session.execute(stmt).scalars().first())

    # ------------------------------ Transitions ------------------------------

    def claim_next(self, *, now: datetime) -> EventQueueItem | None:
        """Move the most urgent due pending item to ``processing``.

        Candidates are ordered by priority (critical first) then age. The
        transition itself is a conditional update on ``status = 'pending'`` so
        two workers never claim the same item.

        :param now: Current time; items with a future ``next_retry_at`` are skipped.
        :type now: datetime
        :returns: The claimed item or ``None`` when nothing is due.
        :rtype: EventQueueItem | None
        """
        candidates = (
            select(EventQueueItem.id)
            .where(
                EventQueueItem.status == "pending",
                or_(EventQueueItem.next_retry_at.is_(None), EventQueueItem.next_retry_at <= now),
            )
            .order_by(_PRIORITY_ORDER, EventQueueItem.created_at.asc())
            .limit(10)
        )
        for item_id in self.session.execute(candidates).scalars().all():
            if self.transition(item_id, from_status="pending", values={"status": "processing"}):
                return self.get(item_id)
        return None

    def transition(self, item_id: str, *, from_status: str, values: dict[str, Any]) -> bool:
        """Apply ``values`` to the item only while it is in ``from_status``.

        :returns: ``True`` when the row was updated.
        :rtype: bool
        """
        stmt = (
            update(EventQueueItem)
            .where(EventQueueItem.id == item_id, EventQueueItem.status == from_status)
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        return bool(self.session.execute(stmt).rowcount == 1)

    def delete_finished_before(self, cutoff: datetime) -> int:
        """Delete completed/failed items created before ``cutoff``."""
        stmt = (
            delete(EventQueueItem)
            .where(
                EventQueueItem.status.in_(("completed", "failed")),
                EventQueueItem.created_at < cutoff,
            )
            .execution_options(synchronize_session="fetch")
        )
        return int(self.session.execute(stmt).rowcount or 0)

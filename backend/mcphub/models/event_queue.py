"""Routed events awaiting or having completed asynchronous processing."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, CheckConstraint, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from mcphub.constants import PRIORITIES, QUEUE_STATUSES
from mcphub.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin, UTCDateTime


def _in_list(column: str, values: tuple[str, ...]) -> str:
    return "{} IN ({})".format(column, ", ".join(f"'{v}'" for v in values))


class EventQueueItem(PKMixin, TimestampMixin, ReprMixin, db.Model):
    """
    Queue entry written by the event router.

    ``idempotency_key`` is unique when present: at most one item exists per
    key, which is what makes repeated dispatches return the first outcome.
    Items recorded for direct-write targets carry the downstream row id in
    ``target_ref`` and are created already ``completed``.
    """

    __tablename__ = "event_queue"

    event_type: Mapped[str] = mapped_column(String(128), nullable=False)
    source_service: Mapped[str] = mapped_column(String(32), nullable=False)
    target_service: Mapped[str | None] = mapped_column(String(32))
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    priority: Mapped[str] = mapped_column(
        String(16), nullable=False, default="normal", server_default="normal"
    )
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default="pending", server_default="pending"
    )
    retry_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    max_retries: Mapped[int] = mapped_column(
        Integer, nullable=False, default=3, server_default="3"
    )
    next_retry_at: Mapped[datetime | None] = mapped_column(UTCDateTime())
    idempotency_key: Mapped[str | None] = mapped_column(String(255), unique=True)
    target_ref: Mapped[str | None] = mapped_column(String(36))
    correlation_id: Mapped[str | None] = mapped_column(String(128))
    request_id: Mapped[str | None] = mapped_column(String(64))
    processed_at: Mapped[datetime | None] = mapped_column(UTCDateTime())
    error_message: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (
        CheckConstraint(_in_list("priority", PRIORITIES), name="priority"),
        CheckConstraint(_in_list("status", QUEUE_STATUSES), name="status"),
        Index("ix_event_queue_status_priority", "status", "priority", "created_at"),
        Index("ix_event_queue_source_service", "source_service"),
    )

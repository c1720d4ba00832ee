"""Downstream tables the router writes to, plus the admin profile lookup."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, ForeignKey, Index, String, Text, false
from sqlalchemy.orm import Mapped, mapped_column

from mcphub.core.extensions import db

from .base import CreatedAtMixin, PKMixin, ReprMixin, TimestampMixin, UTCDateTime


class ServiceHealth(PKMixin, TimestampMixin, ReprMixin, db.Model):
    """Latest health snapshot per service (upserted on ``service.health.update``)."""

    __tablename__ = "service_health"

    service_id: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="healthy")
    last_ping: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    metrics: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)


class ServiceIssue(PKMixin, TimestampMixin, ReprMixin, db.Model):
    """Issue reported by a service."""

    __tablename__ = "service_issues"

    service_id: Mapped[str] = mapped_column(String(32), nullable=False)
    severity: Mapped[str] = mapped_column(String(16), nullable=False, default="medium")
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    project_id: Mapped[str | None] = mapped_column(String(64))
    reported_by: Mapped[str | None] = mapped_column(String(64))
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="open")

    __table_args__ = (Index("ix_service_issues_service_status", "service_id", "status"),)


class ServiceEvent(PKMixin, CreatedAtMixin, ReprMixin, db.Model):
    """Activity log entry emitted by a service."""

    __tablename__ = "service_events"

    service_id: Mapped[str] = mapped_column(String(32), nullable=False)
    event_type: Mapped[str] = mapped_column(String(128), nullable=False)
    project_id: Mapped[str | None] = mapped_column(String(64))
    user_id: Mapped[str | None] = mapped_column(String(64))
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    __table_args__ = (Index("ix_service_events_service_created", "service_id", "created_at"),)


class Profile(PKMixin, CreatedAtMixin, ReprMixin, db.Model):
    """
    Platform user profile.

    Owned by the surrounding platform; the hub only reads ``id`` and ``role``
    to address administrative notifications.
    """

    __tablename__ = "profiles"

    email: Mapped[str | None] = mapped_column(String(255))
    role: Mapped[str] = mapped_column(String(32), nullable=False, default="user")

    __table_args__ = (Index("ix_profiles_role", "role"),)


class Notification(PKMixin, CreatedAtMixin, ReprMixin, db.Model):
    """In-app notification addressed to one profile."""

    __tablename__ = "notifications"

    user_id: Mapped[str] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False, default="info")
    read: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    __table_args__ = (Index("ix_notifications_user_read", "user_id", "read"),)

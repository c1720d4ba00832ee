"""Append-only audit trail for token lifecycle and dispatch outcomes."""

from __future__ import annotations

from typing import Any

from sqlalchemy import Boolean, Index, Integer, String, event
from sqlalchemy.orm import Mapped, mapped_column

from mcphub.core.extensions import db

from .base import CreatedAtMixin, PKMixin, ReprMixin


class AuditLogEntry(PKMixin, CreatedAtMixin, ReprMixin, db.Model):
    """
    One row per handled request on the auth and router endpoints.

    Entries are write-once: the ORM refuses to flush updates or deletes.
    """

    __tablename__ = "mcp_audit_logs"

    endpoint: Mapped[str] = mapped_column(String(128), nullable=False)
    method: Mapped[str] = mapped_column(String(8), nullable=False)
    service_id: Mapped[str | None] = mapped_column(String(32))
    client_id: Mapped[str | None] = mapped_column(String(255))
    status_code: Mapped[int] = mapped_column(Integer, nullable=False)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    error_code: Mapped[str | None] = mapped_column(String(64))
    request_id: Mapped[str | None] = mapped_column(String(64))
    ip_address: Mapped[str | None] = mapped_column(String(45))
    user_agent: Mapped[str | None] = mapped_column(String(512))
    response_time_ms: Mapped[int | None] = mapped_column(Integer)

    __table_args__ = (
        Index("ix_mcp_audit_logs_service_created", "service_id", "created_at"),
        Index("ix_mcp_audit_logs_error_code", "error_code"),
    )


@event.listens_for(AuditLogEntry, "before_update")
def _reject_update(mapper: Any, connection: Any, target: AuditLogEntry) -> None:
    raise RuntimeError("Audit log entries are immutable")


@event.listens_for(AuditLogEntry, "before_delete")
def _reject_delete(mapper: Any, connection: Any, target: AuditLogEntry) -> None:
    raise RuntimeError("Audit log entries cannot be deleted")

"""Audit log repository (append-only)."""

from __future__ import annotations

from mcphub.models.audit_log import AuditLogEntry
from mcphub.repositories.base import BaseRepository


class AuditLogRepository(BaseRepository[AuditLogEntry]):
    """Persistence-only repository for :class:`AuditLogEntry`.

    Exposes inserts and reads only; entries are never updated.
    """

    model = AuditLogEntry


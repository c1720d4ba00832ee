"""Persistence-only repositories (no commits; Services own transactions)."""

from mcphub.repositories.audit_log import AuditLogRepository
from mcphub.repositories.event_queue import EventQueueRepository
from mcphub.repositories.hub import (
    NotificationRepository,
    ProfileRepository,
    ServiceEventRepository,
    ServiceHealthRepository,
    ServiceIssueRepository,
)
from mcphub.repositories.service_token import ServiceTokenRepository

__all__ = [
    "AuditLogRepository",
    "EventQueueRepository",
    "NotificationRepository",
    "ProfileRepository",
    "ServiceEventRepository",
    "ServiceHealthRepository",
    "ServiceIssueRepository",
    "ServiceTokenRepository",
]

from mcphub.models.audit_log import AuditLogEntry
from mcphub.models.event_queue import EventQueueItem
from mcphub.models.hub import (
    Notification,
    Profile,
    ServiceEvent,
    ServiceHealth,
    ServiceIssue,
)
from mcphub.models.service_token import ServiceToken

__all__ = [
    "AuditLogEntry",
    "EventQueueItem",
    "Notification",
    "Profile",
    "ServiceEvent",
    "ServiceHealth",
    "ServiceIssue",
    "ServiceToken",
]

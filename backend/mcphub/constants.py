"""Closed vocabularies shared by models, schemas and services."""

from __future__ import annotations

from typing import Final

# Services allowed to obtain credentials
SERVICE_IDS: Final[tuple[str, ...]] = ("minu-find", "minu-frame", "minu-build", "minu-keep")

# The hub itself may appear as an event source or target
HUB_SERVICE_ID: Final[str] = "central-hub"
EVENT_SERVICE_IDS: Final[tuple[str, ...]] = (*SERVICE_IDS, HUB_SERVICE_ID)
BROADCAST_TARGET: Final[str] = "*"

SCOPES: Final[frozenset[str]] = frozenset(
    {
        "events:read",
        "events:write",
        "health:read",
        "health:write",
        "sync:read",
        "sync:write",
    }
)
DEFAULT_SCOPES: Final[tuple[str, ...]] = ("events:read", "events:write", "health:write")

TOKEN_TYPES: Final[tuple[str, ...]] = ("access", "refresh")
REFRESH_TOKEN_PREFIX: Final[str] = "rt_"

# Highest first; index doubles as the claim order for the queue
PRIORITIES: Final[tuple[str, ...]] = ("critical", "high", "normal", "low")
DEFAULT_PRIORITY: Final[str] = "normal"

QUEUE_STATUSES: Final[tuple[str, ...]] = ("pending", "processing", "completed", "failed")

ADMIN_ROLES: Final[tuple[str, ...]] = ("admin", "super_admin")


def priority_rank(priority: str) -> int:
    """Return ``priority``'s rank, ``0`` being the most urgent."""
    return PRIORITIES.index(priority)


def is_priority_at_least(priority: str, threshold: str) -> bool:
    """Return ``True`` when ``priority`` is as urgent as ``threshold`` or more."""
    return priority_rank(priority) <= priority_rank(threshold)

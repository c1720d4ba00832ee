from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Clock(Protocol):
    """
    Source of the current time and of the instance start time.

    ``started_at`` is injected at application start (or supplied by the
    deployment through ``MCP_INSTANCE_STARTED_AT``) instead of being captured
    in module state, so uptime is computed from an explicit value.
    """

    started_at: datetime

    def now(self) -> datetime: ...


@dataclass(slots=True)
class SystemClock(Clock):
    """Wall clock in UTC.

    :param started_at: Instance start time; defaults to construction time.
    :type started_at: datetime
    """

    started_at: datetime = field(default_factory=_utcnow)

    def now(self) -> datetime:
        return _utcnow()

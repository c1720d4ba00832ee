from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from mcphub.constants import DEFAULT_PRIORITY
from mcphub.services.tokens.dto import RETRY_POLICY

# Advisory delivery delay per priority (milliseconds); not an enforced SLA
PRIORITY_DELAYS_MS: dict[str, int] = {
    "critical": 0,
    "high": 100,
    "normal": 500,
    "low": 1000,
}


@dataclass(frozen=True, slots=True)
class DispatchIn:
    """
    Inbound event envelope.

    :param event_type: Dotted event name, matched against routing rules.
    :param source_service: Emitting service.
    :param target_service: Optional addressee (``*`` for broadcast).
    :param payload: Arbitrary event payload.
    :param priority: ``critical`` | ``high`` | ``normal`` | ``low``.
    :param idempotency_key: Header value, else ``metadata.idempotency_key``.
    :param correlation_id: ``metadata.correlation_id``.
    """

    event_type: str
    source_service: str
    payload: dict[str, Any] = field(default_factory=dict)
    target_service: str | None = None
    priority: str = DEFAULT_PRIORITY
    idempotency_key: str | None = None
    correlation_id: str | None = None


@dataclass(frozen=True, slots=True)
class DispatchOut:
    """
    Dispatch outcome returned to the caller with HTTP 202.

    :param dispatch_id: Downstream row id, queue item id or a fresh UUID.
    :param status: ``queued`` / ``processed`` for new dispatches, the stored
        item status for idempotent replays.
    :param estimated_delivery: Advisory time derived from the priority.
    :param target: Target kind the rule selected (``None`` on replay).
    :param replayed: ``True`` when an earlier dispatch with the same key was found.
    """

    dispatch_id: str
    status: str
    estimated_delivery: datetime
    target: str | None = None
    replayed: bool = False

    def to_response(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "dispatched": True,
            "dispatch_id": self.dispatch_id,
            "status": self.status,
            "estimated_delivery": self.estimated_delivery.isoformat(),
            "retry_policy": dict(RETRY_POLICY),
        }
        if self.replayed:
            body["idempotent_replay"] = True
        return body

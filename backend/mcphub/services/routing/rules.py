"""Ordered routing rules: event type pattern -> target kind + pure transform."""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

Transform = Callable[[dict[str, Any], str, datetime], dict[str, Any]]


class TargetKind(str, Enum):
    """Where a routed event is written."""

    SERVICE_HEALTH = "service_health"
    SERVICE_ISSUES = "service_issues"
    SERVICE_EVENTS = "service_events"
    NOTIFICATIONS = "notifications"
    EVENT_QUEUE = "event_queue"


@dataclass(frozen=True, slots=True)
class RoutingRule:
    """
    One routing rule.

    :param pattern: Regex matched against the full ``event_type``.
    :param target: Target kind written by the dispatcher.
    :param transform: ``(payload, source_service, now) -> row fields``.
    :param notify: Whether the rule may trigger an admin notification.
    :param priority_threshold: Lowest priority that triggers it; ``None``
        disables the extra notification even when ``notify`` is set.
    """

    pattern: re.Pattern[str]
    target: TargetKind
    transform: Transform
    notify: bool = False
    priority_threshold: str | None = None

    def matches(self, event_type: str) -> bool:
        return self.pattern.fullmatch(event_type) is not None


def _health(payload: dict[str, Any], source: str, now: datetime) -> dict[str, Any]:
    return {
        "service_id": source,
        "status": payload.get("status") or "healthy",
        "last_ping": now,
        "metrics": _opt_dict(payload.get("metrics")),
    }


def _issue(payload: dict[str, Any], source: str, now: datetime) -> dict[str, Any]:
    return {
        "service_id": source,
        "severity": payload.get("severity") or "medium",
        "title": payload.get("title") or "Untitled Issue",
        "description": payload.get("description"),
        "project_id": _opt_str(payload.get("project_id")),
        "reported_by": _opt_str(payload.get("reported_by")),
        "status": "open",
    }


def _event_logged(payload: dict[str, Any], source: str, now: datetime) -> dict[str, Any]:
    return {
        "service_id": source,
        "event_type": payload.get("event_type") or "generic",
        "project_id": _opt_str(payload.get("project_id")),
        "user_id": _opt_str(payload.get("user_id")),
        "payload": payload.get("data") or {},
    }


def _document_generated(payload: dict[str, Any], source: str, now: datetime) -> dict[str, Any]:
    document_type = payload.get("document_type") or "Document"
    document_name = payload.get("document_name") or "Untitled"
    return {
        "title": f"[{source}] Document generated",
        "message": f"{document_type} generated: {document_name}",
        "type": "info",
    }


def _subscription_changed(payload: dict[str, Any], source: str, now: datetime) -> dict[str, Any]:
    return {
        "source_service": source,
        "event_type": "subscription.changed",
        "payload": {
            "user_id": payload.get("user_id"),
            "plan_id": payload.get("plan_id"),
            # created | upgraded | downgraded | cancelled
            "action": payload.get("action"),
        },
    }


def _user_action(payload: dict[str, Any], source: str, now: datetime) -> dict[str, Any]:
    return {
        "service_id": source,
        "event_type": "user.action",
        "user_id": _opt_str(payload.get("user_id")),
        "payload": {
            "action": payload.get("action"),
            "resource": payload.get("resource"),
            "details": payload.get("details"),
        },
    }


def _generic(payload: dict[str, Any], source: str, now: datetime) -> dict[str, Any]:
    return {"source_service": source, "event_type": "generic", "payload": payload}


def _opt_str(value: Any) -> str | None:
    return None if value is None else str(value)


# Only mappings are kept; status reads metrics["response_time_ms"]
def _opt_dict(value: Any) -> dict[str, Any]:
    return dict(value) if isinstance(value, dict) else {}


DEFAULT_RULES: tuple[RoutingRule, ...] = (
    RoutingRule(re.compile(r"service\.health\.update"), TargetKind.SERVICE_HEALTH, _health),
    RoutingRule(
        re.compile(r"service\.issue\.created"),
        TargetKind.SERVICE_ISSUES,
        _issue,
        notify=True,
        priority_threshold="high",
    ),
    RoutingRule(re.compile(r"service\.event\.logged"), TargetKind.SERVICE_EVENTS, _event_logged),
    RoutingRule(
        re.compile(r"document\.generated"),
        TargetKind.NOTIFICATIONS,
        _document_generated,
        notify=True,
    ),
    RoutingRule(
        re.compile(r"subscription\.changed"),
        TargetKind.EVENT_QUEUE,
        _subscription_changed,
        notify=True,
    ),
    RoutingRule(re.compile(r"user\.action"), TargetKind.SERVICE_EVENTS, _user_action),
    # Catch-all; must stay last
    RoutingRule(re.compile(r".*", re.DOTALL), TargetKind.EVENT_QUEUE, _generic),
)


def match_rule(event_type: str, rules: Sequence[RoutingRule] = DEFAULT_RULES) -> RoutingRule:
    """
    Return the first rule whose pattern matches ``event_type``.

    :raises LookupError: Only when ``rules`` lacks a catch-all and nothing matched.
    """
    for rule in rules:
        if rule.matches(event_type):
            return rule
    raise LookupError(f"No routing rule for event type {event_type!r}")

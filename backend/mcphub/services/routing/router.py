from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Sequence
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from mcphub.constants import (
    BROADCAST_TARGET,
    EVENT_SERVICE_IDS,
    PRIORITIES,
    is_priority_at_least,
)
from mcphub.models import EventQueueItem, ServiceEvent, ServiceIssue
from mcphub.services._shared.base import BaseService, ServiceContext
from mcphub.services._shared.errors import DispatchFailed, ValidationFailed, violates
from mcphub.services._shared.ports import Clock
from mcphub.services.routing.dto import PRIORITY_DELAYS_MS, DispatchIn, DispatchOut
from mcphub.services.routing.rules import DEFAULT_RULES, RoutingRule, TargetKind, match_rule
from mcphub.uow.sqlalchemy_uow import SQLAlchemyUnitOfWork

LOGGER = logging.getLogger(__name__)

NOTIFICATION_MESSAGE_LIMIT = 200


class EventRouter(BaseService):
    """
    Route inbound events to their downstream table.

    Dispatch is at-most-once per idempotency key. For the generic queue the
    queue item itself carries the key; for every other target a ``completed``
    ledger item is inserted in the same transaction as the side effect, so the
    unique index on ``event_queue.idempotency_key`` covers all targets.

    Authentication happens before this service is called; the router trusts
    the caller identity it is given.
    """

    def __init__(
        self,
        *,
        rules: Sequence[RoutingRule] = DEFAULT_RULES,
        ctx: ServiceContext | None = None,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(ctx=ctx, clock=clock)
        self.rules = tuple(rules)

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def dispatch(self, dto: DispatchIn) -> DispatchOut:
        """
        Validate, match, transform and persist one event.

        :param dto: Event envelope.
        :returns: Dispatch outcome (or the original outcome on replay).
        :raises ValidationFailed: ``missing_field``, ``invalid_service`` or
            ``invalid_payload``.
        :raises DispatchFailed: A downstream write failed; nothing was committed.
        """
        self._validate(dto)
        now = self.now()

        if dto.idempotency_key:
            replay = self._find_replay(dto.idempotency_key, dto.priority, now)
            if replay is not None:
                return replay

        rule = match_rule(dto.event_type, self.rules)
        try:
            with self.rw_uow() as uow:
                dispatch_id, status = self._write(uow, rule, dto, now)
                notified = self._notify_admins(uow, rule, dto)
        except IntegrityError as exc:
            if dto.idempotency_key and violates(exc, "idempotency_key"):
                # Lost the race against a concurrent dispatch with the same key
                replay = self._find_replay(dto.idempotency_key, dto.priority, now)
                if replay is not None:
                    return replay
            LOGGER.exception("Dispatch failed", extra={"event_type": dto.event_type})
            raise DispatchFailed("Event dispatch failed", details={"error": str(exc.orig)}) from exc
        except SQLAlchemyError as exc:
            LOGGER.exception("Dispatch failed", extra={"event_type": dto.event_type})
            raise DispatchFailed("Event dispatch failed", details={"error": str(exc)}) from exc

        LOGGER.info(
            "Event dispatched (target=%s, priority=%s, notified=%d)",
            rule.target.value,
            dto.priority,
            notified,
            extra={
                "service_id": dto.source_service,
                "event_type": dto.event_type,
                "dispatch_id": dispatch_id,
            },
        )
        return DispatchOut(
            dispatch_id=dispatch_id,
            status=status,
            estimated_delivery=estimate_delivery(dto.priority, now),
            target=rule.target.value,
        )

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    @staticmethod
    def _validate(dto: DispatchIn) -> None:
        missing = [name for name in ("event_type", "source_service") if not getattr(dto, name)]
        if missing:
            raise ValidationFailed(
                "event_type and source_service are required",
                code="missing_field",
                details={"fields": missing},
            )
        if dto.source_service not in EVENT_SERVICE_IDS:
            raise ValidationFailed(
                f"Unknown source service: {dto.source_service}", code="invalid_service"
            )
        if dto.target_service and dto.target_service not in (*EVENT_SERVICE_IDS, BROADCAST_TARGET):
            raise ValidationFailed(
                f"Unknown target service: {dto.target_service}", code="invalid_service"
            )
        if dto.priority not in PRIORITIES:
            raise ValidationFailed(
                f"priority must be one of {', '.join(PRIORITIES)}", code="invalid_payload"
            )
        if not isinstance(dto.payload, dict):
            raise ValidationFailed("payload must be an object", code="invalid_payload")

    def _find_replay(self, key: str, priority: str, now: datetime) -> DispatchOut | None:
        with self.ro_uow() as uow:
            item = uow.event_queue.get_by_idempotency_key(key)
            if item is None:
                return None
            out = DispatchOut(
                dispatch_id=item.target_ref or item.id,
                status=item.status,
                estimated_delivery=estimate_delivery(priority, now),
                replayed=True,
            )
            LOGGER.info(
                "Idempotent replay",
                extra={"dispatch_id": out.dispatch_id, "event_type": item.event_type},
            )
        return out

    def _write(
        self,
        uow: SQLAlchemyUnitOfWork,
        rule: RoutingRule,
        dto: DispatchIn,
        now: datetime,
    ) -> tuple[str, str]:
        """Persist the side effect of ``rule``; returns ``(dispatch_id, status)``."""
        fields = rule.transform(dto.payload, dto.source_service, now)

        if rule.target is TargetKind.EVENT_QUEUE:
            item = uow.event_queue.add(
                self._queue_item(dto, payload=fields, status="pending")
            )
            return item.id, "queued"

        # Ledger first: a duplicate key fails here before any side effect
        ledger = None
        if dto.idempotency_key:
            ledger = uow.event_queue.add(
                self._queue_item(dto, payload={}, status="completed", processed_at=now)
            )

        target_id: str | None = None
        if rule.target is TargetKind.SERVICE_HEALTH:
            # One row per service: it never identifies a single dispatch
            fields = dict(fields)
            uow.service_health.upsert(service_id=fields.pop("service_id"), **fields)
        elif rule.target is TargetKind.SERVICE_ISSUES:
            target_id = uow.service_issues.add(ServiceIssue(**fields)).id
        elif rule.target is TargetKind.SERVICE_EVENTS:
            target_id = uow.service_events.add(ServiceEvent(**fields)).id
        elif rule.target is TargetKind.NOTIFICATIONS:
            admins = uow.profiles.admin_ids()
            rows = uow.notifications.add_for_users(admins, read=False, **fields)
            target_id = rows[0].id if rows else None

        if ledger is not None:
            ledger.target_ref = target_id
            uow.event_queue.flush()

        dispatch_id = target_id or (ledger.id if ledger is not None else str(uuid.uuid4()))
        return dispatch_id, "processed"

    def _queue_item(self, dto: DispatchIn, *, payload: dict[str, Any], status: str, **extra: Any):
        return EventQueueItem(
            event_type=dto.event_type,
            source_service=dto.source_service,
            target_service=dto.target_service,
            payload=payload,
            priority=dto.priority,
            status=status,
            retry_count=0,
            idempotency_key=dto.idempotency_key,
            correlation_id=dto.correlation_id,
            request_id=self.ctx.request_id,
            **extra,
        )

    @staticmethod
    def _notify_admins(uow: SQLAlchemyUnitOfWork, rule: RoutingRule, dto: DispatchIn) -> int:
        """Fan out the administrative notification when the rule asks for it."""
        if not (rule.notify and rule.priority_threshold):
            return 0
        if not is_priority_at_least(dto.priority, rule.priority_threshold):
            return 0
        admins = uow.profiles.admin_ids()
        rows = uow.notifications.add_for_users(
            admins,
            title=f"[{dto.source_service}] {dto.event_type}",
            message=notification_message(dto.payload),
            type="system",
            read=False,
        )
        return len(rows)


def estimate_delivery(priority: str, now: datetime) -> datetime:
    """Advisory delivery time for ``priority`` (unknown priorities count as normal)."""
    delay = PRIORITY_DELAYS_MS.get(priority, PRIORITY_DELAYS_MS["normal"])
    return now + timedelta(milliseconds=delay)


def notification_message(payload: dict[str, Any]) -> str:
    """Pick ``title``, then ``description``, then a truncated JSON dump."""
    for key in ("title", "description"):
        value = payload.get(key)
        if value:
            return str(value)
    return json.dumps(payload, ensure_ascii=False, default=str)[:NOTIFICATION_MESSAGE_LIMIT]

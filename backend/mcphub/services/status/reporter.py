from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from mcphub.constants import HUB_SERVICE_ID, SERVICE_IDS
from mcphub.services._shared.base import BaseService, ServiceContext
from mcphub.services._shared.ports import Clock

LOGGER = logging.getLogger(__name__)

DEFAULT_DEGRADED_PENDING_THRESHOLD = 100

_HEALTH_TO_CONNECTIVITY = {"healthy": "connected", "degraded": "degraded"}


@dataclass(frozen=True, slots=True)
class RouterStatus:
    """Aggregated router state as reported by ``GET /mcp-router/status``."""

    status: str
    uptime_seconds: int
    total_dispatched: int
    successful: int
    failed: int
    pending: int
    success_rate: float
    queue_depth: dict[str, int]
    last_dispatch: datetime | None
    services: dict[str, dict[str, Any]] = field(default_factory=dict)

    def to_response(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "uptime_seconds": self.uptime_seconds,
            "statistics": {
                "total_dispatched": self.total_dispatched,
                "successful": self.successful,
                "failed": self.failed,
                "pending": self.pending,
                "success_rate": self.success_rate,
            },
            "queue_depth": dict(self.queue_depth),
            "last_dispatch": self.last_dispatch.isoformat() if self.last_dispatch else None,
            "services": {name: dict(info) for name, info in self.services.items()},
        }


def success_rate(completed: int, total: int) -> float:
    """Percentage of completed items, two decimals; ``100`` when nothing ran yet."""
    if total <= 0:
        return 100.0
    return round(completed / total * 100, 2)


class StatusReporter(BaseService):
    """
    Read-only aggregation over the event queue and service health rows.

    Uptime is measured from ``clock.started_at``, which the application
    factory injects (or the deployment supplies), so several instances can
    report against a shared start time.
    """

    def __init__(
        self,
        *,
        degraded_pending_threshold: int = DEFAULT_DEGRADED_PENDING_THRESHOLD,
        ctx: ServiceContext | None = None,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(ctx=ctx, clock=clock)
        self.degraded_pending_threshold = degraded_pending_threshold

    def report(self) -> RouterStatus:
        now = self.now()
        with self.ro_uow() as uow:
            counts = uow.event_queue.count_by_status()
            depth = uow.event_queue.pending_count_by_priority()
            last_dispatch = uow.event_queue.last_created_at()
            services = self._connectivity(uow.service_health.latest_by_service())

        total = sum(counts.values())
        pending = counts.get("pending", 0)
        uptime = max(0, int((now - self.clock.started_at).total_seconds()))

        return RouterStatus(
            status="degraded" if pending > self.degraded_pending_threshold else "healthy",
            uptime_seconds=uptime,
            total_dispatched=total,
            successful=counts.get("completed", 0),
            failed=counts.get("failed", 0),
            pending=pending,
            success_rate=success_rate(counts.get("completed", 0), total),
            queue_depth=depth,
            last_dispatch=last_dispatch,
            services=services,
        )

    @staticmethod
    def _connectivity(latest: dict[str, Any]) -> dict[str, dict[str, Any]]:
        services: dict[str, dict[str, Any]] = {
            service_id: {"status": "disconnected"} for service_id in SERVICE_IDS
        }
        for service_id, row in latest.items():
            info: dict[str, Any] = {
                "status": _HEALTH_TO_CONNECTIVITY.get(row.status, "disconnected"),
                "last_ping": row.last_ping.isoformat() if row.last_ping else None,
            }
            metrics = row.metrics if isinstance(row.metrics, dict) else {}
            latency = metrics.get("response_time_ms")
            if latency is not None:
                info["latency_ms"] = latency
            services[service_id] = info
        # The hub answers this request, so it is connected by definition
        services[HUB_SERVICE_ID] = {"status": "connected", "latency_ms": 0}
        return services

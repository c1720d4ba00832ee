"""Event routing endpoints mounted under ``/mcp-router``."""

from __future__ import annotations

from flask import Blueprint, g, request

from mcphub.api.deps import (
    audited,
    event_router,
    json_response,
    require_service_token,
    status_reporter,
    timing,
)
from mcphub.api.schemas import DispatchRequestSchema
from mcphub.services.routing import DispatchIn

bp = Blueprint("mcp_router", __name__)

dispatch_schema = DispatchRequestSchema()

IDEMPOTENCY_HEADER = "X-Idempotency-Key"


@bp.post("/dispatch")
@audited("mcp-router/dispatch")
@require_service_token()
@timing
def dispatch_event():
    """Route one event; answers 202 with the dispatch id."""

    data = dispatch_schema.load(request.get_json(silent=True) or {})
    metadata = data["metadata"] or {}
    dto = DispatchIn(
        event_type=(data["event_type"] or "").strip(),
        source_service=(data["source_service"] or "").strip(),
        target_service=data["target_service"] or None,
        payload=data["payload"],
        priority=data["priority"],
        idempotency_key=request.headers.get(IDEMPOTENCY_HEADER) or metadata.get("idempotency_key"),
        correlation_id=metadata.get("correlation_id"),
    )
    outcome = event_router().dispatch(dto)
    g.dispatch_id = outcome.dispatch_id
    return json_response(outcome.to_response(), status=202)


@bp.get("/status")
@require_service_token()
@timing
def router_status():
    """Aggregated queue, success-rate and connectivity report."""

    return json_response(status_reporter().report().to_response())

"""Shared API helpers: service wiring, bearer authentication, auditing."""

from __future__ import annotations

import functools
import logging
import time
from collections.abc import Callable
from datetime import timedelta
from typing import Any, TypeVar, cast

from flask import Response, current_app, g, jsonify, request
from marshmallow import ValidationError as MarshmallowValidationError
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from mcphub.core.config import lookup_webhook_secret
from mcphub.core.errors import APIError, Unauthorized, status_for_service_error
from mcphub.core.extensions import get_redis
from mcphub.core.logger import ensure_request_id
from mcphub.infra.jwt.flask_jwt_token_provider import JWTTokenProvider
from mcphub.infra.redis.redis_denylist_store import RedisTokenDenylistStore
from mcphub.models import AuditLogEntry
from mcphub.services._shared.base import ServiceContext
from mcphub.services._shared.errors import ServiceError
from mcphub.services._shared.ports import Clock, SystemClock, TokenDenylistStore
from mcphub.services.queue import EventQueueService
from mcphub.services.routing import EventRouter
from mcphub.services.status import StatusReporter
from mcphub.services.tokens import (
    TokenIssuer,
    TokenLifetimes,
    TokenRefresher,
    TokenRevoker,
    TokenVerifier,
)
from mcphub.uow.sqlalchemy_uow import SQLAlchemyUnitOfWork

F = TypeVar("F", bound=Callable[..., Any])

LOGGER = logging.getLogger(__name__)

CLOCK_EXTENSION = "mcphub.clock"


# --------------------------------------------------------------------------- #
# Request metadata
# --------------------------------------------------------------------------- #


def client_ip() -> str | None:
    """Return the first ``X-Forwarded-For`` hop, else the peer address."""

    route = request.access_route
    return route[0] if route else request.remote_addr


def build_service_context() -> ServiceContext:
    """Collect request-scoped data handed to services."""

    return ServiceContext(
        request_id=ensure_request_id(),
        ip_address=client_ip(),
        user_agent=request.headers.get("User-Agent"),
        service_id=getattr(g, "service_id", None),
    )


def bearer_token() -> str:
    """Extract the raw bearer token from ``Authorization``."""

    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise Unauthorized("A bearer token is required")
    return token.strip()


# --------------------------------------------------------------------------- #
# Service wiring
# --------------------------------------------------------------------------- #


def get_clock() -> Clock:
    """Return the clock injected by the application factory."""

    clock = current_app.extensions.get(CLOCK_EXTENSION)
    return cast(Clock, clock) if clock is not None else SystemClock()


def get_denylist_store() -> TokenDenylistStore | None:
    client = get_redis()
    return RedisTokenDenylistStore(client) if client is not None else None


def _lifetimes() -> TokenLifetimes:
    config = current_app.config
    return TokenLifetimes(
        access=timedelta(seconds=int(config["MCP_ACCESS_TOKEN_TTL_SECONDS"])),
        refresh=timedelta(seconds=int(config["MCP_REFRESH_TOKEN_TTL_SECONDS"])),
    )


def token_issuer() -> TokenIssuer:
    config = current_app.config
    return TokenIssuer(
        token_provider=JWTTokenProvider(),
        secret_lookup=lambda service_id: lookup_webhook_secret(config, service_id),
        lifetimes=_lifetimes(),
        timestamp_tolerance=timedelta(seconds=int(config["MCP_TIMESTAMP_TOLERANCE_SECONDS"])),
        ctx=build_service_context(),
        clock=get_clock(),
    )


def token_verifier() -> TokenVerifier:
    return TokenVerifier(
        token_provider=JWTTokenProvider(),
        denylist_store=get_denylist_store(),
        ctx=build_service_context(),
        clock=get_clock(),
    )


def token_refresher() -> TokenRefresher:
    return TokenRefresher(
        token_provider=JWTTokenProvider(),
        lifetimes=_lifetimes(),
        ctx=build_service_context(),
        clock=get_clock(),
    )


def token_revoker() -> TokenRevoker:
    return TokenRevoker(
        denylist_store=get_denylist_store(),
        same_service_only=bool(current_app.config.get("MCP_REVOKE_SAME_SERVICE_ONLY")),
        ctx=build_service_context(),
        clock=get_clock(),
    )


def event_router() -> EventRouter:
    return EventRouter(ctx=build_service_context(), clock=get_clock())


def status_reporter() -> StatusReporter:
    return StatusReporter(
        degraded_pending_threshold=int(current_app.config["MCP_STATUS_DEGRADED_PENDING_THRESHOLD"]),
        ctx=build_service_context(),
        clock=get_clock(),
    )


def queue_service() -> EventQueueService:
    return EventQueueService(clock=get_clock())


# --------------------------------------------------------------------------- #
# Decorators
# --------------------------------------------------------------------------- #


def require_service_token(*scopes: str) -> Callable[[F], F]:
    """Verify the bearer token (signature, revocation, scopes) before the handler.

    The verified identity is exposed as ``g.caller``; ``g.service_id`` and
    ``g.client_id`` feed logging and the audit trail.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any):
            caller = token_verifier().verify(bearer_token(), scopes or None)
            g.caller = caller
            g.service_id = caller.service_id
            g.client_id = caller.client_id
            return func(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator


def _failure_outcome(exc: Exception) -> tuple[int, str]:
    if isinstance(exc, ServiceError):
        return status_for_service_error(exc), exc.code
    if isinstance(exc, APIError):
        return exc.status_code, exc.code
    if isinstance(exc, MarshmallowValidationError):
        return 400, "invalid_payload"
    if isinstance(exc, HTTPException):
        return int(exc.code or 500), "http_error"
    return 500, "internal_error"


def record_audit(
    *,
    endpoint: str,
    status_code: int,
    error_code: str | None,
    elapsed_ms: float,
    service_id: str | None,
    client_id: str | None,
) -> None:
    """Append one audit row in its own transaction.

    A failure here is logged and never changes the response already decided.
    """

    entry = AuditLogEntry(
        endpoint=endpoint,
        method=request.method,
        service_id=service_id,
        client_id=client_id,
        status_code=status_code,
        success=status_code < 400,
        error_code=error_code,
        request_id=ensure_request_id(),
        ip_address=client_ip(),
        user_agent=(request.headers.get("User-Agent") or "")[:512] or None,
        response_time_ms=int(round(elapsed_ms)),
    )
    try:
        with SQLAlchemyUnitOfWork() as uow:
            uow.audit_logs.add(entry)
    except SQLAlchemyError:
        LOGGER.exception(
            "Failed to write audit entry", extra={"endpoint": endpoint, "error_code": error_code}
        )


def audited(endpoint: str) -> Callable[[F], F]:
    """Write one audit entry per call once the outcome is known.

    Handlers that answer a failure without raising (``/verify``) put the code
    on ``g.audit_error_code``. Raised errors are recorded, then re-raised for
    the JSON error handlers.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any):
            start = time.perf_counter()
            try:
                response = current_app.make_response(func(*args, **kwargs))
            except Exception as exc:
                status, code = _failure_outcome(exc)
                record_audit(
                    endpoint=endpoint,
                    status_code=status,
                    error_code=code,
                    elapsed_ms=(time.perf_counter() - start) * 1000,
                    service_id=getattr(exc, "service_id", None) or getattr(g, "service_id", None),
                    client_id=getattr(exc, "client_id", None) or getattr(g, "client_id", None),
                )
                raise
            status = response.status_code
            record_audit(
                endpoint=endpoint,
                status_code=status,
                error_code=getattr(g, "audit_error_code", None) if status >= 400 else None,
                elapsed_ms=(time.perf_counter() - start) * 1000,
                service_id=getattr(g, "service_id", None),
                client_id=getattr(g, "client_id", None),
            )
            return response

        return wrapper  # type: ignore[return-value]

    return decorator


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            request_endpoint = getattr(request, "endpoint", None)
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request_endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]

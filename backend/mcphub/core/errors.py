"""Centralized JSON error handling for the HTTP API.

Every failure is rendered in one envelope::

    {"error": {"code": ..., "message": ..., "details": ...,
               "request_id": ..., "timestamp": ...}}

so callers can branch on ``code`` without string-matching messages.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Any

from flask import Flask, Response, jsonify, request
from marshmallow import ValidationError as MarshmallowValidationError
from sqlalchemy.exc import IntegrityError, OperationalError
from werkzeug.exceptions import HTTPException

from mcphub.core.logger import ensure_request_id
from mcphub.services._shared.errors import (
    AuthenticationFailed,
    ConfigurationError,
    DispatchFailed,
    InsufficientScope,
    NotFoundError,
    ServiceError,
    ValidationFailed,
)

log = logging.getLogger(__name__)

# Service error family -> HTTP status (first match wins, most specific first)
_SERVICE_ERROR_STATUS: tuple[tuple[type[ServiceError], int], ...] = (
    (AuthenticationFailed, HTTPStatus.UNAUTHORIZED),
    (InsufficientScope, HTTPStatus.FORBIDDEN),
    (NotFoundError, HTTPStatus.NOT_FOUND),
    (ConfigurationError, HTTPStatus.INTERNAL_SERVER_ERROR),
    (DispatchFailed, HTTPStatus.INTERNAL_SERVER_ERROR),
    (ValidationFailed, HTTPStatus.BAD_REQUEST),
)


def _http_status_to_code(status_code: int) -> str:
    """Map common HTTP status codes to canonical, stable error codes."""
    mapping = {
        400: "bad_request",
        401: "unauthorized",
        403: "forbidden",
        404: "not_found",
        405: "method_not_allowed",
        409: "conflict",
        413: "payload_too_large",
        415: "unsupported_media_type",
        429: "too_many_requests",
        500: "internal_error",
        503: "service_unavailable",
    }
    return mapping.get(status_code, "error")


def utc_timestamp() -> str:
    """Return the current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def error_envelope(
    *,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Build the uniform error envelope.

    :param code: Stable machine-consumable error code.
    :param message: Human-readable error summary (safe for clients).
    :param details: Optional safe, structured details.
    :returns: Envelope dictionary.
    :rtype: dict
    """
    body: dict[str, Any] = {"code": code, "message": message}
    if details:
        body["details"] = details
    body["request_id"] = ensure_request_id()
    body["timestamp"] = utc_timestamp()
    return {"error": body}


def _envelope_response(envelope: dict[str, Any], status: int) -> tuple[Response, int]:
    return jsonify(envelope), int(status)


class APIError(Exception):
    """
    Represent a JSON-serializable API error.

    Parameters
    ----------
    message : str
        Human-readable description presented to clients.
    status_code : int, optional
        HTTP status code to return. Defaults to ``400``.
    code : str, optional
        Machine-readable identifier, typically snake_case. Defaults to
        ``"bad_request"``.
    details : dict[str, Any] | None, optional
        Optional structured payload included in the response body.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        code: str = "bad_request",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = int(status_code)
        self.code = code
        self.details = details or {}

    def to_envelope(self) -> dict[str, Any]:
        """Serialize the error into the uniform envelope."""
        return error_envelope(code=self.code, message=self.message, details=self.details or None)


class Unauthorized(APIError):
    """401 when the bearer credential is missing or malformed."""

    def __init__(self, message: str = "Unauthorized", code: str = "unauthorized") -> None:
        super().__init__(message, status_code=HTTPStatus.UNAUTHORIZED, code=code)


def status_for_service_error(exc: ServiceError) -> int:
    """Return the HTTP status associated with a service-layer error."""
    for error_type, status in _SERVICE_ERROR_STATUS:
        if isinstance(exc, error_type):
            return int(status)
    return int(HTTPStatus.BAD_REQUEST)


def translate_service_error(exc: ServiceError) -> APIError:
    """Map a framework-agnostic service error to an :class:`APIError`."""
    return APIError(
        message=exc.message,
        status_code=status_for_service_error(exc),
        code=exc.code,
        details=exc.details or None,
    )


def init_app(app: Flask) -> None:
    """
    Attach JSON error handlers to the Flask app.

    Notes
    -----
    - Guarantees the uniform envelope for all handled errors.
    - Ensures a correlation ``request_id`` is present on every error.
    - Emits 5xx with ``exc_info`` for traceability; 4xx as warnings.
    """

    @app.errorhandler(APIError)
    def handle_api_error(err: APIError):
        envelope = err.to_envelope()
        level = log.error if err.status_code >= 500 else log.warning
        level(
            "APIError: code=%s status=%s msg=%s",
            err.code,
            err.status_code,
            err.message,
            extra={"error_code": err.code},
        )
        return _envelope_response(envelope, err.status_code)

    @app.errorhandler(ServiceError)
    def handle_service_error(err: ServiceError):
        api_err = translate_service_error(err)
        level = log.error if api_err.status_code >= 500 else log.warning
        level(
            "ServiceError: code=%s status=%s msg=%s",
            api_err.code,
            api_err.status_code,
            api_err.message,
            extra={"error_code": api_err.code, "service_id": err.service_id},
        )
        return _envelope_response(api_err.to_envelope(), api_err.status_code)

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        status = int(err.code or HTTPStatus.INTERNAL_SERVER_ERROR)
        error_code = _http_status_to_code(status)
        # Werkzeug may provide HTML-ish description; normalize for clients
        message = (err.description or error_code.replace("_", " ").capitalize()).strip()
        if status == HTTPStatus.NOT_FOUND:
            message = f"Route '{request.path}' not found"
        elif status == HTTPStatus.METHOD_NOT_ALLOWED:
            message = f"Method {request.method} is not allowed on '{request.path}'"
        envelope = error_envelope(code=error_code, message=message)
        level = log.error if status >= 500 else log.warning
        level("HTTPException: code=%s status=%s detail=%s", error_code, status, message)
        return _envelope_response(envelope, status)

    @app.errorhandler(MarshmallowValidationError)
    def handle_validation_error(err: MarshmallowValidationError):
        envelope = error_envelope(
            code="invalid_payload",
            message="Request payload failed validation",
            details={"errors": err.messages},
        )
        log.warning("ValidationError: %s", err.messages, extra={"error_code": "invalid_payload"})
        return _envelope_response(envelope, HTTPStatus.BAD_REQUEST)

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err: IntegrityError):
        # Do not leak raw DB error to clients
        envelope = error_envelope(code="conflict", message="Resource conflict")
        log.error("IntegrityError", exc_info=True)
        return _envelope_response(envelope, HTTPStatus.CONFLICT)

    @app.errorhandler(OperationalError)
    def handle_operational_error(err: OperationalError):
        envelope = error_envelope(
            code="service_unavailable",
            message="Service temporarily unavailable",
        )
        log.error("OperationalError", exc_info=True)
        return _envelope_response(envelope, HTTPStatus.SERVICE_UNAVAILABLE)

    @app.errorhandler(Exception)
    def handle_unexpected_error(err: Exception):
        # Unexpected server-side error; never leak internal details
        envelope = error_envelope(code="internal_error", message="Unexpected error")
        log.error("Unhandled exception", exc_info=True)
        return _envelope_response(envelope, HTTPStatus.INTERNAL_SERVER_ERROR)

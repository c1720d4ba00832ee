"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and should never import or depend
on Flask or HTTP. Each carries a stable machine-readable ``code`` that callers
branch on; the translation to HTTP status codes and the JSON error envelope is
handled by ``mcphub/core/errors.py``.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.exc import IntegrityError


def violates(exc: IntegrityError, constraint_name: str) -> bool:
    """
    Check whether an IntegrityError originates from a specific constraint.

    Parameters
    ----------
    exc : IntegrityError
        The exception raised by SQLAlchemy during flush/commit.
    constraint_name : str
        The name of the database constraint to match
        (e.g., 'uq_event_queue_idempotency_key').

    Returns
    -------
    bool
        True if the IntegrityError matches the given constraint.
    """
    # PostgreSQL includes the constraint name, SQLite only the column list
    message = str(exc.orig).lower() if exc.orig else ""
    return constraint_name.lower() in message


# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    :param message: Human-readable summary, safe to show to callers.
    :type message: str
    :param code: Stable snake_case error code.
    :type code: str | None
    :param details: Optional structured context.
    :type details: dict[str, Any] | None
    :param service_id: Calling service when already known (used for auditing).
    :type service_id: str | None
    :param client_id: Calling client when already known (used for auditing).
    :type client_id: str | None

    Notes
    -----
    - These are *not* HTTP errors.
    - They can be safely raised from repositories or domain logic.
    """

    default_code = "bad_request"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: dict[str, Any] | None = None,
        service_id: str | None = None,
        client_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        self.service_id = service_id
        self.client_id = client_id


# --------------------------------------------------------------------------- #
# Specific domain-level errors
# --------------------------------------------------------------------------- #


class ValidationFailed(ServiceError):
    """Malformed request, unknown service/grant type/scope (client error)."""

    default_code = "invalid_payload"


class AuthenticationFailed(ServiceError):
    """Invalid, expired or revoked credentials; bad signature or timestamp."""

    default_code = "unauthorized"


class RefreshTokenReuse(AuthenticationFailed):
    """
    Raised after a consumed refresh token was presented again.

    By the time this is raised every token of the service has already been
    revoked and committed.

    :param revoked_count: Number of tokens revoked by the cascade.
    :type revoked_count: int
    """

    default_code = "refresh_token_reuse"

    def __init__(self, message: str, *, revoked_count: int = 0, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.revoked_count = revoked_count


class InsufficientScope(ServiceError):
    """Authenticated caller lacks one of the required scopes."""

    default_code = "insufficient_scope"

    def __init__(self, message: str, *, missing: list[str] | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.missing = missing or []


class NotFoundError(ServiceError):
    """Raised when an entity is not found in the repository."""

    default_code = "not_found"


class ConfigurationError(ServiceError):
    """Server-side configuration is missing (signing key, service secret)."""

    default_code = "configuration_error"


class DispatchFailed(ServiceError):
    """A downstream write failed while dispatching an event."""

    default_code = "dispatch_failed"

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

# Advice for the caller's own backoff; the hub never retries on its behalf
RETRY_POLICY: dict[str, Any] = {
    "max_retries": 3,
    "backoff_type": "exponential",
    "initial_delay_ms": 1000,
}

# ---------------------------- Configuration ------------------------------- #


@dataclass(frozen=True, slots=True)
class TokenLifetimes:
    """
    Token lifetime configuration.

    :param access: Access token lifetime (15 minutes by default).
    :type access: timedelta
    :param refresh: Refresh token lifetime (7 days by default).
    :type refresh: timedelta
    """

    access: timedelta = timedelta(minutes=15)
    refresh: timedelta = timedelta(days=7)


# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class IssueIn:
    """
    Input DTO for credential-based issuance.

    The body is kept raw because the signature covers its exact bytes.

    :param service_id: Value of ``X-Service-Id``.
    :param signature: Value of ``X-Signature``.
    :param timestamp: Value of ``X-Timestamp`` (optional).
    :param body: Raw request body.
    """

    service_id: str | None
    signature: str | None
    timestamp: str | None
    body: bytes


@dataclass(frozen=True, slots=True)
class RefreshIn:
    """
    Input DTO for token rotation.

    :param grant_type: Must be ``"refresh_token"``.
    :param refresh_token: Raw opaque refresh token.
    """

    grant_type: str | None
    refresh_token: str | None


@dataclass(frozen=True, slots=True)
class RevokeIn:
    """
    Input DTO for revocation (RFC 7009).

    :param token: Raw access or refresh token.
    :param token_type_hint: ``"access_token"`` or ``"refresh_token"``.
    :param reason: Free-form reason recorded on the row.
    """

    token: str
    token_type_hint: str | None = None
    reason: str | None = None


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class TokenPairOut:
    """
    Freshly minted access/refresh pair.

    :param access_token: Signed JWT.
    :param refresh_token: Opaque ``rt_`` token.
    :param expires_in: Access token lifetime in seconds.
    :param scope: Granted scopes.
    :param issued_at: Issuance time.
    :param service_id: Owning service.
    :param client_id: Caller-supplied client identifier.
    :param access_jti: JWT id of the access token.
    """

    access_token: str
    refresh_token: str
    expires_in: int
    scope: tuple[str, ...]
    issued_at: datetime
    service_id: str
    client_id: str
    access_jti: str
    token_type: str = "Bearer"

    def to_response(self) -> dict[str, Any]:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_in": self.expires_in,
            "token_type": self.token_type,
            "scope": " ".join(self.scope),
            "issued_at": self.issued_at.isoformat(),
            "retry_policy": dict(RETRY_POLICY),
        }


@dataclass(frozen=True, slots=True)
class VerifiedToken:
    """
    Identity proven by a valid access token.

    :param service_id: ``sub`` claim.
    :param client_id: ``client_id`` claim.
    :param scope: Granted scopes.
    :param expires_at: Absolute expiry.
    :param remaining_seconds: Seconds until expiry.
    :param jti: JWT id.
    """

    service_id: str
    client_id: str | None
    scope: tuple[str, ...]
    expires_at: datetime
    remaining_seconds: int
    jti: str | None

    def to_response(self) -> dict[str, Any]:
        return {
            "valid": True,
            "service_id": self.service_id,
            "scope": list(self.scope),
            "expires_at": self.expires_at.isoformat(),
            "remaining_seconds": self.remaining_seconds,
        }


@dataclass(frozen=True, slots=True)
class RevocationOut:
    """
    Revocation outcome.

    ``token_id`` is kept for auditing and logs only; the HTTP response has the
    same shape whether or not the token existed.
    """

    revoked_at: datetime
    token_id: str | None = None

    def to_response(self) -> dict[str, Any]:
        return {"revoked": True, "revoked_at": self.revoked_at.isoformat()}

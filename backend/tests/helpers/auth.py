"""Helpers building signed credential requests for the token endpoint."""

from __future__ import annotations

import json
from typing import Any

from mcphub.services.tokens import IssueIn
from mcphub.services.tokens.credentials import compute_signature

SERVICE_SECRETS: dict[str, str] = {
    "minu-find": "find-shared-secret-for-tests",
    "minu-frame": "frame-shared-secret-for-tests",
    "minu-build": "build-shared-secret-for-tests",
}


def credential_body(
    *,
    client_id: str | None = "client-1",
    scope: Any = None,
    grant_type: str = "service_credentials",
) -> bytes:
    """Serialize a ``service_credentials`` body (``scope`` omitted when ``None``)."""

    payload: dict[str, Any] = {"grant_type": grant_type}
    if client_id is not None:
        payload["client_id"] = client_id
    if scope is not None:
        payload["scope"] = scope
    return json.dumps(payload).encode("utf-8")


def credential_request(
    *,
    service_id: str = "minu-find",
    client_id: str | None = "client-1",
    scope: Any = None,
    grant_type: str = "service_credentials",
    secret: str | None = None,
    timestamp: str | None = None,
    body: bytes | None = None,
) -> tuple[bytes, dict[str, str]]:
    """Return ``(body, headers)`` for ``POST /mcp-auth/token``.

    Parameters
    ----------
    service_id:
        Value of ``X-Service-Id``.
    secret:
        Key used for the HMAC; defaults to the service's provisioned secret.
    timestamp:
        Optional ``X-Timestamp`` value.
    body:
        Raw body override; otherwise built from the remaining arguments.
    """

    raw = body if body is not None else credential_body(
        client_id=client_id, scope=scope, grant_type=grant_type
    )
    key = secret if secret is not None else SERVICE_SECRETS.get(service_id, "unprovisioned")
    headers = {
        "Content-Type": "application/json",
        "X-Service-Id": service_id,
        "X-Signature": compute_signature(key, raw),
    }
    if timestamp is not None:
        headers["X-Timestamp"] = timestamp
    return raw, headers


def bearer(token: str) -> dict[str, str]:
    """Authorization header for ``token``."""

    return {"Authorization": f"Bearer {token}"}


def issue_in(**kwargs: Any) -> IssueIn:
    """Build an :class:`IssueIn` from :func:`credential_request` arguments."""

    body, headers = credential_request(**kwargs)
    return IssueIn(
        service_id=headers["X-Service-Id"],
        signature=headers["X-Signature"],
        timestamp=headers.get("X-Timestamp"),
        body=body,
    )

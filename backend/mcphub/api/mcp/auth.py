"""Token lifecycle endpoints mounted under ``/mcp-auth``."""

from __future__ import annotations

from flask import Blueprint, g, request

from mcphub.api.deps import (
    audited,
    json_response,
    require_service_token,
    timing,
    token_issuer,
    token_refresher,
    token_revoker,
    token_verifier,
)
from mcphub.api.schemas import RefreshRequestSchema, RevokeRequestSchema, VerifyRequestSchema
from mcphub.services._shared.errors import AuthenticationFailed, InsufficientScope
from mcphub.services.tokens import IssueIn, RefreshIn, RevokeIn

bp = Blueprint("mcp_auth", __name__)

verify_schema = VerifyRequestSchema()
refresh_schema = RefreshRequestSchema()
revoke_schema = RevokeRequestSchema()


@bp.post("/token")
@audited("mcp-auth/token")
@timing
def issue_token():
    """Exchange HMAC-signed service credentials for a token pair."""

    dto = IssueIn(
        service_id=request.headers.get("X-Service-Id"),
        signature=request.headers.get("X-Signature"),
        timestamp=request.headers.get("X-Timestamp"),
        body=request.get_data(cache=True),
    )
    pair = token_issuer().issue(dto)
    g.service_id = pair.service_id
    g.client_id = pair.client_id
    return json_response(pair.to_response())


@bp.post("/verify")
@audited("mcp-auth/verify")
@timing
def verify_token():
    """Report whether a token is valid; failures answer ``valid: false``."""

    data = verify_schema.load(request.get_json(silent=True) or {})
    try:
        verified = token_verifier().verify(data["token"], data["required_scope"] or None)
    except (AuthenticationFailed, InsufficientScope) as exc:
        g.audit_error_code = exc.code
        g.service_id = exc.service_id
        g.client_id = exc.client_id
        status = 403 if isinstance(exc, InsufficientScope) else 401
        body = {"valid": False, "error": exc.code, "error_description": exc.message}
        return json_response(body, status=status)

    g.service_id = verified.service_id
    g.client_id = verified.client_id
    return json_response(verified.to_response())


@bp.post("/refresh")
@audited("mcp-auth/refresh")
@timing
def refresh_token():
    """Rotate a refresh token; a replayed token kills the whole service session."""

    data = refresh_schema.load(request.get_json(silent=True) or {})
    pair = token_refresher().refresh(
        RefreshIn(grant_type=data["grant_type"], refresh_token=data["refresh_token"])
    )
    g.service_id = pair.service_id
    g.client_id = pair.client_id
    return json_response(pair.to_response())


@bp.post("/revoke")
@audited("mcp-auth/revoke")
@require_service_token()
@timing
def revoke_token():
    """RFC 7009 revocation: always 200 with the same shape."""

    data = revoke_schema.load(request.get_json(silent=True) or {})
    outcome = token_revoker().revoke(
        RevokeIn(
            token=data["token"],
            token_type_hint=data["token_type_hint"],
            reason=data["reason"],
        ),
        caller_service_id=g.caller.service_id,
    )
    return json_response(outcome.to_response())

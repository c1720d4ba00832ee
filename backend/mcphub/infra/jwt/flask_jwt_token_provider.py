# mcphub/infra/jwt/flask_jwt_token_provider.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, cast

import jwt
from flask import current_app
from flask_jwt_extended.exceptions import JWTExtendedException

from mcphub.services._shared.errors import AuthenticationFailed, ConfigurationError
from mcphub.services._shared.ports import TokenProvider


@dataclass(slots=True)
class JWTTokenProvider(TokenProvider):
    """
    Adapter for Flask-JWT-Extended.

    Issuer, audience and algorithm come from the ``JWT_*`` settings, so the
    adapter only adds the service claims and maps library errors onto the
    service-layer error codes.

    .. note::
       Requires an active Flask app context with proper JWT settings.
    """

    def _require_secret(self) -> None:
        if not current_app.config.get("JWT_SECRET_KEY"):
            raise ConfigurationError("Token signing key is not configured")

    def create_access_token(
        self,
        *,
        identity: str,
        jti: str,
        expires_delta: timedelta,
        additional_claims: dict[str, Any] | None = None,
    ) -> str:
        from flask_jwt_extended import create_access_token as _create_access
        from flask_jwt_extended import decode_token as _decode

        self._require_secret()
        # The library generates its own jti unless one is passed as a claim
        claims = {**(additional_claims or {}), "jti": jti}
        token = cast(
            str,
            _create_access(identity=identity, additional_claims=claims, expires_delta=expires_delta),
        )

        # The stored row is keyed on this jti; fail fast on any drift
        actual = cast(dict[str, Any], _decode(token))["jti"]
        if actual != jti:
            raise RuntimeError("Access token jti mismatch after creation.")
        return token

    def decode(self, token: str) -> dict[str, Any]:
        from flask_jwt_extended import decode_token

        self._require_secret()
        try:
            return cast(dict[str, Any], decode_token(token))
        except jwt.ExpiredSignatureError as exc:
            raise AuthenticationFailed("Token has expired", code="token_expired") from exc
        except (jwt.InvalidTokenError, JWTExtendedException) as exc:
            raise AuthenticationFailed("Token is invalid", code="token_invalid") from exc

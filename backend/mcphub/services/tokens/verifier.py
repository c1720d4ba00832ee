from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

from mcphub.constants import SERVICE_IDS
from mcphub.services._shared.base import BaseService, ServiceContext
from mcphub.services._shared.errors import AuthenticationFailed, InsufficientScope
from mcphub.services._shared.ports import Clock, TokenDenylistStore, TokenProvider
from mcphub.services.tokens.credentials import hash_token
from mcphub.services.tokens.dto import VerifiedToken

LOGGER = logging.getLogger(__name__)


class TokenVerifier(BaseService):
    """
    The single bearer-token check used by every protected endpoint.

    A token is accepted only when all of these hold:

    1. Signature and standard claims verify (``exp``, ``iss=mcp-auth``,
       ``aud=central-hub``), it is an access token and ``sub`` names a known
       service.
    2. Its hash maps to a stored row that is not revoked. The optional
       denylist is consulted first but never replaces the database check.
    3. Every required scope is granted (otherwise ``insufficient_scope``).
    """

    def __init__(
        self,
        *,
        token_provider: TokenProvider,
        denylist_store: TokenDenylistStore | None = None,
        ctx: ServiceContext | None = None,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(ctx=ctx, clock=clock)
        self.tokens = token_provider
        self.denylist = denylist_store

    def verify(self, token: str, required_scopes: Iterable[str] | None = None) -> VerifiedToken:
        """
        Verify ``token`` and return the identity it proves.

        :param token: Raw bearer string.
        :param required_scopes: Scopes that must all be granted.
        :returns: Verified identity.
        :raises AuthenticationFailed: ``token_invalid``, ``token_expired`` or
            ``token_revoked``.
        :raises InsufficientScope: A required scope is missing.
        """
        claims = self.tokens.decode(token)
        service_id = claims.get("sub")
        if claims.get("type", "access") != "access" or service_id not in SERVICE_IDS:
            raise AuthenticationFailed("Token is not a service access token", code="token_invalid")

        token_hash = hash_token(token)
        if self.denylist is not None and self.denylist.is_revoked(token_hash):
            self._reject_revoked(service_id)

        with self.ro_uow() as uow:
            row = uow.tokens.get_by_hash(token_hash, token_type="access")
            if row is None:
                raise AuthenticationFailed(
                    "Token was not issued by this hub", code="token_invalid", service_id=service_id
                )
            if row.is_revoked:
                self._reject_revoked(service_id)

        granted = tuple(self._scope_claim(claims))
        missing = [s for s in (required_scopes or ()) if s not in granted]
        if missing:
            raise InsufficientScope(
                "Token lacks required scope: " + ", ".join(missing),
                missing=missing,
                details={"missing_scopes": missing},
                service_id=service_id,
                client_id=claims.get("client_id"),
            )

        expires_at = datetime.fromtimestamp(int(claims["exp"]), tz=UTC)
        remaining = max(0, int((expires_at - self.now()).total_seconds()))
        return VerifiedToken(
            service_id=service_id,
            client_id=claims.get("client_id"),
            scope=granted,
            expires_at=expires_at,
            remaining_seconds=remaining,
            jti=claims.get("jti"),
        )

    @staticmethod
    def _scope_claim(claims: dict[str, Any]) -> list[str]:
        scope = claims.get("scope") or []
        if isinstance(scope, str):
            return scope.split()
        return [s for s in scope if isinstance(s, str)]

    @staticmethod
    def _reject_revoked(service_id: str) -> None:
        LOGGER.warning(
            "Revoked token presented",
            extra={"service_id": service_id, "error_code": "token_revoked"},
        )
        raise AuthenticationFailed(
            "Token has been revoked", code="token_revoked", service_id=service_id
        )

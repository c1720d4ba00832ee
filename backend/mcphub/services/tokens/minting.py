from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from uuid import uuid4

from mcphub.models.service_token import ServiceToken
from mcphub.services._shared.base import ServiceContext
from mcphub.services._shared.ports import TokenProvider
from mcphub.services.tokens.credentials import generate_refresh_token, hash_token
from mcphub.services.tokens.dto import TokenLifetimes, TokenPairOut
from mcphub.uow.sqlalchemy_uow import SQLAlchemyUnitOfWork


class TokenMinter:
    """
    Mint an access/refresh pair and persist both hashes.

    Shared by issuance and rotation so both produce identical rows and
    response shapes. Persisting happens inside the caller's Unit of Work, so
    the pair is durable only if the caller's transaction commits.
    """

    def __init__(self, token_provider: TokenProvider, lifetimes: TokenLifetimes) -> None:
        self.tokens = token_provider
        self.lifetimes = lifetimes

    def mint_pair(
        self,
        uow: SQLAlchemyUnitOfWork,
        *,
        service_id: str,
        client_id: str,
        scope: Iterable[str],
        now: datetime,
        ctx: ServiceContext,
    ) -> TokenPairOut:
        """
        Create, persist and return a new pair.

        :param uow: Open read-write unit of work.
        :param service_id: Owning service (JWT ``sub``).
        :param client_id: Caller-supplied client identifier.
        :param scope: Granted scopes.
        :param now: Issuance time.
        :param ctx: Request context providing audit metadata.
        :returns: The raw tokens (never persisted) and their metadata.
        :rtype: TokenPairOut
        """
        granted = tuple(sorted(set(scope)))
        jti = str(uuid4())
        access_token = self.tokens.create_access_token(
            identity=service_id,
            jti=jti,
            expires_delta=self.lifetimes.access,
            additional_claims={"scope": list(granted), "client_id": client_id},
        )
        refresh_token = generate_refresh_token()

        common = {
            "service_id": service_id,
            "client_id": client_id,
            "scope": list(granted),
            "ip_address": ctx.ip_address,
            "user_agent": ctx.user_agent,
        }
        uow.tokens.add_all(
            [
                ServiceToken(
                    token_hash=hash_token(access_token),
                    token_type="access",
                    jti=jti,
                    expires_at=now + self.lifetimes.access,
                    **common,
                ),
                ServiceToken(
                    token_hash=hash_token(refresh_token),
                    token_type="refresh",
                    expires_at=now + self.lifetimes.refresh,
                    **common,
                ),
            ]
        )

        return TokenPairOut(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=int(self.lifetimes.access.total_seconds()),
            scope=granted,
            issued_at=now,
            service_id=service_id,
            client_id=client_id,
            access_jti=jti,
        )

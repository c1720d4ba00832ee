from __future__ import annotations

import logging

from mcphub.services._shared.base import BaseService, ServiceContext
from mcphub.services._shared.errors import (
    AuthenticationFailed,
    RefreshTokenReuse,
    ValidationFailed,
)
from mcphub.services._shared.ports import Clock, TokenProvider
from mcphub.services.tokens.credentials import hash_token
from mcphub.services.tokens.dto import RefreshIn, TokenLifetimes, TokenPairOut
from mcphub.services.tokens.minting import TokenMinter

LOGGER = logging.getLogger(__name__)

REUSE_REASON = "refresh_token_reuse"


class TokenRefresher(BaseService):
    """
    Refresh token rotation with replay detection.

    Each refresh token moves ``issued -> used`` once. The transition is a
    conditional update committed in the same transaction as the successor
    pair, so two concurrent rotations of one token cannot both succeed.
    Presenting a token that is already used (or losing that race) is treated
    as theft: every token of the service is revoked before the error surfaces.
    """

    def __init__(
        self,
        *,
        token_provider: TokenProvider,
        lifetimes: TokenLifetimes | None = None,
        ctx: ServiceContext | None = None,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(ctx=ctx, clock=clock)
        self.minter = TokenMinter(token_provider, lifetimes or TokenLifetimes())

    # ------------------------------------------------------------------ #
    # Refresh with atomic rotation
    # ------------------------------------------------------------------ #

    def refresh(self, dto: RefreshIn) -> TokenPairOut:
        """
        Rotate a refresh token into a new pair.

        :param dto: Grant type and raw refresh token.
        :returns: New pair with the old token's service, client and scope.
        :raises ValidationFailed: ``unsupported_grant_type`` or ``invalid_payload``.
        :raises AuthenticationFailed: ``invalid_token``, ``token_revoked`` or
            ``token_expired``.
        :raises RefreshTokenReuse: The token was already consumed; the whole
            service token family is revoked (and committed) at this point.
        """
        if dto.grant_type != "refresh_token":
            raise ValidationFailed(
                "grant_type must be 'refresh_token'", code="unsupported_grant_type"
            )
        if not dto.refresh_token:
            raise ValidationFailed("refresh_token is required", code="invalid_payload")

        now = self.now()
        revoked_count: int | None = None
        with self.rw_uow() as uow:
            row = uow.tokens.get_by_hash(hash_token(dto.refresh_token), token_type="refresh")
            if row is None:
                raise AuthenticationFailed("Unknown refresh token", code="invalid_token")

            identity = {"service_id": row.service_id, "client_id": row.client_id}
            if row.is_revoked:
                raise AuthenticationFailed(
                    "Refresh token has been revoked", code="token_revoked", **identity
                )
            if row.expires_at <= now:
                raise AuthenticationFailed(
                    "Refresh token has expired", code="token_expired", **identity
                )

            if row.used or not uow.tokens.mark_used_if_unused(row.id, used_at=now):
                revoked_count = uow.tokens.revoke_all_for_service(
                    row.service_id, revoked_at=now, reason=REUSE_REASON
                )
            else:
                pair = self.minter.mint_pair(
                    uow,
                    service_id=row.service_id,
                    client_id=row.client_id,
                    scope=row.scope,
                    now=now,
                    ctx=self.ctx,
                )

        if revoked_count is not None:
            LOGGER.warning(
                "Refresh token reuse detected; revoked %d tokens",
                revoked_count,
                extra={**identity, "error_code": REUSE_REASON},
            )
            raise RefreshTokenReuse(
                "Refresh token was already used; all tokens of this service are revoked",
                revoked_count=revoked_count,
                **identity,
            )

        LOGGER.info("Rotated refresh token", extra=identity)
        return pair

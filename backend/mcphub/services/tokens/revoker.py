from __future__ import annotations

import logging

from mcphub.services._shared.base import BaseService, ServiceContext
from mcphub.services._shared.errors import ValidationFailed
from mcphub.services._shared.ports import Clock, TokenDenylistStore
from mcphub.services.tokens.credentials import hash_token, looks_like_refresh_token
from mcphub.services.tokens.dto import RevocationOut, RevokeIn

LOGGER = logging.getLogger(__name__)

DEFAULT_REASON = "user_request"
_HINTS = {"access_token": "access", "refresh_token": "refresh"}


class TokenRevoker(BaseService):
    """
    RFC 7009 revocation.

    Revoking an unknown or already-revoked token is a successful no-op and
    the outcome is reported with the same shape either way. Any authenticated
    service may revoke any token (administrative revocation) unless
    ``same_service_only`` is set, in which case tokens of other services are
    treated exactly like unknown tokens.
    """

    def __init__(
        self,
        *,
        denylist_store: TokenDenylistStore | None = None,
        same_service_only: bool = False,
        ctx: ServiceContext | None = None,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(ctx=ctx, clock=clock)
        self.denylist = denylist_store
        self.same_service_only = same_service_only

    def revoke(self, dto: RevokeIn, *, caller_service_id: str) -> RevocationOut:
        """
        Revoke a single token.

        :param dto: Raw token plus optional hint and reason.
        :param caller_service_id: Service proven by the caller's own bearer token.
        :returns: Outcome; ``token_id`` is set only when a row matched.
        :raises ValidationFailed: ``invalid_payload`` when no token is given.
        """
        if not dto.token:
            raise ValidationFailed("token is required", code="invalid_payload")

        now = self.now()
        token_hash = hash_token(dto.token)
        hinted = _HINTS.get(dto.token_type_hint or "")
        inferred = "refresh" if looks_like_refresh_token(dto.token) else "access"
        owner = caller_service_id if self.same_service_only else None

        with self.rw_uow() as uow:
            # The hash is unique, so a wrong hint never hides a token
            row = uow.tokens.revoke_by_hash(
                token_hash,
                revoked_at=now,
                reason=dto.reason or DEFAULT_REASON,
                service_id=owner,
            )
            outcome = RevocationOut(revoked_at=now, token_id=row.id if row else None)
            expires_at = row.expires_at if row else None

        if row is not None and self.denylist is not None and expires_at is not None:
            self.denylist.revoke(token_hash=token_hash, expires_at=expires_at)

        LOGGER.info(
            "Revocation processed (matched=%s, type=%s)",
            outcome.token_id is not None,
            hinted or inferred,
            extra={"service_id": caller_service_id},
        )
        return outcome

    def revoke_service(self, service_id: str, *, reason: str) -> int:
        """
        Revoke every still-valid token of ``service_id``.

        :returns: Number of rows revoked.
        """
        with self.rw_uow() as uow:
            count = uow.tokens.revoke_all_for_service(
                service_id, revoked_at=self.now(), reason=reason
            )
        LOGGER.warning(
            "Revoked all tokens of service (%d rows)", count, extra={"service_id": service_id}
        )
        return count

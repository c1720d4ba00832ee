"""Service token repository: hash lookups and conditional lifecycle updates."""

from __future__ import annotations

from datetime import datetime
from typing import cast

from sqlalchemy import select, update

from mcphub.models.service_token import ServiceToken
from mcphub.repositories.base import BaseRepository


class ServiceTokenRepository(BaseRepository[ServiceToken]):
    """Persistence-only repository for :class:`ServiceToken`.

    Only token *hashes* ever reach this layer. Updates that guard a security
    property are conditional so that concurrent callers cannot both win.
    """

    model = ServiceToken

    # ---------------------------- Lookup helpers ----------------------------

    def get_by_hash(self, token_hash: str, *, token_type: str | None = None) -> ServiceToken | None:
        """Fetch a token row by its SHA-256 hash.

        :param token_hash: Hex digest of the raw token.
        :type token_hash: str
        :param token_type: Restrict to ``"access"`` or ``"refresh"`` rows.
        :type token_type: str | None
        :returns: Matching row or ``None``.
        :rtype: ServiceToken | None
        """
        stmt = select(ServiceToken).where(ServiceToken.token_hash == token_hash)
        if token_type is not None:
            stmt = stmt.where(ServiceToken.token_type == token_type)
        return cast(ServiceToken | None, self.session.execute(stmt).scalars().first())

    def list_for_service(self, service_id: str) -> list[ServiceToken]:
        """Return every token ever issued to ``service_id``, oldest first."""
        stmt = (
            select(ServiceToken)
            .where(ServiceToken.service_id == service_id)
            .order_by(ServiceToken.created_at.asc())
        )
        return list(self.session.execute(stmt).scalars().all())

    # ---------------------------- Conditional updates ----------------------------

    def mark_used_if_unused(self, token_id: str, *, used_at: datetime) -> bool:
        """Consume a refresh token exactly once.

        Issues ``UPDATE ... WHERE used = false``; only one concurrent caller
        observes a row count of one.

        :param token_id: Primary key of the refresh token row.
        :type token_id: str
        :param used_at: Consumption timestamp.
        :type used_at: datetime
        :returns: ``True`` when this call consumed the token.
        :rtype: bool
        """
        stmt = (
            update(ServiceToken)
            .where(
                ServiceToken.id == token_id,
                ServiceToken.token_type == "refresh",
                ServiceToken.used.is_(False),
            )
            .values(used=True, used_at=used_at)
            .execution_options(synchronize_session="fetch")
        )
        result = self.session.execute(stmt)
        return bool(result.rowcount == 1)

    def revoke_by_hash(
        self,
        token_hash: str,
        *,
        revoked_at: datetime,
        reason: str,
        token_type: str | None = None,
        service_id: str | None = None,
    ) -> ServiceToken | None:
        """Revoke the row matching ``token_hash`` unless already revoked.

        Already-revoked rows keep their original ``revoked_at``/``revoked_reason``.

        :param token_hash: Hex digest of the raw token.
        :param revoked_at: Revocation timestamp.
        :param reason: Short machine-readable reason.
        :param token_type: Optional type restriction.
        :param service_id: Optional owner restriction.
        :returns: The matching row (revoked now or earlier), or ``None``.
        :rtype: ServiceToken | None
        """
        criteria = [ServiceToken.token_hash == token_hash, ServiceToken.is_revoked.is_(False)]
        if token_type is not None:
            criteria.append(ServiceToken.token_type == token_type)
        if service_id is not None:
            criteria.append(ServiceToken.service_id == service_id)

        stmt = (
            update(ServiceToken)
            .where(*criteria)
            .values(is_revoked=True, revoked_at=revoked_at, revoked_reason=reason)
            .execution_options(synchronize_session="fetch")
        )
        self.session.execute(stmt)

        row = self.get_by_hash(token_hash, token_type=token_type)
        if row is None or (service_id is not None and row.service_id != service_id):
            return None
        return row

    def revoke_all_for_service(self, service_id: str, *, revoked_at: datetime, reason: str) -> int:
        """Revoke every still-valid token (access and refresh) of a service.

        :param service_id: Service whose token family is invalidated.
        :type service_id: str
        :param revoked_at: Revocation timestamp.
        :type revoked_at: datetime
        :param reason: Reason recorded on each row.
        :type reason: str
        :returns: Number of rows revoked by this call.
        :rtype: int
        """
        stmt = (
            update(ServiceToken)
            .where(ServiceToken.service_id == service_id, ServiceToken.is_revoked.is_(False))
            .values(is_revoked=True, revoked_at=revoked_at, revoked_reason=reason)
            .execution_options(synchronize_session="fetch")
        )
        result = self.session.execute(stmt)
        return int(result.rowcount or 0)

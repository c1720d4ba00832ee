"""Issued service credentials, stored by hash only."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, CheckConstraint, Index, String, false
from sqlalchemy.orm import Mapped, mapped_column, validates

from mcphub.constants import SERVICE_IDS, TOKEN_TYPES
from mcphub.core.extensions import db

from .base import CreatedAtMixin, PKMixin, ReprMixin, UTCDateTime


class ServiceToken(PKMixin, CreatedAtMixin, ReprMixin, db.Model):
    """
    One row per issued access or refresh token.

    The raw token is never stored; ``token_hash`` holds its SHA-256 hex digest.
    Rows are never deleted: they back auditing and refresh-token replay
    detection. ``is_revoked`` only ever moves from ``False`` to ``True``.
    """

    __tablename__ = "service_tokens"

    service_id: Mapped[str] = mapped_column(String(32), nullable=False)
    client_id: Mapped[str] = mapped_column(String(255), nullable=False)
    token_hash: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    token_type: Mapped[str] = mapped_column(String(16), nullable=False)
    # JWT id for access tokens; refresh tokens are opaque
    jti: Mapped[str | None] = mapped_column(String(64))
    scope: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    is_revoked: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    revoked_at: Mapped[datetime | None] = mapped_column(UTCDateTime())
    revoked_reason: Mapped[str | None] = mapped_column(String(64))

    # Refresh tokens only: single-use flag
    used: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    used_at: Mapped[datetime | None] = mapped_column(UTCDateTime())

    ip_address: Mapped[str | None] = mapped_column(String(45))
    user_agent: Mapped[str | None] = mapped_column(String(512))

    __table_args__ = (
        CheckConstraint(
            "token_type IN ({})".format(", ".join(f"'{t}'" for t in TOKEN_TYPES)),
            name="token_type",
        ),
        Index("ix_service_tokens_service_type", "service_id", "token_type"),
        Index("ix_service_tokens_expires_at", "expires_at"),
    )

    @validates("service_id")
    def _validate_service_id(self, key: str, value: str) -> str:
        if value not in SERVICE_IDS:
            raise ValueError(f"Unknown service_id: {value!r}")
        return value

    @validates("is_revoked")
    def _validate_revocation_is_monotonic(self, key: str, value: bool) -> bool:
        if self.is_revoked and not value:
            raise ValueError("A revoked token cannot be reinstated")
        return value

    @validates("scope")
    def _validate_scope(self, key: str, value: Any) -> list[str]:
        return sorted(set(value or []))

    @property
    def is_refresh(self) -> bool:
        return self.token_type == "refresh"

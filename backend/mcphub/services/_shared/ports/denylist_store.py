from __future__ import annotations

from datetime import datetime
from typing import Protocol


class TokenDenylistStore(Protocol):
    """
    Fast-path denylist of revoked token hashes.

    The database stays the source of truth; a store only short-circuits
    lookups for tokens already known to be revoked. Methods are idempotent.
    """

    def is_revoked(self, token_hash: str) -> bool: ...
    def revoke(self, *, token_hash: str, expires_at: datetime) -> None: ...


class InMemoryDenylistStore(TokenDenylistStore):
    """Simple in-memory denylist keyed by token hash."""

    def __init__(self) -> None:
        self._revoked: dict[str, datetime] = {}

    def is_revoked(self, token_hash: str) -> bool:
        # Expired entries are not cleaned for simplicity in unit tests.
        return token_hash in self._revoked

    def revoke(self, *, token_hash: str, expires_at: datetime) -> None:
        self._revoked[token_hash] = expires_at

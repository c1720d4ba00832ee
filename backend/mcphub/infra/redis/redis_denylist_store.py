import logging
from datetime import UTC, datetime
from typing import cast

import redis  # type: ignore[import-untyped]

LOGGER = logging.getLogger(__name__)


class RedisTokenDenylistStore:
    """
    Denylist of revoked **token hashes** with a TTL matching the token lifetime.

    Only a fast path: a Redis outage degrades to "not listed" and the
    database check decides.
    """

    def __init__(self, r: redis.Redis):
        self.r = r

    @staticmethod
    def _k(token_hash: str) -> str:
        return f"deny:token:{token_hash}"

    def is_revoked(self, token_hash: str) -> bool:
        try:
            return cast(int, self.r.exists(self._k(token_hash))) == 1
        except redis.RedisError as exc:
            LOGGER.warning("Denylist lookup failed: %s", exc)
            return False

    def revoke(self, *, token_hash: str, expires_at: datetime) -> None:
        now = datetime.now(UTC).timestamp()
        ttl = int(expires_at.timestamp() - now)
        if ttl <= 0:
            # Already expired; the signature check rejects it anyway
            return
        try:
            # store a small marker with TTL; idempotent
            self.r.set(self._k(token_hash), "1", ex=ttl)
        except redis.RedisError as exc:
            LOGGER.warning("Denylist write failed: %s", exc)

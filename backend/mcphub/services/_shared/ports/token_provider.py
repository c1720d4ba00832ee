from __future__ import annotations

from datetime import timedelta
from typing import Any, Protocol


class TokenProvider(Protocol):
    """
    Port for signing and decoding service access tokens (HS256 JWT).

    Implementations raise
    :class:`~mcphub.services._shared.errors.AuthenticationFailed` from
    :meth:`decode` with code ``token_expired`` for an expired token and
    ``token_invalid`` for any other signature or claim failure, and
    :class:`~mcphub.services._shared.errors.ConfigurationError` when no
    signing key is provisioned.
    """

    def create_access_token(
        self,
        *,
        identity: str,
        jti: str,
        expires_delta: timedelta,
        additional_claims: dict[str, Any] | None = None,
    ) -> str: ...

    def decode(self, token: str) -> dict[str, Any]: ...

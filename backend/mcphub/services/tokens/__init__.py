"""Service token lifecycle: issue, verify, refresh (rotate) and revoke."""

from mcphub.services.tokens.dto import (
    IssueIn,
    RefreshIn,
    RevocationOut,
    RevokeIn,
    TokenLifetimes,
    TokenPairOut,
    VerifiedToken,
)
from mcphub.services.tokens.issuer import TokenIssuer
from mcphub.services.tokens.refresher import TokenRefresher
from mcphub.services.tokens.revoker import TokenRevoker
from mcphub.services.tokens.verifier import TokenVerifier

__all__ = [
    "IssueIn",
    "RefreshIn",
    "RevocationOut",
    "RevokeIn",
    "TokenIssuer",
    "TokenLifetimes",
    "TokenPairOut",
    "TokenRefresher",
    "TokenRevoker",
    "TokenVerifier",
    "VerifiedToken",
]

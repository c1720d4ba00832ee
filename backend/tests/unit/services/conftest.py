"""Service-layer fixtures: a fixed clock and services wired to the real JWT adapter."""

from __future__ import annotations

import pytest
from mcphub.infra.jwt import JWTTokenProvider
from mcphub.services._shared.ports import InMemoryDenylistStore
from mcphub.services.tokens import (
    TokenIssuer,
    TokenRefresher,
    TokenRevoker,
    TokenVerifier,
)
from tests.helpers.auth import SERVICE_SECRETS, issue_in
from tests.helpers.clock import FixedClock


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture()
def provider(app) -> JWTTokenProvider:
    return JWTTokenProvider()


@pytest.fixture()
def denylist() -> InMemoryDenylistStore:
    return InMemoryDenylistStore()


@pytest.fixture()
def issuer(provider, clock) -> TokenIssuer:
    return TokenIssuer(token_provider=provider, secret_lookup=SERVICE_SECRETS.get, clock=clock)


@pytest.fixture()
def verifier(provider, clock) -> TokenVerifier:
    return TokenVerifier(token_provider=provider, clock=clock)


@pytest.fixture()
def refresher(provider, clock) -> TokenRefresher:
    return TokenRefresher(token_provider=provider, clock=clock)


@pytest.fixture()
def revoker(denylist, clock) -> TokenRevoker:
    return TokenRevoker(denylist_store=denylist, clock=clock)


@pytest.fixture()
def mint(issuer):
    """Return a callable issuing a pair through :class:`TokenIssuer`."""

    def _mint(**kwargs):
        return issuer.issue(issue_in(**kwargs))

    return _mint

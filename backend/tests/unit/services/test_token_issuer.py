# tests/unit/services/test_token_issuer.py
from __future__ import annotations

from dataclasses import replace
from datetime import timedelta

import pytest
from mcphub.models import ServiceToken
from mcphub.services._shared.errors import (
    AuthenticationFailed,
    ConfigurationError,
    ValidationFailed,
)
from mcphub.services.tokens.credentials import hash_token
from mcphub.services.tokens.issuer import filter_scopes
from sqlalchemy import select
from tests.helpers.auth import credential_body, issue_in


def _rows(session, service_id: str) -> list[ServiceToken]:
    stmt = select(ServiceToken).where(ServiceToken.service_id == service_id)
    return list(session.execute(stmt).scalars().all())


# -------------------------------- Happy path -------------------------------- #
def test_issue_persists_hashes_of_both_tokens(mint, session, provider, clock):
    """A valid request yields a pair whose hashes (never raw values) are stored."""
    pair = mint(service_id="minu-find", client_id="web-1", scope=["events:write", "health:write"])

    assert pair.refresh_token.startswith("rt_")
    assert pair.expires_in == 900
    assert pair.scope == ("events:write", "health:write")
    assert pair.issued_at == clock.now()

    rows = {row.token_type: row for row in _rows(session, "minu-find")}
    assert set(rows) == {"access", "refresh"}
    assert rows["access"].token_hash == hash_token(pair.access_token)
    assert rows["refresh"].token_hash == hash_token(pair.refresh_token)
    assert rows["access"].jti == pair.access_jti
    assert rows["refresh"].expires_at == clock.now() + timedelta(days=7)
    assert rows["access"].expires_at == clock.now() + timedelta(minutes=15)
    for row in rows.values():
        assert row.client_id == "web-1"
        assert row.is_revoked is False and row.used is False
        assert pair.access_token not in (row.token_hash, row.jti)

    claims = provider.decode(pair.access_token)
    assert claims["sub"] == "minu-find"
    assert claims["iss"] == "mcp-auth"
    assert claims["aud"] == "central-hub"
    assert claims["client_id"] == "web-1"
    assert claims["scope"] == ["events:write", "health:write"]
    assert claims["jti"] == pair.access_jti


def test_issue_defaults_scope_when_omitted(mint):
    pair = mint(scope=None)
    assert pair.scope == ("events:read", "events:write", "health:write")


def test_issue_accepts_space_separated_scope_and_drops_unknown(mint):
    pair = mint(scope="sync:read bogus:scope sync:read")
    assert pair.scope == ("sync:read",)


def test_issue_accepts_fresh_timestamp(issuer, clock):
    dto = issue_in(timestamp=(clock.now() - timedelta(minutes=4)).isoformat())
    assert issuer.issue(dto).service_id == "minu-find"


# ------------------------------- Rejections --------------------------------- #
@pytest.mark.parametrize(
    "overrides, error, code",
    [
        ({"service_id": None}, ValidationFailed, "missing_header"),
        ({"service_id": "minu-unknown"}, ValidationFailed, "invalid_service"),
        ({"signature": None}, ValidationFailed, "missing_header"),
        ({"timestamp": "2020-01-01T00:00:00Z"}, AuthenticationFailed, "invalid_timestamp"),
        ({"timestamp": "not-a-time"}, AuthenticationFailed, "invalid_timestamp"),
        ({"body": b""}, ValidationFailed, "invalid_payload"),
        ({"signature": "sha256=" + "0" * 64}, AuthenticationFailed, "invalid_signature"),
    ],
)
def test_issue_rejects_bad_credentials(issuer, session, overrides, error, code):
    dto = replace(issue_in(), **overrides)
    with pytest.raises(error) as excinfo:
        issuer.issue(dto)
    assert excinfo.value.code == code
    assert _rows(session, "minu-find") == []


def test_signature_is_checked_before_the_body_is_parsed(issuer):
    """A tampered body fails the HMAC even when it is not JSON at all."""
    dto = replace(issue_in(), body=b"not json")
    with pytest.raises(AuthenticationFailed) as excinfo:
        issuer.issue(dto)
    assert excinfo.value.code == "invalid_signature"


def test_service_without_secret_is_a_configuration_error(issuer):
    with pytest.raises(ConfigurationError) as excinfo:
        issuer.issue(issue_in(service_id="minu-keep"))
    assert excinfo.value.code == "configuration_error"
    assert excinfo.value.service_id == "minu-keep"


def test_signature_from_another_service_secret_is_rejected(issuer):
    body = credential_body()
    dto = replace(issue_in(service_id="minu-frame", body=body), service_id="minu-find")
    with pytest.raises(AuthenticationFailed) as excinfo:
        issuer.issue(dto)
    assert excinfo.value.code == "invalid_signature"


@pytest.mark.parametrize(
    "kwargs, code",
    [
        ({"grant_type": "client_credentials"}, "unsupported_grant_type"),
        ({"client_id": None}, "invalid_payload"),
        ({"client_id": "   "}, "invalid_payload"),
        ({"scope": ["admin:all"]}, "invalid_scope"),
        ({"scope": []}, "invalid_scope"),
    ],
)
def test_signed_but_invalid_body_is_rejected(issuer, session, kwargs, code):
    with pytest.raises(ValidationFailed) as excinfo:
        issuer.issue(issue_in(**kwargs))
    assert excinfo.value.code == code
    assert _rows(session, "minu-find") == []


def test_signed_non_object_body_is_rejected(issuer):
    with pytest.raises(ValidationFailed) as excinfo:
        issuer.issue(issue_in(body=b'["service_credentials"]'))
    assert excinfo.value.code == "invalid_payload"


# ------------------------------ filter_scopes ------------------------------- #
class TestFilterScopes:
    def test_none_selects_defaults(self):
        assert filter_scopes(None) == ["events:read", "events:write", "health:write"]

    def test_preserves_order_and_removes_duplicates(self):
        assert filter_scopes(["sync:write", "events:read", "sync:write"]) == [
            "sync:write",
            "events:read",
        ]

    def test_non_list_values_grant_nothing(self):
        assert filter_scopes(42) == []
        assert filter_scopes(["events:read", 7]) == ["events:read"]

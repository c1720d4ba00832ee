"""Unit tests for ServiceTokenRepository."""

from datetime import UTC, datetime

import pytest
from mcphub.repositories.service_token import ServiceTokenRepository
from mcphub.services.tokens.credentials import hash_token
from tests.factories.tokens import ServiceTokenFactory

NOW = datetime(2026, 3, 1, tzinfo=UTC)


class TestServiceTokenRepository:
    """Ensure hash lookups and conditional updates behave as documented."""

    @pytest.fixture()
    def repo(self):
        return ServiceTokenRepository()

    def test_get_by_hash_filters_by_type(self, repo, session):
        token = ServiceTokenFactory(raw_token="rt_lookup")
        session.commit()

        assert repo.get_by_hash(hash_token("rt_lookup")).id == token.id
        assert repo.get_by_hash(hash_token("rt_lookup"), token_type="refresh").id == token.id
        assert repo.get_by_hash(hash_token("rt_lookup"), token_type="access") is None
        assert repo.get_by_hash(hash_token("other")) is None

    def test_mark_used_if_unused_wins_once(self, repo, session):
        token = ServiceTokenFactory()
        session.commit()

        assert repo.mark_used_if_unused(token.id, used_at=NOW) is True
        assert repo.mark_used_if_unused(token.id, used_at=NOW) is False
        session.refresh(token)
        assert token.used is True
        assert token.used_at == NOW

    def test_mark_used_ignores_access_tokens(self, repo, session):
        token = ServiceTokenFactory(access=True)
        session.commit()
        assert repo.mark_used_if_unused(token.id, used_at=NOW) is False

    def test_revoke_by_hash_keeps_first_revocation(self, repo, session):
        token = ServiceTokenFactory(raw_token="rt_revoke")
        session.commit()

        row = repo.revoke_by_hash(hash_token("rt_revoke"), revoked_at=NOW, reason="first")
        later = datetime(2026, 3, 2, tzinfo=UTC)
        again = repo.revoke_by_hash(hash_token("rt_revoke"), revoked_at=later, reason="second")

        assert row.id == again.id == token.id
        session.refresh(token)
        assert token.is_revoked is True
        assert token.revoked_reason == "first"
        assert token.revoked_at == NOW

    def test_revoke_by_hash_with_owner_mismatch_is_a_miss(self, repo, session):
        token = ServiceTokenFactory(raw_token="rt_owned", service_id="minu-frame")
        session.commit()

        assert (
            repo.revoke_by_hash(
                hash_token("rt_owned"), revoked_at=NOW, reason="x", service_id="minu-find"
            )
            is None
        )
        session.refresh(token)
        assert token.is_revoked is False

    def test_revoke_all_for_service(self, repo, session):
        ServiceTokenFactory.create_batch(2, service_id="minu-build")
        ServiceTokenFactory(service_id="minu-build", access=True)
        ServiceTokenFactory(service_id="minu-keep")
        session.commit()

        assert repo.revoke_all_for_service("minu-build", revoked_at=NOW, reason="r") == 3
        assert repo.revoke_all_for_service("minu-build", revoked_at=NOW, reason="r") == 0
        assert [t.is_revoked for t in repo.list_for_service("minu-keep")] == [False]

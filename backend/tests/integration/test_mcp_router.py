# tests/integration/test_mcp_router.py
"""HTTP tests for ``/mcp-router`` dispatch and status."""

from __future__ import annotations

import json

import pytest
from mcphub.models import AuditLogEntry, EventQueueItem, ServiceIssue
from sqlalchemy import func, select
from tests.factories.events import EventQueueItemFactory, ServiceHealthFactory
from tests.helpers.assertions import assert_error, assert_json_keys
from tests.helpers.auth import bearer


@pytest.fixture()
def auth(issue_pair):
    """Bearer headers for a fresh ``minu-find`` token."""
    return bearer(issue_pair()["access_token"])


def _dispatch(client, headers: dict, body: dict, **extra_headers):
    return client.post(
        "/mcp-router/dispatch",
        data=json.dumps(body),
        content_type="application/json",
        headers={**headers, **extra_headers},
    )


def _count(session, model) -> int:
    return session.execute(select(func.count()).select_from(model)).scalar_one()


class TestDispatch:
    def test_requires_a_valid_bearer_token(self, client, session):
        resp = _dispatch(client, {}, {"event_type": "x", "source_service": "minu-find"})
        assert_error(resp, 401, "unauthorized")

        resp = _dispatch(client, bearer("junk"), {"event_type": "x", "source_service": "minu-find"})
        assert_error(resp, 401, "token_invalid")
        assert _count(session, EventQueueItem) == 0

        codes = session.execute(select(AuditLogEntry.error_code)).scalars().all()
        assert sorted(codes) == ["token_invalid", "unauthorized"]

    def test_queued_event_answers_202(self, client, session, auth):
        resp = _dispatch(
            client,
            auth,
            {
                "event_type": "subscription.changed",
                "source_service": "minu-find",
                "payload": {"user_id": "u1", "plan_id": "pro", "action": "upgraded"},
                "priority": "high",
                "metadata": {"correlation_id": "c-9"},
            },
        )

        assert resp.status_code == 202
        data = resp.get_json()
        assert_json_keys(data, {"dispatched", "dispatch_id", "status", "estimated_delivery", "retry_policy"})
        assert data["dispatched"] is True
        assert data["status"] == "queued"
        item = session.get(EventQueueItem, data["dispatch_id"])
        assert item.correlation_id == "c-9"
        assert item.request_id == resp.headers["X-Request-ID"]

    def test_direct_write_answers_processed(self, client, session, auth):
        resp = _dispatch(
            client,
            auth,
            {"event_type": "service.issue.created", "source_service": "minu-find", "payload": {"title": "Down"}},
        )
        assert resp.status_code == 202
        assert resp.get_json()["status"] == "processed"
        assert session.get(ServiceIssue, resp.get_json()["dispatch_id"]).title == "Down"

    def test_header_key_wins_over_metadata_key(self, client, session, auth):
        body = {
            "event_type": "service.issue.created",
            "source_service": "minu-find",
            "metadata": {"idempotency_key": "from-body"},
        }
        first = _dispatch(client, auth, body, **{"X-Idempotency-Key": "from-header"})
        second = _dispatch(client, auth, body, **{"X-Idempotency-Key": "from-header"})
        third = _dispatch(client, auth, body)

        assert first.get_json()["dispatch_id"] == second.get_json()["dispatch_id"]
        assert second.get_json()["idempotent_replay"] is True
        assert "idempotent_replay" not in third.get_json()
        assert _count(session, ServiceIssue) == 2

    @pytest.mark.parametrize(
        "body, code",
        [
            ({"source_service": "minu-find"}, "missing_field"),
            ({"event_type": "x"}, "missing_field"),
            ({"event_type": "x", "source_service": "minu-nope"}, "invalid_service"),
            ({"event_type": "x", "source_service": "minu-find", "target_service": "??"}, "invalid_service"),
            ({"event_type": "x", "source_service": "minu-find", "priority": "asap"}, "invalid_payload"),
            ({"event_type": "x", "source_service": "minu-find", "payload": "text"}, "invalid_payload"),
        ],
    )
    def test_invalid_envelopes(self, client, auth, body, code):
        assert_error(_dispatch(client, auth, body), 400, code)

    def test_missing_field_details(self, client, auth):
        error = assert_error(_dispatch(client, auth, {}), 400, "missing_field")
        assert error["details"] == {"fields": ["event_type", "source_service"]}

    def test_dispatch_is_audited_with_caller_identity(self, client, session, issue_pair):
        headers = bearer(issue_pair(service_id="minu-build", client_id="pipeline")["access_token"])
        _dispatch(client, headers, {"event_type": "x", "source_service": "minu-build"})

        stmt = select(AuditLogEntry).where(AuditLogEntry.endpoint == "mcp-router/dispatch")
        (entry,) = session.execute(stmt).scalars().all()
        assert (entry.service_id, entry.client_id, entry.status_code) == ("minu-build", "pipeline", 202)


class TestStatus:
    def test_requires_a_bearer_token(self, client):
        assert_error(client.get("/mcp-router/status"), 401, "unauthorized")

    def test_report_shape(self, client, session, auth):
        EventQueueItemFactory(status="completed")
        EventQueueItemFactory(status="pending", priority="critical")
        ServiceHealthFactory(service_id="minu-frame")
        session.commit()

        resp = client.get("/mcp-router/status", headers=auth)

        assert resp.status_code == 200
        data = resp.get_json()
        assert_json_keys(data, {"status", "uptime_seconds", "statistics", "queue_depth", "last_dispatch", "services"})
        assert data["status"] == "healthy"
        assert data["statistics"]["total_dispatched"] == 2
        assert data["statistics"]["success_rate"] == 50.0
        assert data["queue_depth"]["critical"] == 1
        assert data["services"]["minu-frame"]["status"] == "connected"
        assert data["services"]["minu-frame"]["latency_ms"] == 42
        assert data["services"]["minu-keep"] == {"status": "disconnected"}
        assert data["services"]["central-hub"] == {"status": "connected", "latency_ms": 0}

    def test_status_is_not_audited(self, client, session, auth):
        client.get("/mcp-router/status", headers=auth)
        assert _count(session, AuditLogEntry) == 1  # the /token call behind ``auth``

    def test_health_update_with_list_metrics_keeps_status_available(self, client, session, auth):
        resp = _dispatch(
            client,
            auth,
            {
                "event_type": "service.health.update",
                "source_service": "minu-find",
                "payload": {"metrics": [1, 2, 3]},
            },
        )
        assert resp.status_code == 202

        resp = client.get("/mcp-router/status", headers=auth)

        assert resp.status_code == 200
        minu_find = resp.get_json()["services"]["minu-find"]
        assert minu_find["status"] == "connected"
        assert "latency_ms" not in minu_find

# tests/unit/core/test_factory.py
"""Application factory wiring: start time, Redis denylist client and proxy hops."""

from __future__ import annotations

import importlib
from datetime import UTC, datetime

import fakeredis
import pytest
import redis
from mcphub.api.deps import CLOCK_EXTENSION
from mcphub.core import config as config_module
from mcphub.core.config import TestingConfig
from mcphub.core.extensions import get_redis
from mcphub.factory import create_app
from werkzeug.middleware.proxy_fix import ProxyFix


class _IsolatedConfig(TestingConfig):
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    LOG_LEVEL = "WARNING"
    REDIS_URL = None
    MCP_INSTANCE_STARTED_AT = None


class _UnreachableRedis:
    def ping(self):
        raise redis.exceptions.ConnectionError("down")


def test_started_at_comes_from_config():
    class Cfg(_IsolatedConfig):
        MCP_INSTANCE_STARTED_AT = "2025-12-31T12:00:00"

    app = create_app(Cfg)

    clock = app.extensions[CLOCK_EXTENSION]
    assert clock.started_at == datetime(2025, 12, 31, 12, 0, tzinfo=UTC)


def test_started_at_is_read_from_the_environment(monkeypatch):
    monkeypatch.setenv("MCP_INSTANCE_STARTED_AT", "2025-12-31T08:30:00+00:00")
    try:
        reloaded = importlib.reload(config_module)
        assert reloaded.BaseConfig.MCP_INSTANCE_STARTED_AT == "2025-12-31T08:30:00+00:00"
    finally:
        monkeypatch.delenv("MCP_INSTANCE_STARTED_AT")
        importlib.reload(config_module)


def test_injected_clock_wins_over_config():
    class Cfg(_IsolatedConfig):
        MCP_INSTANCE_STARTED_AT = "2025-12-31T12:00:00+00:00"

    sentinel = object()
    app = create_app(Cfg, clock=sentinel)

    assert app.extensions[CLOCK_EXTENSION] is sentinel


def test_redis_client_is_exposed_when_reachable(monkeypatch):
    fake = fakeredis.FakeRedis(decode_responses=True)
    monkeypatch.setattr(redis.Redis, "from_url", classmethod(lambda cls, url, **kw: fake))

    class Cfg(_IsolatedConfig):
        REDIS_URL = "redis://denylist:6379/0"

    app = create_app(Cfg)

    with app.app_context():
        assert get_redis() is fake


def test_unreachable_redis_disables_the_denylist(monkeypatch):
    monkeypatch.setattr(
        redis.Redis, "from_url", classmethod(lambda cls, url, **kw: _UnreachableRedis())
    )

    class Cfg(_IsolatedConfig):
        REDIS_URL = "redis://denylist:6379/0"

    app = create_app(Cfg)

    with app.app_context():
        assert get_redis() is None


def test_no_redis_url_means_no_client():
    app = create_app(_IsolatedConfig)

    with app.app_context():
        assert get_redis() is None


@pytest.mark.parametrize("hops", [1, 2])
def test_proxy_fix_trusts_configured_hops(hops):
    class Cfg(_IsolatedConfig):
        USE_PROXYFIX = True
        PROXY_TRUSTED_HOPS = hops

    app = create_app(Cfg)

    assert isinstance(app.wsgi_app, ProxyFix)
    assert (app.wsgi_app.x_for, app.wsgi_app.x_proto) == (hops, hops)
    assert app.wsgi_app.x_host == 0


def test_proxy_fix_can_be_disabled():
    class Cfg(_IsolatedConfig):
        USE_PROXYFIX = False

    app = create_app(Cfg)

    assert not isinstance(app.wsgi_app, ProxyFix)

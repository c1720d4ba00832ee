"""Reverse-proxy handling for the caller address recorded in audit rows."""

from __future__ import annotations

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix


def init_app(app: Flask) -> None:
    """Wrap the WSGI app in :class:`~werkzeug.middleware.proxy_fix.ProxyFix`.

    ``USE_PROXYFIX`` toggles it and ``PROXY_TRUSTED_HOPS`` sets how many
    proxies in front of the hub may append to ``X-Forwarded-For`` and
    ``X-Forwarded-Proto``.
    """
    if not app.config.get("USE_PROXYFIX", True):
        return
    hops = int(app.config.get("PROXY_TRUSTED_HOPS", 1))
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=hops, x_proto=hops)

"""CORS configuration helper for the hub endpoints."""

from __future__ import annotations

from flask import Flask
from flask_cors import CORS

# Headers callers send on credential, refresh and dispatch requests
ALLOWED_HEADERS = [
    "Authorization",
    "Content-Type",
    "X-Request-ID",
    "X-Service-Id",
    "X-Signature",
    "X-Timestamp",
    "X-Idempotency-Key",
]


def init_app(app: Flask) -> None:
    """Configure CORS for the ``/mcp-auth`` and ``/mcp-router`` resources.

    Parameters
    ----------
    app: flask.Flask
        Application whose ``CORS_ORIGINS`` and ``CORS_MAX_AGE`` settings are
        consulted. When ``CORS_ORIGINS`` is blank or ``"*"`` the policy allows
        any origin but disables credential support.
    """
    raw_origins = app.config.get("CORS_ORIGINS", "") or ""
    origins = [o.strip() for o in raw_origins.split(",") if o.strip()]
    wildcard = len(origins) == 0 or origins == ["*"]
    resource = {
        "origins": "*" if wildcard else origins,
        "allow_headers": ALLOWED_HEADERS,
        "expose_headers": ["X-Request-ID"],
        "methods": ["GET", "POST", "OPTIONS"],
    }

    CORS(
        app,
        resources={r"/mcp-auth/*": resource, r"/mcp-router/*": resource},
        supports_credentials=not wildcard,
        max_age=app.config.get("CORS_MAX_AGE", 600),
    )

"""Blueprints of the hub's MCP surface (token lifecycle and event routing)."""

from __future__ import annotations

from flask import Blueprint

# Import blueprints *only here* to keep imports localized and avoid cycles.
from .auth import bp as auth_bp  # noqa: E402
from .router import bp as router_bp  # noqa: E402

# Each tuple: (blueprint, url_prefix)
REGISTRY: list[tuple[Blueprint, str]] = [
    (auth_bp, "/mcp-auth"),
    (router_bp, "/mcp-router"),
]

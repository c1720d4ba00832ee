"""MCP hub: service token lifecycle and event routing for the minu services."""

from .factory import create_app

__all__ = ["create_app"]

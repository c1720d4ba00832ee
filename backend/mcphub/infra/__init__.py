"""Concrete adapters for the service-layer ports (JWT signing, Redis denylist)."""

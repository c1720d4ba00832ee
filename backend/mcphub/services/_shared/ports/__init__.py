"""
mcphub.services._shared.ports
=============================

Collection of *ports* (hexagonal interfaces) that the service layer depends
on, keeping it independent from Flask-JWT-Extended, Redis or the wall clock.

Modules
-------
- :mod:`token_provider`:
    Defines :class:`~.TokenProvider`, the abstraction for JWT signing and decoding.

- :mod:`denylist_store`:
    Defines :class:`~.TokenDenylistStore`, an optional revocation fast path,
    plus :class:`~.InMemoryDenylistStore`.

- :mod:`clock`:
    Defines :class:`~.Clock` and :class:`~.SystemClock` (current time and
    injected instance start time).

Concrete adapters live under ``mcphub.infra``.
"""

from __future__ import annotations

from .clock import Clock, SystemClock
from .denylist_store import InMemoryDenylistStore, TokenDenylistStore
from .token_provider import TokenProvider

__all__ = [
    "Clock",
    "InMemoryDenylistStore",
    "SystemClock",
    "TokenDenylistStore",
    "TokenProvider",
]

"""Service layer public API.

This package exposes the essential building blocks for the service layer so that
callers can import from :mod:`mcphub.services` without knowing internal structure.

Re-exports
----------
- Base primitives (from ``mcphub.services._shared.base``)
    * :class:`BaseService`
    * :class:`ServiceContext`

- Token lifecycle (from ``mcphub.services.tokens``)
    * :class:`TokenIssuer`, :class:`TokenVerifier`, :class:`TokenRefresher`,
      :class:`TokenRevoker`

- Event routing (from ``mcphub.services.routing``)
    * :class:`EventRouter`

- Status reporting (from ``mcphub.services.status``)
    * :class:`StatusReporter`

- Queue maintenance (from ``mcphub.services.queue``)
    * :class:`EventQueueService`
"""

from __future__ import annotations

from mcphub.services._shared.base import BaseService, ServiceContext
from mcphub.services.queue import EventQueueService
from mcphub.services.routing import EventRouter
from mcphub.services.status import StatusReporter
from mcphub.services.tokens import TokenIssuer, TokenRefresher, TokenRevoker, TokenVerifier

__all__ = [
    "BaseService",
    "EventQueueService",
    "EventRouter",
    "ServiceContext",
    "StatusReporter",
    "TokenIssuer",
    "TokenRefresher",
    "TokenRevoker",
    "TokenVerifier",
]

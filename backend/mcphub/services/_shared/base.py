from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from mcphub.services._shared.ports import Clock, SystemClock
from mcphub.uow.sqlalchemy_uow import (
    SQLAlchemyReadOnlyUnitOfWork,
    SQLAlchemyUnitOfWork,
)


@dataclass(slots=True)
class ServiceContext:
    """
    Carry cross-cutting request-scoped data.

    :param request_id: Correlation id for logging/tracing.
    :param ip_address: Caller address (first ``X-Forwarded-For`` hop).
    :param user_agent: Caller user agent.
    :param service_id: Authenticated calling service, when known.
    """

    request_id: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    service_id: str | None = None


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Provide helpers to run read-only and read-write units of work.
    * Expose the injected clock so time is never read from module state.
    * Keep services thin, orchestration-only, no web/ORM leakage.

    Notes
    -----
    Services must never touch the global session; always use a Unit of Work.
    """

    DEFAULT_READ_ISOLATION = "READ COMMITTED"

    def __init__(self, *, ctx: ServiceContext | None = None, clock: Clock | None = None) -> None:
        """
        Initialize the base service.

        :param ctx: Optional request-scoped context.
        :type ctx: ServiceContext | None
        :param clock: Time source; defaults to the UTC wall clock.
        :type clock: Clock | None
        """
        self.ctx = ctx or ServiceContext()
        self.clock: Clock = clock or SystemClock()

    def now(self) -> datetime:
        return self.clock.now()

    # -------------------------- UoW helpers ---------------------------------

    def rw_uow(self) -> SQLAlchemyUnitOfWork:
        """
        Create a read-write Unit of Work.

        :returns: Read-write UoW instance.
        :rtype: SQLAlchemyUnitOfWork
        """
        return SQLAlchemyUnitOfWork()

    def ro_uow(self, *, isolation: str | None = None) -> SQLAlchemyReadOnlyUnitOfWork:
        """
        Create a read-only Unit of Work.

        :param isolation: Transaction isolation level (e.g. "REPEATABLE READ").
        :type isolation: str | None
        :returns: Read-only UoW instance.
        :rtype: SQLAlchemyReadOnlyUnitOfWork
        """
        return SQLAlchemyReadOnlyUnitOfWork(isolation_level=isolation or self.DEFAULT_READ_ISOLATION)

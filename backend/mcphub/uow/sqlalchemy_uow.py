"""
SQLAlchemy implementation of UnitOfWork for Flask.
"""

from __future__ import annotations

import logging
from contextlib import suppress

from sqlalchemy import event, text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import InvalidRequestError, SQLAlchemyError
from sqlalchemy.orm import Session, SessionTransaction

from mcphub.core.extensions import db
from mcphub.repositories import (
    AuditLogRepository,
    EventQueueRepository,
    NotificationRepository,
    ProfileRepository,
    ServiceEventRepository,
    ServiceHealthRepository,
    ServiceIssueRepository,
    ServiceTokenRepository,
)
from mcphub.uow.base import UnitOfWork

LOGGER = logging.getLogger(__name__)


class SQLAlchemyRepositoryContainer:
    """Provide repository instances that share a SQLAlchemy session."""

    def __init__(self, *, session: Session) -> None:
        self.session = session
        self.tokens = ServiceTokenRepository(session=self.session)
        self.audit_logs = AuditLogRepository(session=self.session)
        self.event_queue = EventQueueRepository(session=self.session)
        self.service_health = ServiceHealthRepository(session=self.session)
        self.service_issues = ServiceIssueRepository(session=self.session)
        self.service_events = ServiceEventRepository(session=self.session)
        self.profiles = ProfileRepository(session=self.session)
        self.notifications = NotificationRepository(session=self.session)


class SQLAlchemyUnitOfWork(SQLAlchemyRepositoryContainer, UnitOfWork):
    """
    SQLAlchemy-backed UoW using the Flask-scoped session.

    Commits when the ``with`` block exits normally and rolls back when it
    raises, so a use-case either persists all of its writes or none.
    """

    def __init__(self) -> None:
        super().__init__(session=db.session)

    def __enter__(self) -> SQLAlchemyUnitOfWork:
        # The session begins lazily on first use
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            try:
                self.commit()
            except Exception:
                self.rollback()
                raise
        else:
            self.rollback()

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()


class SQLAlchemyReadOnlyUnitOfWork(SQLAlchemyRepositoryContainer, UnitOfWork):
    """
    Read-only Unit of Work backed by the Flask-scoped SQLAlchemy session.

    Write attempts fail with ``RuntimeError``: ORM flushes carrying pending
    changes are blocked, and so is any DML/DDL statement at cursor level.
    When the unit owns its transaction on PostgreSQL or MySQL it also issues
    ``SET TRANSACTION`` directives; when a transaction is already running
    (request-scoped work, test fixtures) it attaches to it and relies on the
    guards alone.

    :param isolation_level: Isolation hint applied on supporting dialects.
    :type isolation_level: str | None
    :param enforce_db_readonly: Apply ``SET TRANSACTION READ ONLY`` when supported.
    :type enforce_db_readonly: bool
    """

    _WRITE_PREFIXES = (
        "insert",
        "update",
        "delete",
        "merge",
        "alter",
        "drop",
        "truncate",
        "create",
        "replace",
    )
    _SET_TRANSACTION_DIALECTS = ("postgresql", "mysql", "mariadb")

    def __init__(
        self,
        *,
        isolation_level: str | None = "READ COMMITTED",
        enforce_db_readonly: bool = True,
    ) -> None:
        super().__init__(session=db.session)
        self.isolation_level = isolation_level
        self.enforce_db_readonly = enforce_db_readonly
        self._conn: Connection | None = None
        self._txn_ctx: SessionTransaction | None = None
        self._guards_installed = False

    # ----------------------------- Context Manager -----------------------------

    def __enter__(self) -> SQLAlchemyReadOnlyUnitOfWork:
        self._txn_ctx = None
        try:
            txn_ctx = self.session.begin()
            txn_ctx.__enter__()
            self._txn_ctx = txn_ctx
        except InvalidRequestError:
            # A transaction is already running on this session; attach to it
            pass

        self._conn = self.session.connection()
        self._install_guards()

        if self._txn_ctx is not None and self._conn.dialect.name in self._SET_TRANSACTION_DIALECTS:
            try:
                if self.isolation_level:
                    iso = self.isolation_level.upper().strip()
                    self.session.execute(text(f"SET TRANSACTION ISOLATION LEVEL {iso}"))
                if self.enforce_db_readonly:
                    self.session.execute(text("SET TRANSACTION READ ONLY"))
            except SQLAlchemyError as exc:
                LOGGER.warning("SET TRANSACTION directives failed (%s); guards only", exc)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if self._txn_ctx is not None:
                with suppress(SQLAlchemyError):
                    self.session.rollback()
                try:
                    self._txn_ctx.__exit__(exc_type, exc, tb)
                finally:
                    self._txn_ctx = None
        finally:
            self._remove_guards()
            self._conn = None

    # ----------------------------- Public API ---------------------------------

    def commit(self) -> None:
        """
        Disallow commit in read-only Unit of Work.

        :raises RuntimeError: always, to prevent accidental writes.
        """
        raise RuntimeError("Read-only UnitOfWork does not allow commit().")

    def rollback(self) -> None:
        self.session.rollback()

    # ----------------------------- Guards ------------------------------------

    def _before_flush(self, session, flush_context, instances) -> None:
        if session.new or session.dirty or session.deleted:
            raise RuntimeError("Read-only UnitOfWork: ORM flush blocked.")

    def _before_cursor_execute(self, conn, cursor, statement, parameters, context, executemany):
        first_token = statement.lstrip().split(None, 1)[0].lower() if statement else ""
        if first_token.startswith(self._WRITE_PREFIXES):
            raise RuntimeError(f"Read-only UnitOfWork: SQL statement blocked: {first_token.upper()}")

    def _install_guards(self) -> None:
        if self._guards_installed:
            return
        event.listen(self.session, "before_flush", self._before_flush)
        event.listen(self._conn, "before_cursor_execute", self._before_cursor_execute)
        self._guards_installed = True

    def _remove_guards(self) -> None:
        if not self._guards_installed:
            return
        with suppress(InvalidRequestError):
            event.remove(self.session, "before_flush", self._before_flush)
        with suppress(InvalidRequestError):
            event.remove(self._conn, "before_cursor_execute", self._before_cursor_execute)
        self._guards_installed = False

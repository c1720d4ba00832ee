"""Repositories for the router's downstream tables."""

from __future__ import annotations

from typing import Any

from sqlalchemy import select

from mcphub.constants import ADMIN_ROLES
from mcphub.models.hub import (
    Notification,
    Profile,
    ServiceEvent,
    ServiceHealth,
    ServiceIssue,
)
from mcphub.repositories.base import BaseRepository


class ServiceHealthRepository(BaseRepository[ServiceHealth]):
    """Persistence-only repository for :class:`ServiceHealth`."""

    model = ServiceHealth

    def upsert(self, *, service_id: str, **fields: Any) -> ServiceHealth:
        """Insert or update the single health row of ``service_id``.

        :param service_id: Reporting service.
        :type service_id: str
        :param fields: ``status``, ``last_ping`` and ``metrics``.
        :returns: The stored row.
        :rtype: ServiceHealth
        """
        row = self.find_one(service_id=service_id)
        if row is None:
            return self.add(ServiceHealth(service_id=service_id, **fields))
        for key, value in fields.items():
            setattr(row, key, value)
        self.flush()
        return row

    def latest_by_service(self) -> dict[str, ServiceHealth]:
        """Return the freshest health row per service."""
        stmt = select(ServiceHealth).order_by(ServiceHealth.last_ping.desc())
        latest: dict[str, ServiceHealth] = {}
        for row in self.session.execute(stmt).scalars().all():
            latest.setdefault(row.service_id, row)
        return latest


class ServiceIssueRepository(BaseRepository[ServiceIssue]):
    """Persistence-only repository for :class:`ServiceIssue`."""

    model = ServiceIssue


class ServiceEventRepository(BaseRepository[ServiceEvent]):
    """Persistence-only repository for :class:`ServiceEvent`."""

    model = ServiceEvent


class ProfileRepository(BaseRepository[Profile]):
    """Read access to platform profiles."""

    model = Profile

    def admin_ids(self) -> list[str]:
        """Return ids of every profile holding an administrative role."""
        stmt = select(Profile.id).where(Profile.role.in_(ADMIN_ROLES)).order_by(Profile.id)
        return list(self.session.execute(stmt).scalars().all())


class NotificationRepository(BaseRepository[Notification]):
    """Persistence-only repository for :class:`Notification`."""

    model = Notification

    def add_for_users(self, user_ids: list[str], **fields: Any) -> list[Notification]:
        """Insert one notification per recipient with identical content."""
        if not user_ids:
            return []
        return self.add_all([Notification(user_id=uid, **fields) for uid in user_ids])

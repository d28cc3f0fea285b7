"""Notification inbox reads for the signed-in user."""

from __future__ import annotations

from .base import EngineService
from schoolride.domain.entities import Principal
from schoolride.domain.errors import NotFoundError
from schoolride.infrastructure.models import NotificationModel
from schoolride.infrastructure.repositories import NotificationRepository


class InboxOps(EngineService):
    async def list_notifications(
        self, principal: Principal, unread_only: bool = False
    ) -> list[NotificationModel]:
        async with self._unit_of_work() as session:
            return await NotificationRepository(session).list_for_user(
                principal.user_id, unread_only=unread_only
            )

    async def mark_notification_read(
        self, notification_id: int, principal: Principal
    ) -> None:
        async with self._unit_of_work() as session:
            marked = await NotificationRepository(session).mark_read(
                notification_id, principal.user_id
            )
            if not marked:
                raise NotFoundError("Notification", notification_id)

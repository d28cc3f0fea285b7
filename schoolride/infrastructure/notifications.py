"""
Notification sink.

Every notification is persisted to the ``notifications`` table in its own
short transaction, then fanned out on the Redis channel
``<prefix>:<user_id>`` so an external subscription layer can push it live.

The sink never shares a transaction with a ride transition: the engine
calls it only after the state change has committed.  A database failure
here raises ``DependencyError`` for the engine to log; a Redis publish
failure is only logged, the stored row is the record of truth.
"""

from __future__ import annotations

import json
import logging
from typing import Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .repositories import NotificationRepository
from schoolride.domain.enums import NotificationKind
from schoolride.domain.errors import DependencyError

logger = logging.getLogger(__name__)


class NotificationSink:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        redis: Optional[aioredis.Redis] = None,
        channel_prefix: str = "notifications",
    ):
        self.session_factory = session_factory
        self.redis = redis
        self.channel_prefix = channel_prefix

    def channel(self, user_id: int) -> str:
        return f"{self.channel_prefix}:{user_id}"

    async def notify(
        self,
        user_id: int,
        title: str,
        message: str,
        kind: NotificationKind,
        reference_id: Optional[int] = None,
    ) -> int:
        """Persist and publish one notification; returns its id."""
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    notification = await NotificationRepository(session).create(
                        user_id=user_id,
                        title=title,
                        message=message,
                        kind=kind,
                        reference_id=reference_id,
                    )
                    notification_id = notification.id
        except (SQLAlchemyError, OSError) as exc:
            raise DependencyError("Notification store unavailable") from exc

        if self.redis is not None:
            payload = json.dumps(
                {
                    "id": notification_id,
                    "user_id": user_id,
                    "title": title,
                    "message": message,
                    "type": kind.value,
                    "reference_id": reference_id,
                    "reference_type": "ride",
                }
            )
            try:
                await self.redis.publish(self.channel(user_id), payload)
            except RedisError:
                logger.warning(
                    "Publish failed for notification %d (user %d)",
                    notification_id,
                    user_id,
                )
        return notification_id

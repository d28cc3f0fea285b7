"""
Shared plumbing for the ride engine operations.

Each public operation runs inside ``_unit_of_work``: one session, one
transaction, committed when the block exits cleanly.  Storage exceptions
are translated into the engine's error taxonomy at that boundary so the
API layer only ever sees ``RideError`` subclasses.

Notifications are dispatched with ``_notify`` strictly *after* the unit
of work has committed.  They are best-effort: a failure is logged and the
already-committed transition stands.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Callable, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from schoolride.config import Settings
from schoolride.domain.enums import NotificationKind
from schoolride.domain.errors import DependencyError, DuplicateRecordError
from schoolride.domain.pricing import PricingEngine
from schoolride.infrastructure.notifications import NotificationSink
from schoolride.infrastructure.otp_attempts import OtpAttemptCounter

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Naive timestamps are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class EngineService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        notifier: NotificationSink,
        settings: Settings,
        otp_attempts: Optional[OtpAttemptCounter] = None,
        pricing: Optional[PricingEngine] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.notifier = notifier
        self.settings = settings
        self.otp_attempts = otp_attempts
        self.pricing = pricing or PricingEngine.from_settings(settings)
        self.clock = clock

    @asynccontextmanager
    async def _unit_of_work(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    yield session
        except IntegrityError as exc:
            raise DuplicateRecordError(
                "Conflicting write; the record already exists or changed"
            ) from exc
        except (SQLAlchemyError, OSError) as exc:
            # asyncpg surfaces refused connections as bare OSErrors
            raise DependencyError("Persistence store unavailable") from exc

    async def _notify(
        self,
        user_id: int,
        title: str,
        message: str,
        kind: NotificationKind,
        reference_id: Optional[int],
    ) -> None:
        try:
            await self.notifier.notify(user_id, title, message, kind, reference_id)
        except Exception:
            logger.exception(
                "Notification %s for user %d (ride %s) was not delivered",
                kind.value,
                user_id,
                reference_id,
            )

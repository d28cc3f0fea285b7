"""
Ride matching & lifecycle engine.

``RideEngine`` is the single entry point the presentation layer talks to.
Operations are defined once, in the mixins; role and ownership guards in
``schoolride.domain.policies`` decide who may invoke what.

    createRequest / cancelRequest / listOpenRequests -> RideRequestOps
    acceptRequest                                     -> MatchingOps
    submitOTP / advanceStatus / getCurrentRide        -> LifecycleOps
    rateRide                                          -> RatingOps
    wallet + settlement                               -> SettlementOps
    notification inbox                                -> InboxOps
"""

from __future__ import annotations

from typing import Optional

import redis.asyncio as aioredis
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .inbox import InboxOps
from .lifecycle import LifecycleOps
from .matching import MatchingOps
from .ratings import RatingOps
from .ride_requests import RideRequestOps
from schoolride.config import Settings
from schoolride.domain.otp import MAX_OTP_LENGTH, MIN_OTP_LENGTH
from schoolride.infrastructure.notifications import NotificationSink
from schoolride.infrastructure.otp_attempts import OtpAttemptCounter


class RideEngine(RideRequestOps, MatchingOps, LifecycleOps, RatingOps, InboxOps):
    """All ride operations behind one object."""


def build_engine(
    session_factory: async_sessionmaker[AsyncSession],
    settings: Settings,
    redis: Optional[aioredis.Redis] = None,
) -> RideEngine:
    if not MIN_OTP_LENGTH <= settings.otp_length <= MAX_OTP_LENGTH:
        raise ValueError(
            f"otp_length must be between {MIN_OTP_LENGTH} and {MAX_OTP_LENGTH}"
        )

    otp_attempts = None
    if settings.otp_max_attempts > 0:
        if redis is None:
            raise ValueError("otp_max_attempts requires a Redis client")
        otp_attempts = OtpAttemptCounter(
            redis,
            settings.otp_max_attempts,
            settings.otp_attempt_window_seconds,
        )

    notifier = NotificationSink(
        session_factory,
        redis=redis,
        channel_prefix=settings.notification_channel_prefix,
    )
    return RideEngine(session_factory, notifier, settings, otp_attempts=otp_attempts)

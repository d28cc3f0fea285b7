"""
Ride lifecycle state machine
============================

    accepted --OTP ok--> inProgress --driver completes--> completed
        \\                    |
         +---> cancelled <---+

* ``submit_otp``      -- the only way into ``inProgress``.
* ``advance_status``  -- ``completed`` (assigned driver, from inProgress) and
  ``cancelled`` (parent from accepted; driver from accepted or inProgress).
* Terminal rides reject every event with ``ConflictError``.

Every status write is a guarded UPDATE keyed on the status the caller saw,
so two concurrent completions cannot both settle.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from .settlement import SettlementOps
from schoolride.domain.entities import Location, Principal, RideView
from schoolride.domain.enums import NotificationKind, RideStatus
from schoolride.domain.errors import (
    AuthorizationError,
    ConflictError,
    DependencyError,
    InvalidOtpError,
    NotFoundError,
    OtpLockedError,
    ValidationError,
)
from schoolride.domain.otp import validate_otp_format, verify_otp
from schoolride.domain.policies import (
    may_cancel,
    require_assigned_driver,
    require_ride_party,
)
from schoolride.infrastructure.models import RideModel
from schoolride.infrastructure.repositories import RideRepository

logger = logging.getLogger(__name__)


def _validate_location(location: Location) -> None:
    if not -90 <= location.latitude <= 90:
        raise ValidationError("Latitude out of range", field="location")
    if not -180 <= location.longitude <= 180:
        raise ValidationError("Longitude out of range", field="location")


class LifecycleOps(SettlementOps):
    async def _load_ride(self, repo: RideRepository, ride_id: int) -> RideModel:
        ride = await repo.get_by_id(ride_id)
        if ride is None:
            raise NotFoundError("Ride", ride_id)
        return ride

    # ── OTP ───────────────────────────────────────────────────────────

    async def submit_otp(
        self, ride_id: int, candidate: str, principal: Principal
    ) -> RideModel:
        async with self._unit_of_work() as session:
            repo = RideRepository(session)
            ride = await self._load_ride(repo, ride_id)
            require_assigned_driver(principal, ride)

            entity = ride.to_entity()
            if entity.status != RideStatus.ACCEPTED:
                raise ConflictError(
                    f"Ride is already {entity.status.value}",
                    {"status": entity.status.value},
                )

            validate_otp_format(candidate)
            if self.otp_attempts and await self.otp_attempts.is_locked(ride_id):
                raise OtpLockedError(
                    "Too many wrong OTP attempts; try again later",
                    {"ride_id": ride_id},
                )
            if not verify_otp(candidate, entity.otp):
                if self.otp_attempts:
                    count = await self.otp_attempts.register_failure(ride_id)
                    logger.info(
                        "Wrong OTP for ride %d (%d attempts left)",
                        ride_id,
                        self.otp_attempts.remaining(count),
                    )
                raise InvalidOtpError()

            entity.transition_to(RideStatus.IN_PROGRESS)
            won = await repo.transition(
                ride_id, RideStatus.ACCEPTED, RideStatus.IN_PROGRESS
            )
            if not won:
                raise ConflictError("Ride status changed; refresh and retry")
            await repo.refresh(ride)

        logger.info("Ride %d started by driver %d", ride_id, principal.user_id)
        if self.otp_attempts:
            try:
                await self.otp_attempts.reset(ride_id)
            except DependencyError:
                logger.warning("Could not clear OTP attempts for ride %d", ride_id)
        await self._notify(
            ride.parent_id,
            "Ride Started",
            "Your child's ride has started.",
            NotificationKind.RIDE_STARTED,
            ride.id,
        )
        return ride

    # ── Status transitions ────────────────────────────────────────────

    async def advance_status(
        self,
        ride_id: int,
        target: Union[RideStatus, str],
        principal: Principal,
        location: Optional[Location] = None,
    ) -> RideModel:
        try:
            target = RideStatus(target)
        except ValueError:
            raise ValidationError(
                f"Unknown ride status: {target}", field="status"
            ) from None
        if target == RideStatus.IN_PROGRESS:
            raise ValidationError(
                "A trip can only be started by submitting the OTP", field="status"
            )
        if target == RideStatus.ACCEPTED:
            raise ValidationError("Rides cannot be moved back to accepted", field="status")
        if location is not None:
            _validate_location(location)

        async with self._unit_of_work() as session:
            repo = RideRepository(session)
            ride = await self._load_ride(repo, ride_id)
            require_ride_party(principal, ride)

            entity = ride.to_entity()
            seen = entity.status
            entity.transition_to(target)

            extra = {}
            # Position is an annotation; only the assigned driver's is recorded
            if location is not None and principal.is_driver and ride.driver_id == principal.user_id:
                extra.update(
                    driver_location_lat=location.latitude,
                    driver_location_lng=location.longitude,
                    driver_location_at=self.clock(),
                )

            if target == RideStatus.COMPLETED:
                require_assigned_driver(principal, ride)
                extra["dropoff_time"] = self.clock()
            elif not may_cancel(principal, ride):
                raise AuthorizationError(
                    "Parents cannot cancel a ride that is already in progress"
                )

            won = await repo.transition(ride_id, seen, target, **extra)
            if not won:
                raise ConflictError("Ride status changed; refresh and retry")
            await repo.refresh(ride)

            if target == RideStatus.COMPLETED:
                await self._settle(session, ride)

        logger.info(
            "Ride %d moved %s -> %s by user %d",
            ride_id,
            seen.value,
            target.value,
            principal.user_id,
        )
        if target == RideStatus.COMPLETED:
            await self._notify(
                ride.parent_id,
                "Ride Completed",
                "Your child's ride has been completed.",
                NotificationKind.RIDE_COMPLETED,
                ride.id,
            )
        else:
            await self._notify(
                ride.parent_id,
                "Ride Cancelled",
                "Your scheduled ride has been cancelled.",
                NotificationKind.RIDE_CANCELLED,
                ride.id,
            )
            if principal.is_parent:
                await self._notify(
                    ride.driver_id,
                    "Ride Cancelled",
                    "The parent cancelled this ride.",
                    NotificationKind.RIDE_CANCELLED,
                    ride.id,
                )
        return ride

    async def update_driver_location(
        self, ride_id: int, principal: Principal, location: Location
    ) -> RideModel:
        _validate_location(location)
        async with self._unit_of_work() as session:
            repo = RideRepository(session)
            ride = await self._load_ride(repo, ride_id)
            require_assigned_driver(principal, ride)
            if ride.to_entity().is_terminal:
                raise ConflictError(f"Ride is already {RideStatus(ride.status).value}")

            won = await repo.update_driver_location(
                ride_id, location.latitude, location.longitude, self.clock()
            )
            if not won:
                raise ConflictError("Ride status changed; refresh and retry")
            await repo.refresh(ride)
        return ride

    # ── Reads ─────────────────────────────────────────────────────────

    async def get_ride(self, ride_id: int, principal: Principal) -> RideModel:
        async with self._unit_of_work() as session:
            ride = await self._load_ride(RideRepository(session), ride_id)
            require_ride_party(principal, ride)
        return ride

    async def get_current_ride(self, principal: Principal) -> Optional[RideModel]:
        async with self._unit_of_work() as session:
            repo = RideRepository(session)
            if principal.is_driver:
                return await repo.get_current_for_driver(principal.user_id)
            return await repo.get_current_for_parent(principal.user_id)

    async def list_rides(self, principal: Principal) -> list[RideView]:
        async with self._unit_of_work() as session:
            repo = RideRepository(session)
            if principal.is_driver:
                return await repo.list_views(driver_id=principal.user_id)
            return await repo.list_views(parent_id=principal.user_id)

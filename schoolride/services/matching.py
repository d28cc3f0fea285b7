"""
Ride matching (driver acceptance)
=================================

Turns one open ride request into one ride, exactly once.

Concurrency safety
------------------
A request that is no longer ``requested`` is refused by the entity state
machine.  Otherwise the row is flipped ``requested -> accepted`` with a
single guarded UPDATE before the ride is written.  Of two drivers
racing for the same request exactly one sees a row count of 1; the other
gets ``ConflictError`` and must re-fetch rather than retry.  The unique
``rides.request_id`` column backs this up at the storage level.

Effects, in order
-----------------
1. request status -> accepted (guarded)
2. fresh numeric OTP
3. ride row copied from the request, status accepted, driver assigned
4. "Ride Accepted" notification to the parent (after commit, best-effort)
"""

from __future__ import annotations

import logging

from .base import EngineService
from schoolride.domain.entities import Principal
from schoolride.domain.enums import (
    NotificationKind,
    RideRequestStatus,
    RideStatus,
    UserRole,
)
from schoolride.domain.errors import ConflictError, NotFoundError
from schoolride.domain.otp import generate_otp
from schoolride.domain.policies import require_role
from schoolride.infrastructure.models import RideModel
from schoolride.infrastructure.repositories import (
    RideRepository,
    RideRequestRepository,
)

logger = logging.getLogger(__name__)


class MatchingOps(EngineService):
    async def accept_request(self, request_id: int, principal: Principal) -> RideModel:
        require_role(principal, UserRole.DRIVER)

        async with self._unit_of_work() as session:
            requests = RideRequestRepository(session)
            request = await requests.get_by_id(request_id)
            if request is None:
                raise NotFoundError("Ride request", request_id)

            entity = request.to_entity()
            entity.transition_to(RideRequestStatus.ACCEPTED)
            won = await requests.transition(
                request_id, RideRequestStatus.REQUESTED, RideRequestStatus.ACCEPTED
            )
            if not won:
                await requests.refresh(request)
                status = RideRequestStatus(request.status).value
                raise ConflictError(
                    f"Ride request is no longer available (already {status})",
                    {"status": status},
                )

            ride = await RideRepository(session).create(
                RideModel(
                    request_id=request.id,
                    parent_id=request.parent_id,
                    child_id=request.child_id,
                    driver_id=principal.user_id,
                    pickup_address=request.pickup_address,
                    dropoff_address=request.dropoff_address,
                    pickup_time=request.pickup_time,
                    price=request.price,
                    status=RideStatus.ACCEPTED,
                    otp=generate_otp(self.settings.otp_length),
                )
            )

        logger.info(
            "Ride request %d accepted by driver %d -> ride %d",
            request_id,
            principal.user_id,
            ride.id,
        )
        await self._notify(
            ride.parent_id,
            "Ride Accepted",
            "A driver has accepted your ride request.",
            NotificationKind.RIDE_ACCEPTED,
            ride.id,
        )
        return ride

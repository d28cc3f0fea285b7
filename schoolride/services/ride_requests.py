"""
Ride request operations
=======================

A parent asks for a ride for one of their children; drivers browse the
open requests, earliest pickup first.  A request can be cancelled by its
parent only while nobody has accepted it.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from .base import EngineService, as_utc
from schoolride.domain.entities import Principal, RideRequestView
from schoolride.domain.enums import RideRequestStatus, UserRole
from schoolride.domain.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from schoolride.domain.policies import require_request_owner, require_role
from schoolride.infrastructure.models import RideRequestModel
from schoolride.infrastructure.repositories import (
    ChildRepository,
    RideRequestRepository,
)

logger = logging.getLogger(__name__)


class RideRequestOps(EngineService):
    async def create_request(
        self,
        principal: Principal,
        child_id: int,
        pickup_address: str,
        dropoff_address: str,
        pickup_time: datetime,
        price: Optional[float] = None,
    ) -> RideRequestModel:
        require_role(principal, UserRole.PARENT)

        if not pickup_address or not pickup_address.strip():
            raise ValidationError("Pickup address is required", field="pickup_address")
        if not dropoff_address or not dropoff_address.strip():
            raise ValidationError("Dropoff address is required", field="dropoff_address")

        pickup_time = as_utc(pickup_time)
        if pickup_time <= self.clock():
            raise ValidationError(
                "Pickup time must be in the future", field="pickup_time"
            )
        fare = self.pricing.resolve_price(price)

        async with self._unit_of_work() as session:
            child = await ChildRepository(session).get_by_id(child_id)
            if child is None or child.parent_id != principal.user_id:
                raise AuthorizationError(
                    "Child does not belong to this parent", {"child_id": child_id}
                )

            request = await RideRequestRepository(session).create(
                RideRequestModel(
                    parent_id=principal.user_id,
                    child_id=child_id,
                    pickup_address=pickup_address,
                    dropoff_address=dropoff_address,
                    pickup_time=pickup_time,
                    price=fare,
                    status=RideRequestStatus.REQUESTED,
                )
            )

        logger.info(
            "Ride request %d created by parent %d (price=%.2f)",
            request.id,
            principal.user_id,
            request.price,
        )
        return request

    async def cancel_request(
        self, request_id: int, principal: Principal
    ) -> RideRequestModel:
        require_role(principal, UserRole.PARENT)

        async with self._unit_of_work() as session:
            repo = RideRequestRepository(session)
            request = await repo.get_by_id(request_id)
            if request is None:
                raise NotFoundError("Ride request", request_id)
            require_request_owner(principal, request)

            entity = request.to_entity()
            seen = entity.status
            entity.transition_to(RideRequestStatus.CANCELLED)
            won = await repo.transition(
                request_id,
                seen,
                RideRequestStatus.CANCELLED,
                parent_id=principal.user_id,
            )
            await repo.refresh(request)
            if not won:
                status = RideRequestStatus(request.status).value
                raise ConflictError(
                    f"Ride request is already {status}", {"status": status}
                )

        logger.info("Ride request %d cancelled by parent %d", request_id, principal.user_id)
        return request

    async def list_open_requests(self, principal: Principal) -> list[RideRequestView]:
        require_role(principal, UserRole.DRIVER)
        async with self._unit_of_work() as session:
            return await RideRequestRepository(session).list_open()

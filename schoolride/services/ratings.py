"""
Ride ratings.

One ``ratings`` row per ride, shared by both parties.  Each side only ever
writes its own half (``parent_*`` or ``driver_*``); the write is an upsert
keyed by ride: update in place, insert if missing, and if a concurrent
insert from the other party wins the race, retry as an update.
"""

from __future__ import annotations

import logging
from typing import Optional

from .base import EngineService
from schoolride.domain.entities import Principal
from schoolride.domain.enums import RideStatus
from schoolride.domain.errors import (
    ConflictError,
    DuplicateRecordError,
    NotFoundError,
    ValidationError,
)
from schoolride.domain.policies import require_ride_party
from schoolride.infrastructure.models import RatingModel
from schoolride.infrastructure.repositories import RatingRepository, RideRepository

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


class RatingOps(EngineService):
    async def rate_ride(
        self,
        ride_id: int,
        rating: int,
        comment: Optional[str],
        principal: Principal,
    ) -> RatingModel:
        if isinstance(rating, bool) or not isinstance(rating, int):
            raise ValidationError("Rating must be a whole number", field="rating")
        if not MIN_RATING <= rating <= MAX_RATING:
            raise ValidationError(
                f"Rating must be between {MIN_RATING} and {MAX_RATING}",
                field="rating",
            )

        prefix = "parent" if principal.is_parent else "driver"
        half = {f"{prefix}_rating": rating, f"{prefix}_comment": comment}

        try:
            return await self._upsert_rating(ride_id, half, principal)
        except DuplicateRecordError:
            # The other party inserted the row between our update and insert
            logger.info("Rating row for ride %d appeared concurrently; retrying", ride_id)
            return await self._upsert_rating(ride_id, half, principal)

    async def _upsert_rating(
        self, ride_id: int, half: dict, principal: Principal
    ) -> RatingModel:
        async with self._unit_of_work() as session:
            ride = await RideRepository(session).get_by_id(ride_id)
            if ride is None:
                raise NotFoundError("Ride", ride_id)
            require_ride_party(principal, ride)
            if (
                self.settings.rating_requires_completion
                and RideStatus(ride.status) != RideStatus.COMPLETED
            ):
                raise ConflictError(
                    "Only completed rides can be rated",
                    {"status": RideStatus(ride.status).value},
                )

            repo = RatingRepository(session)
            if await repo.update_half(ride_id, half):
                rating = await repo.get_by_ride(ride_id)
            else:
                rating = await repo.create(
                    RatingModel(
                        ride_id=ride_id,
                        parent_id=ride.parent_id,
                        driver_id=ride.driver_id,
                        **half,
                    )
                )

        logger.info("Ride %d rated by %s %d", ride_id, principal.role.value, principal.user_id)
        return rating

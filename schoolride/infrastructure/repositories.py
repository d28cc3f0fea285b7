"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.

Guarded updates
---------------
Status changes are issued as ``UPDATE ... WHERE id = :id AND status =
:expected`` and report the affected row count.  A count of zero means
another caller changed the row first; the service turns that into a
``ConflictError``.  This compare-and-swap is what makes request
acceptance and ride completion at-most-once without client-side locks.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Sequence

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from .models import (
    ChildModel,
    NotificationModel,
    ProfileModel,
    RatingModel,
    RideModel,
    RideRequestModel,
    TransactionModel,
)
from schoolride.domain.entities import RideRequestView, RideView
from schoolride.domain.enums import (
    ACTIVE_RIDE_STATUSES,
    NotificationKind,
    RideRequestStatus,
    RideStatus,
)


def _full_name(name: Optional[str], surname: Optional[str]) -> str:
    return f"{name or ''} {surname or ''}".strip() or "Unknown"


class _Repository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _guarded_update(self, model, where: Sequence[Any], values: dict) -> int:
        result = await self.session.execute(
            update(model)
            .where(*where)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount


class ProfileRepository(_Repository):
    async def get_by_id(self, profile_id: int) -> Optional[ProfileModel]:
        return await self.session.get(ProfileModel, profile_id)

    async def credit_wallet(self, profile_id: int, amount: float) -> int:
        """Atomic ``balance = balance + amount``; never read-modify-write."""
        return await self._guarded_update(
            ProfileModel,
            [ProfileModel.id == profile_id],
            {"wallet_balance": ProfileModel.wallet_balance + amount},
        )

    async def get_wallet_balance(self, profile_id: int) -> Optional[float]:
        result = await self.session.execute(
            select(ProfileModel.wallet_balance).where(ProfileModel.id == profile_id)
        )
        return result.scalar_one_or_none()


class ChildRepository(_Repository):
    async def get_by_id(self, child_id: int) -> Optional[ChildModel]:
        return await self.session.get(ChildModel, child_id)


class RideRequestRepository(_Repository):
    async def create(self, request: RideRequestModel) -> RideRequestModel:
        self.session.add(request)
        await self.session.flush()
        await self.session.refresh(request)
        return request

    async def get_by_id(self, request_id: int) -> Optional[RideRequestModel]:
        return await self.session.get(RideRequestModel, request_id)

    async def refresh(self, request: RideRequestModel) -> RideRequestModel:
        await self.session.refresh(request)
        return request

    async def transition(
        self,
        request_id: int,
        expected: RideRequestStatus,
        new_status: RideRequestStatus,
        parent_id: Optional[int] = None,
    ) -> bool:
        """Guarded status change; returns True iff this call won."""
        where = [
            RideRequestModel.id == request_id,
            RideRequestModel.status == expected,
        ]
        if parent_id is not None:
            where.append(RideRequestModel.parent_id == parent_id)
        return await self._guarded_update(
            RideRequestModel, where, {"status": new_status}
        ) == 1

    async def list_open(self) -> list[RideRequestView]:
        """Open requests joined with display fields, earliest pickup first."""
        result = await self.session.execute(
            select(RideRequestModel, ProfileModel, ChildModel)
            .outerjoin(ProfileModel, ProfileModel.id == RideRequestModel.parent_id)
            .outerjoin(ChildModel, ChildModel.id == RideRequestModel.child_id)
            .where(RideRequestModel.status == RideRequestStatus.REQUESTED)
            .order_by(RideRequestModel.pickup_time, RideRequestModel.id)
        )
        views = []
        for request, parent, child in result.all():
            views.append(
                RideRequestView(
                    id=request.id,
                    parent_id=request.parent_id,
                    child_id=request.child_id,
                    pickup_address=request.pickup_address,
                    dropoff_address=request.dropoff_address,
                    pickup_time=request.pickup_time,
                    price=request.price,
                    status=RideRequestStatus(request.status),
                    parent_name=_full_name(parent.name, parent.surname) if parent else "Unknown",
                    child_name=_full_name(child.name, child.surname) if child else "Unknown",
                    school_name=(child.school_name if child and child.school_name else "Unknown school"),
                    created_at=request.created_at,
                )
            )
        return views


class RideRepository(_Repository):
    async def create(self, ride: RideModel) -> RideModel:
        self.session.add(ride)
        await self.session.flush()
        await self.session.refresh(ride)
        return ride

    async def get_by_id(self, ride_id: int) -> Optional[RideModel]:
        return await self.session.get(RideModel, ride_id)

    async def refresh(self, ride: RideModel) -> RideModel:
        await self.session.refresh(ride)
        return ride

    async def transition(
        self,
        ride_id: int,
        expected: RideStatus,
        new_status: RideStatus,
        **extra: Any,
    ) -> bool:
        """Guarded status change; returns True iff this call won."""
        return await self._guarded_update(
            RideModel,
            [RideModel.id == ride_id, RideModel.status == expected],
            {"status": new_status, **extra},
        ) == 1

    async def update_driver_location(
        self, ride_id: int, lat: float, lng: float, at: datetime
    ) -> bool:
        """Annotate a non-terminal ride with the driver's position."""
        return await self._guarded_update(
            RideModel,
            [RideModel.id == ride_id, RideModel.status.in_(ACTIVE_RIDE_STATUSES)],
            {
                "driver_location_lat": lat,
                "driver_location_lng": lng,
                "driver_location_at": at,
            },
        ) == 1

    async def get_current_for_parent(self, parent_id: int) -> Optional[RideModel]:
        return await self._first_active(RideModel.parent_id == parent_id)

    async def get_current_for_driver(self, driver_id: int) -> Optional[RideModel]:
        return await self._first_active(RideModel.driver_id == driver_id)

    async def _first_active(self, party_clause) -> Optional[RideModel]:
        # Earliest pickup wins if a principal somehow has several live rides
        result = await self.session.execute(
            select(RideModel)
            .where(party_clause, RideModel.status.in_(ACTIVE_RIDE_STATUSES))
            .order_by(RideModel.pickup_time, RideModel.id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_views(
        self,
        parent_id: Optional[int] = None,
        driver_id: Optional[int] = None,
    ) -> list[RideView]:
        """Ride history joined with display fields, newest pickup first."""
        parent = aliased(ProfileModel)
        driver = aliased(ProfileModel)
        query = (
            select(RideModel, parent, driver, ChildModel)
            .outerjoin(parent, parent.id == RideModel.parent_id)
            .outerjoin(driver, driver.id == RideModel.driver_id)
            .outerjoin(ChildModel, ChildModel.id == RideModel.child_id)
            .order_by(RideModel.pickup_time.desc(), RideModel.id.desc())
        )
        clauses = []
        if parent_id is not None:
            clauses.append(RideModel.parent_id == parent_id)
        if driver_id is not None:
            clauses.append(RideModel.driver_id == driver_id)
        if clauses:
            query = query.where(or_(*clauses))

        result = await self.session.execute(query)
        return [
            RideView(
                id=ride.id,
                parent_id=ride.parent_id,
                child_id=ride.child_id,
                driver_id=ride.driver_id,
                pickup_address=ride.pickup_address,
                dropoff_address=ride.dropoff_address,
                pickup_time=ride.pickup_time,
                dropoff_time=ride.dropoff_time,
                status=RideStatus(ride.status),
                price=ride.price,
                parent_name=_full_name(p.name, p.surname) if p else "Unknown",
                driver_name=_full_name(d.name, d.surname) if d else "Unknown",
                child_name=_full_name(c.name, c.surname) if c else "Unknown",
                school_name=(c.school_name if c and c.school_name else "Unknown school"),
            )
            for ride, p, d, c in result.all()
        ]


class RatingRepository(_Repository):
    async def get_by_ride(self, ride_id: int) -> Optional[RatingModel]:
        result = await self.session.execute(
            select(RatingModel).where(RatingModel.ride_id == ride_id)
        )
        return result.scalar_one_or_none()

    async def update_half(self, ride_id: int, values: dict) -> bool:
        """Write one party's half in place; False if no row exists yet."""
        return await self._guarded_update(
            RatingModel, [RatingModel.ride_id == ride_id], values
        ) == 1

    async def create(self, rating: RatingModel) -> RatingModel:
        self.session.add(rating)
        await self.session.flush()
        await self.session.refresh(rating)
        return rating


class TransactionRepository(_Repository):
    async def create(self, txn: TransactionModel) -> TransactionModel:
        self.session.add(txn)
        await self.session.flush()
        return txn

    async def list_for_user(self, user_id: int) -> list[TransactionModel]:
        result = await self.session.execute(
            select(TransactionModel)
            .where(TransactionModel.user_id == user_id)
            .order_by(TransactionModel.created_at.desc(), TransactionModel.id.desc())
        )
        return list(result.scalars().all())


class NotificationRepository(_Repository):
    async def create(
        self,
        *,
        user_id: int,
        title: str,
        message: str,
        kind: NotificationKind,
        reference_id: Optional[int],
        reference_type: str = "ride",
    ) -> NotificationModel:
        notification = NotificationModel(
            user_id=user_id,
            title=title,
            message=message,
            kind=kind,
            reference_id=reference_id,
            reference_type=reference_type,
        )
        self.session.add(notification)
        await self.session.flush()
        return notification

    async def list_for_user(
        self, user_id: int, unread_only: bool = False
    ) -> list[NotificationModel]:
        query = select(NotificationModel).where(NotificationModel.user_id == user_id)
        if unread_only:
            query = query.where(NotificationModel.is_read.is_(False))
        result = await self.session.execute(
            query.order_by(NotificationModel.created_at.desc(), NotificationModel.id.desc())
        )
        return list(result.scalars().all())

    async def mark_read(self, notification_id: int, user_id: int) -> bool:
        return await self._guarded_update(
            NotificationModel,
            [
                NotificationModel.id == notification_id,
                NotificationModel.user_id == user_id,
            ],
            {"is_read": True},
        ) == 1

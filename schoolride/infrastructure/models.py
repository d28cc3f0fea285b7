"""
SQLAlchemy ORM models  (maps to PostgreSQL).

Tables
------
* ``profiles``       -- parents and drivers, with the wallet balance
* ``children``       -- children belonging to a parent
* ``ride_requests``  -- unmatched asks for a ride
* ``rides``          -- matched trips (exactly one per accepted request)
* ``ratings``        -- one shared row per ride, parent and driver halves
* ``transactions``   -- append-only wallet credits
* ``notifications``  -- fire-and-forget messages per user

Indexes
-------
* **B-Tree** on ``status`` + ``pickup_time`` for the open-request feed and
  current-ride lookups, and on the party columns for history queries.
* **Unique** on ``rides.request_id``, ``ratings.ride_id`` and
  ``transactions(ride_id, type)``: the storage-level backstop for the
  exactly-once guarantees enforced by guarded updates.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)

from .database import Base
from schoolride.domain.entities import Location, Ride, RideRequest
from schoolride.domain.enums import (
    NotificationKind,
    RideRequestStatus,
    RideStatus,
    TransactionType,
    UserRole,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum(enum_cls, name: str) -> Enum:
    # Persist the enum *values* ("inProgress"), not the member names.
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [m.value for m in members],
    )


class ProfileModel(Base):
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    role = Column(_enum(UserRole, "userrole"), nullable=False)
    name = Column(String(120), nullable=False, default="")
    surname = Column(String(120), nullable=False, default="")
    phone = Column(String(32), nullable=True)
    wallet_balance = Column(Float, nullable=False, default=0.0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("idx_profiles_role", "role"),)


class ChildModel(Base):
    __tablename__ = "children"

    id = Column(Integer, primary_key=True, autoincrement=True)
    parent_id = Column(Integer, ForeignKey("profiles.id"), nullable=False)
    name = Column(String(120), nullable=False)
    surname = Column(String(120), nullable=False, default="")
    school_name = Column(String(255), nullable=False, default="")
    school_address = Column(String(255), nullable=False, default="")
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("idx_children_parent", "parent_id"),)


class RideRequestModel(Base):
    __tablename__ = "ride_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    parent_id = Column(Integer, ForeignKey("profiles.id"), nullable=False)
    child_id = Column(Integer, ForeignKey("children.id"), nullable=False)
    pickup_address = Column(String(255), nullable=False)
    dropoff_address = Column(String(255), nullable=False)
    pickup_time = Column(DateTime(timezone=True), nullable=False)
    price = Column(Float, nullable=False)
    status = Column(
        _enum(RideRequestStatus, "riderequeststatus"),
        default=RideRequestStatus.REQUESTED,
        nullable=False,
    )
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        Index("idx_ride_requests_status_pickup", "status", "pickup_time"),
        Index("idx_ride_requests_parent", "parent_id"),
    )

    def to_entity(self) -> RideRequest:
        return RideRequest(
            id=self.id,
            parent_id=self.parent_id,
            child_id=self.child_id,
            pickup_address=self.pickup_address,
            dropoff_address=self.dropoff_address,
            pickup_time=self.pickup_time,
            price=self.price,
            status=RideRequestStatus(self.status),
            created_at=self.created_at,
        )


class RideModel(Base):
    __tablename__ = "rides"

    id = Column(Integer, primary_key=True, autoincrement=True)
    request_id = Column(
        Integer, ForeignKey("ride_requests.id"), unique=True, nullable=False
    )
    parent_id = Column(Integer, ForeignKey("profiles.id"), nullable=False)
    child_id = Column(Integer, ForeignKey("children.id"), nullable=False)
    driver_id = Column(Integer, ForeignKey("profiles.id"), nullable=False)

    pickup_address = Column(String(255), nullable=False)
    dropoff_address = Column(String(255), nullable=False)
    pickup_time = Column(DateTime(timezone=True), nullable=False)
    dropoff_time = Column(DateTime(timezone=True), nullable=True)

    status = Column(
        _enum(RideStatus, "ridestatus"), default=RideStatus.ACCEPTED, nullable=False
    )
    otp = Column(String(6), nullable=False)
    price = Column(Float, nullable=False)

    # Last reported driver position; annotation only, never drives status
    driver_location_lat = Column(Float, nullable=True)
    driver_location_lng = Column(Float, nullable=True)
    driver_location_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        Index("idx_rides_status", "status"),
        Index("idx_rides_parent", "parent_id"),
        Index("idx_rides_driver", "driver_id"),
        Index("idx_rides_pickup_time", "pickup_time"),
        # dropoff_time is set exactly when the ride is completed
        CheckConstraint(
            "(status = 'completed') = (dropoff_time IS NOT NULL)",
            name="ck_rides_dropoff_iff_completed",
        ),
    )

    def to_entity(self) -> Ride:
        location = None
        if self.driver_location_lat is not None and self.driver_location_lng is not None:
            location = Location(self.driver_location_lat, self.driver_location_lng)
        return Ride(
            id=self.id,
            request_id=self.request_id,
            parent_id=self.parent_id,
            child_id=self.child_id,
            driver_id=self.driver_id,
            pickup_address=self.pickup_address,
            dropoff_address=self.dropoff_address,
            pickup_time=self.pickup_time,
            dropoff_time=self.dropoff_time,
            status=RideStatus(self.status),
            otp=self.otp,
            price=self.price,
            driver_location=location,
        )


class RatingModel(Base):
    __tablename__ = "ratings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    ride_id = Column(Integer, ForeignKey("rides.id"), unique=True, nullable=False)
    parent_id = Column(Integer, ForeignKey("profiles.id"), nullable=False)
    driver_id = Column(Integer, ForeignKey("profiles.id"), nullable=False)
    parent_rating = Column(Integer, nullable=True)
    parent_comment = Column(Text, nullable=True)
    driver_rating = Column(Integer, nullable=True)
    driver_comment = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )


class TransactionModel(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("profiles.id"), nullable=False)
    ride_id = Column(Integer, ForeignKey("rides.id"), nullable=False)
    type = Column(
        _enum(TransactionType, "transactiontype"),
        default=TransactionType.RIDE_PAYMENT,
        nullable=False,
    )
    amount = Column(Float, nullable=False)
    description = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("ride_id", "type", name="uq_transactions_ride_type"),
        Index("idx_transactions_user", "user_id"),
    )


class NotificationModel(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("profiles.id"), nullable=False)
    title = Column(String(120), nullable=False)
    message = Column(Text, nullable=False)
    kind = Column(_enum(NotificationKind, "notificationkind"), nullable=False)
    reference_id = Column(Integer, nullable=True)
    reference_type = Column(String(32), nullable=True, default="ride")
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (Index("idx_notifications_user", "user_id", "is_read"),)

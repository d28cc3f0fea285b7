"""
Domain entities with business logic.

Patterns used
-------------
- **State Pattern** on ``Ride`` and ``RideRequest``: enforces valid lifecycle
  transitions (accepted -> inProgress -> completed, cancelled from accepted
  or inProgress).
- ``Principal`` is the authenticated caller handed over by the identity
  provider; role checks are expressed against it once, in ``policies``.
- ``RideView`` / ``RideRequestView`` are read projections joined with
  profile and child display fields.  The state machine never reads them.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .enums import (
    REQUEST_TRANSITIONS,
    RIDE_TRANSITIONS,
    TERMINAL_RIDE_STATUSES,
    RideRequestStatus,
    RideStatus,
    UserRole,
)
from .errors import ConflictError


class InvalidStateTransition(ConflictError):
    """Raised when a status change violates the state machine."""

    error_code = "ERR_INVALID_TRANSITION"


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Principal:
    user_id: int
    role: UserRole

    @property
    def is_parent(self) -> bool:
        return self.role == UserRole.PARENT

    @property
    def is_driver(self) -> bool:
        return self.role == UserRole.DRIVER


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class RideRequest:
    id: Optional[int] = None
    parent_id: int = 0
    child_id: int = 0
    pickup_address: str = ""
    dropoff_address: str = ""
    pickup_time: Optional[datetime] = None
    price: float = 0.0
    status: RideRequestStatus = RideRequestStatus.REQUESTED
    created_at: Optional[datetime] = None

    def transition_to(self, new_status: RideRequestStatus) -> None:
        allowed = REQUEST_TRANSITIONS.get(self.status, set())
        if new_status not in allowed:
            raise InvalidStateTransition(
                f"Cannot transition request from {self.status.value} "
                f"to {new_status.value}",
                {"status": self.status.value},
            )
        self.status = new_status


@dataclass
class Ride:
    id: Optional[int] = None
    request_id: Optional[int] = None
    parent_id: int = 0
    child_id: int = 0
    driver_id: int = 0
    pickup_address: str = ""
    dropoff_address: str = ""
    pickup_time: Optional[datetime] = None
    dropoff_time: Optional[datetime] = None
    status: RideStatus = RideStatus.ACCEPTED
    otp: str = ""
    price: float = 0.0
    driver_location: Optional[Location] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_RIDE_STATUSES

    def can_transition_to(self, new_status: RideStatus) -> bool:
        return new_status in RIDE_TRANSITIONS.get(self.status, set())

    def transition_to(self, new_status: RideStatus) -> None:
        """Move to *new_status* if the transition is legal, else raise."""
        if self.is_terminal:
            raise InvalidStateTransition(
                f"Ride is already {self.status.value}",
                {"status": self.status.value},
            )
        if not self.can_transition_to(new_status):
            raise InvalidStateTransition(
                f"Cannot transition from {self.status.value} to {new_status.value}",
                {"status": self.status.value},
            )
        self.status = new_status


# ── Read projections ──────────────────────────────────────────────────


@dataclass(frozen=True)
class RideRequestView:
    id: int
    parent_id: int
    child_id: int
    pickup_address: str
    dropoff_address: str
    pickup_time: datetime
    price: float
    status: RideRequestStatus
    parent_name: str = "Unknown"
    child_name: str = "Unknown"
    school_name: str = "Unknown school"
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class RideView:
    id: int
    parent_id: int
    child_id: int
    driver_id: int
    pickup_address: str
    dropoff_address: str
    pickup_time: datetime
    dropoff_time: Optional[datetime]
    status: RideStatus
    price: float
    parent_name: str = "Unknown"
    driver_name: str = "Unknown"
    child_name: str = "Unknown"
    school_name: str = "Unknown school"

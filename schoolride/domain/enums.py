"""Domain enumerations and state-transition rules."""

import enum


class UserRole(str, enum.Enum):
    PARENT = "parent"
    DRIVER = "driver"


class RideRequestStatus(str, enum.Enum):
    REQUESTED = "requested"
    ACCEPTED = "accepted"
    CANCELLED = "cancelled"


class RideStatus(str, enum.Enum):
    ACCEPTED = "accepted"
    IN_PROGRESS = "inProgress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# State machine: maps current status -> set of valid next statuses
REQUEST_TRANSITIONS: dict[RideRequestStatus, set[RideRequestStatus]] = {
    RideRequestStatus.REQUESTED: {
        RideRequestStatus.ACCEPTED,
        RideRequestStatus.CANCELLED,
    },
    RideRequestStatus.ACCEPTED: set(),
    RideRequestStatus.CANCELLED: set(),
}

RIDE_TRANSITIONS: dict[RideStatus, set[RideStatus]] = {
    RideStatus.ACCEPTED: {RideStatus.IN_PROGRESS, RideStatus.CANCELLED},
    RideStatus.IN_PROGRESS: {RideStatus.COMPLETED, RideStatus.CANCELLED},
    RideStatus.COMPLETED: set(),
    RideStatus.CANCELLED: set(),
}

# Statuses that make a ride the principal's "current" ride
ACTIVE_RIDE_STATUSES = (RideStatus.ACCEPTED, RideStatus.IN_PROGRESS)

TERMINAL_RIDE_STATUSES = (RideStatus.COMPLETED, RideStatus.CANCELLED)


class NotificationKind(str, enum.Enum):
    RIDE_ACCEPTED = "ride_accepted"
    RIDE_STARTED = "ride_inProgress"
    RIDE_COMPLETED = "ride_completed"
    RIDE_CANCELLED = "ride_cancelled"


class TransactionType(str, enum.Enum):
    RIDE_PAYMENT = "ride_payment"

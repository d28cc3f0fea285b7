"""
Role and ownership guards.

Operations are defined once in the services; these helpers decide whether
a given principal may perform them on a given ride or request.
"""

from __future__ import annotations

from .entities import Principal
from .enums import RideStatus, UserRole
from .errors import AuthorizationError


def require_role(principal: Principal, role: UserRole) -> None:
    if principal.role != role:
        raise AuthorizationError(
            f"Only a {role.value} may perform this action",
            {"role": principal.role.value},
        )


def require_ride_party(principal: Principal, ride) -> None:
    """The caller must be the ride's parent or its assigned driver."""
    if principal.is_parent and ride.parent_id == principal.user_id:
        return
    if principal.is_driver and ride.driver_id == principal.user_id:
        return
    raise AuthorizationError("You are not a party to this ride")


def require_assigned_driver(principal: Principal, ride) -> None:
    if not (principal.is_driver and ride.driver_id == principal.user_id):
        raise AuthorizationError("Only the assigned driver may do this")


def require_request_owner(principal: Principal, request) -> None:
    if not (principal.is_parent and request.parent_id == principal.user_id):
        raise AuthorizationError("You do not own this ride request")


def may_cancel(principal: Principal, ride) -> bool:
    """
    Parent may cancel only before the trip starts; the assigned driver may
    also abort a trip in progress.
    """
    if principal.is_parent and ride.parent_id == principal.user_id:
        return ride.status == RideStatus.ACCEPTED
    if principal.is_driver and ride.driver_id == principal.user_id:
        return ride.status in (RideStatus.ACCEPTED, RideStatus.IN_PROGRESS)
    return False

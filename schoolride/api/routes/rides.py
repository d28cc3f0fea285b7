"""
Ride endpoints
==============

GET   /api/v1/rides                 -- ride history for the caller
GET   /api/v1/rides/current         -- the caller's accepted / in-progress ride, or null
GET   /api/v1/rides/{id}            -- one ride (parties only)
POST  /api/v1/rides/{id}/otp        -- driver submits the trip-start OTP
PATCH /api/v1/rides/{id}/status     -- complete or cancel
POST  /api/v1/rides/{id}/location   -- driver position update
PUT   /api/v1/rides/{id}/rating     -- rate the ride (caller's half only)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request

from schoolride.api.dependencies import get_engine, get_principal
from schoolride.api.middleware import limiter
from schoolride.api.schemas import (
    ErrorResponse,
    LocationSchema,
    OtpSubmit,
    RatingResponse,
    RatingSubmit,
    RideResponse,
    RideViewResponse,
    StatusUpdate,
)
from schoolride.config import settings
from schoolride.domain.entities import Location, Principal
from schoolride.services.engine import RideEngine

router = APIRouter(prefix="/rides", tags=["rides"])


def _location(schema: Optional[LocationSchema]) -> Optional[Location]:
    if schema is None:
        return None
    return Location(schema.latitude, schema.longitude)


@router.get("", response_model=list[RideViewResponse], summary="Ride history")
@limiter.limit(settings.rate_limit)
async def list_rides(
    request: Request,
    principal: Principal = Depends(get_principal),
    engine: RideEngine = Depends(get_engine),
):
    return await engine.list_rides(principal)


@router.get(
    "/current",
    response_model=Optional[RideResponse],
    summary="Current ride (accepted or in progress)",
)
@limiter.limit(settings.rate_limit)
async def get_current_ride(
    request: Request,
    principal: Principal = Depends(get_principal),
    engine: RideEngine = Depends(get_engine),
):
    ride = await engine.get_current_ride(principal)
    if ride is None:
        return None
    return RideResponse.from_model(ride, principal)


@router.get("/{ride_id}", response_model=RideResponse, summary="Get a ride")
@limiter.limit(settings.rate_limit)
async def get_ride(
    request: Request,
    ride_id: int,
    principal: Principal = Depends(get_principal),
    engine: RideEngine = Depends(get_engine),
):
    ride = await engine.get_ride(ride_id, principal)
    return RideResponse.from_model(ride, principal)


@router.post(
    "/{ride_id}/otp",
    response_model=RideResponse,
    summary="Start the trip by submitting the OTP",
    responses={
        422: {"model": ErrorResponse, "description": "Invalid OTP (field 'otp')."},
        409: {"model": ErrorResponse, "description": "Ride is not awaiting pickup."},
    },
)
@limiter.limit(settings.rate_limit)
async def submit_otp(
    request: Request,
    ride_id: int,
    body: OtpSubmit,
    principal: Principal = Depends(get_principal),
    engine: RideEngine = Depends(get_engine),
):
    ride = await engine.submit_otp(ride_id, body.otp, principal)
    return RideResponse.from_model(ride, principal)


@router.patch(
    "/{ride_id}/status",
    response_model=RideResponse,
    summary="Complete or cancel a ride",
    description=(
        "Completion (assigned driver only) settles the fare to the driver's "
        "wallet exactly once.  Cancellation: parent from accepted; driver "
        "from accepted or inProgress."
    ),
    responses={409: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit)
async def advance_status(
    request: Request,
    ride_id: int,
    body: StatusUpdate,
    principal: Principal = Depends(get_principal),
    engine: RideEngine = Depends(get_engine),
):
    ride = await engine.advance_status(
        ride_id, body.status, principal, location=_location(body.location)
    )
    return RideResponse.from_model(ride, principal)


@router.post(
    "/{ride_id}/location",
    response_model=RideResponse,
    summary="Report the driver's position",
)
@limiter.limit(settings.rate_limit)
async def update_location(
    request: Request,
    ride_id: int,
    body: LocationSchema,
    principal: Principal = Depends(get_principal),
    engine: RideEngine = Depends(get_engine),
):
    ride = await engine.update_driver_location(ride_id, principal, _location(body))
    return RideResponse.from_model(ride, principal)


@router.put(
    "/{ride_id}/rating",
    response_model=RatingResponse,
    summary="Rate a ride",
)
@limiter.limit(settings.rate_limit)
async def rate_ride(
    request: Request,
    ride_id: int,
    body: RatingSubmit,
    principal: Principal = Depends(get_principal),
    engine: RideEngine = Depends(get_engine),
):
    return await engine.rate_ride(ride_id, body.rating, body.comment, principal)

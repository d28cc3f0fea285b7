"""
Ride request endpoints
======================

POST  /api/v1/requests               -- parent asks for a ride (201)
GET   /api/v1/requests/open          -- drivers list open requests, earliest pickup first
PATCH /api/v1/requests/{id}/cancel   -- parent withdraws an unaccepted request
POST  /api/v1/requests/{id}/accept   -- driver accepts; creates the ride
"""

from fastapi import APIRouter, Depends, Request

from schoolride.api.dependencies import get_engine, get_principal
from schoolride.api.middleware import limiter
from schoolride.api.schemas import (
    ErrorResponse,
    OpenRideRequestResponse,
    RideRequestCreate,
    RideRequestResponse,
    RideResponse,
)
from schoolride.config import settings
from schoolride.domain.entities import Principal
from schoolride.services.engine import RideEngine

router = APIRouter(prefix="/requests", tags=["ride requests"])


@router.post(
    "",
    status_code=201,
    response_model=RideRequestResponse,
    summary="Create a ride request",
    responses={
        403: {"model": ErrorResponse, "description": "Child is not yours."},
        422: {"model": ErrorResponse, "description": "Pickup time in the past."},
    },
)
@limiter.limit(settings.rate_limit)
async def create_request(
    request: Request,
    body: RideRequestCreate,
    principal: Principal = Depends(get_principal),
    engine: RideEngine = Depends(get_engine),
):
    return await engine.create_request(
        principal,
        child_id=body.child_id,
        pickup_address=body.pickup_address,
        dropoff_address=body.dropoff_address,
        pickup_time=body.pickup_time,
        price=body.price,
    )


@router.get(
    "/open",
    response_model=list[OpenRideRequestResponse],
    summary="List open ride requests (drivers only)",
)
@limiter.limit(settings.rate_limit)
async def list_open_requests(
    request: Request,
    principal: Principal = Depends(get_principal),
    engine: RideEngine = Depends(get_engine),
):
    return await engine.list_open_requests(principal)


@router.patch(
    "/{request_id}/cancel",
    response_model=RideRequestResponse,
    summary="Cancel a ride request",
    description="Only the owning parent may cancel, and only before a driver accepts.",
    responses={409: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit)
async def cancel_request(
    request: Request,
    request_id: int,
    principal: Principal = Depends(get_principal),
    engine: RideEngine = Depends(get_engine),
):
    return await engine.cancel_request(request_id, principal)


@router.post(
    "/{request_id}/accept",
    status_code=201,
    response_model=RideResponse,
    summary="Accept a ride request",
    responses={
        409: {
            "model": ErrorResponse,
            "description": "Request already taken or cancelled; re-fetch the list.",
        }
    },
)
@limiter.limit(settings.rate_limit)
async def accept_request(
    request: Request,
    request_id: int,
    principal: Principal = Depends(get_principal),
    engine: RideEngine = Depends(get_engine),
):
    ride = await engine.accept_request(request_id, principal)
    return RideResponse.from_model(ride, principal)

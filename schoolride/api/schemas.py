"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from schoolride.domain.entities import Principal
from schoolride.domain.enums import (
    NotificationKind,
    RideRequestStatus,
    RideStatus,
    TransactionType,
)


# ── Requests ──────────────────────────────────────────────────────────


class LocationSchema(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class RideRequestCreate(BaseModel):
    child_id: int
    pickup_address: str = Field(..., min_length=1, max_length=255)
    dropoff_address: str = Field(..., min_length=1, max_length=255)
    pickup_time: datetime = Field(..., description="Must be in the future.")
    price: Optional[float] = Field(
        None,
        gt=0,
        description="Omit to let the server apply its default fare.",
    )


class OtpSubmit(BaseModel):
    otp: str = Field(..., description="Code the parent reads out at pickup.")


class StatusUpdate(BaseModel):
    status: str = Field(..., description="'completed' or 'cancelled'.")
    location: Optional[LocationSchema] = None


class RatingSubmit(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=1000)


# ── Responses ─────────────────────────────────────────────────────────


class RideRequestResponse(BaseModel):
    id: int
    parent_id: int
    child_id: int
    pickup_address: str
    dropoff_address: str
    pickup_time: datetime
    price: float
    status: RideRequestStatus
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class OpenRideRequestResponse(RideRequestResponse):
    parent_name: str
    child_name: str
    school_name: str


class RideResponse(BaseModel):
    id: int
    request_id: int
    parent_id: int
    child_id: int
    driver_id: int
    pickup_address: str
    dropoff_address: str
    pickup_time: datetime
    dropoff_time: Optional[datetime] = None
    status: RideStatus
    price: float
    otp: Optional[str] = Field(
        None, description="Only disclosed to the ride's parent."
    )
    driver_location: Optional[LocationSchema] = None
    driver_location_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, ride, principal: Principal) -> "RideResponse":
        location = None
        if ride.driver_location_lat is not None and ride.driver_location_lng is not None:
            location = LocationSchema(
                latitude=ride.driver_location_lat,
                longitude=ride.driver_location_lng,
            )
        show_otp = principal.is_parent and ride.parent_id == principal.user_id
        return cls(
            id=ride.id,
            request_id=ride.request_id,
            parent_id=ride.parent_id,
            child_id=ride.child_id,
            driver_id=ride.driver_id,
            pickup_address=ride.pickup_address,
            dropoff_address=ride.dropoff_address,
            pickup_time=ride.pickup_time,
            dropoff_time=ride.dropoff_time,
            status=ride.status,
            price=ride.price,
            otp=ride.otp if show_otp else None,
            driver_location=location,
            driver_location_at=ride.driver_location_at,
        )


class RideViewResponse(BaseModel):
    id: int
    parent_id: int
    child_id: int
    driver_id: int
    pickup_address: str
    dropoff_address: str
    pickup_time: datetime
    dropoff_time: Optional[datetime] = None
    status: RideStatus
    price: float
    parent_name: str
    driver_name: str
    child_name: str
    school_name: str

    model_config = {"from_attributes": True}


class RatingResponse(BaseModel):
    id: int
    ride_id: int
    parent_id: int
    driver_id: int
    parent_rating: Optional[int] = None
    parent_comment: Optional[str] = None
    driver_rating: Optional[int] = None
    driver_comment: Optional[str] = None

    model_config = {"from_attributes": True}


class TransactionResponse(BaseModel):
    id: int
    ride_id: int
    type: TransactionType
    amount: float
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class WalletResponse(BaseModel):
    user_id: int
    balance: float
    transactions: list[TransactionResponse] = []

    model_config = {"from_attributes": True}


class NotificationResponse(BaseModel):
    id: int
    title: str
    message: str
    kind: NotificationKind
    reference_id: Optional[int] = None
    reference_type: Optional[str] = None
    is_read: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    error_code: str
    message: str
    details: dict = {}

"""
Wallet and notification endpoints
=================================

GET   /api/v1/wallet                        -- balance and transactions
GET   /api/v1/notifications?unread_only=    -- the caller's notifications
PATCH /api/v1/notifications/{id}/read       -- mark one as read
"""

from fastapi import APIRouter, Depends, Request

from schoolride.api.dependencies import get_engine, get_principal
from schoolride.api.middleware import limiter
from schoolride.api.schemas import (
    NotificationResponse,
    TransactionResponse,
    WalletResponse,
)
from schoolride.config import settings
from schoolride.domain.entities import Principal
from schoolride.services.engine import RideEngine

router = APIRouter(tags=["account"])


@router.get("/wallet", response_model=WalletResponse, summary="Wallet balance")
@limiter.limit(settings.rate_limit)
async def get_wallet(
    request: Request,
    principal: Principal = Depends(get_principal),
    engine: RideEngine = Depends(get_engine),
):
    wallet = await engine.get_wallet(principal)
    return WalletResponse(
        user_id=wallet.user_id,
        balance=wallet.balance,
        transactions=[TransactionResponse.model_validate(t) for t in wallet.transactions],
    )


@router.get(
    "/notifications",
    response_model=list[NotificationResponse],
    summary="List notifications",
)
@limiter.limit(settings.rate_limit)
async def list_notifications(
    request: Request,
    unread_only: bool = False,
    principal: Principal = Depends(get_principal),
    engine: RideEngine = Depends(get_engine),
):
    return await engine.list_notifications(principal, unread_only=unread_only)


@router.patch(
    "/notifications/{notification_id}/read",
    status_code=204,
    summary="Mark a notification as read",
)
@limiter.limit(settings.rate_limit)
async def mark_notification_read(
    request: Request,
    notification_id: int,
    principal: Principal = Depends(get_principal),
    engine: RideEngine = Depends(get_engine),
):
    await engine.mark_notification_read(notification_id, principal)

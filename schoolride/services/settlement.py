"""
Settlement and wallet reads.

``_settle`` runs inside the completion transaction, after the guarded
``inProgress -> completed`` update has been won, so it can execute at most
once per ride.  It appends a ``ride_payment`` transaction and credits the
driver with an atomic increment.  Should either write fail, the whole
transaction (status change included) rolls back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from .base import EngineService
from schoolride.domain.entities import Principal
from schoolride.domain.enums import TransactionType
from schoolride.domain.errors import NotFoundError
from schoolride.infrastructure.models import RideModel, TransactionModel
from schoolride.infrastructure.repositories import (
    ProfileRepository,
    TransactionRepository,
)

logger = logging.getLogger(__name__)


@dataclass
class WalletSummary:
    user_id: int
    balance: float
    transactions: list[TransactionModel] = field(default_factory=list)


class SettlementOps(EngineService):
    async def _settle(self, session: AsyncSession, ride: RideModel) -> TransactionModel:
        txn = await TransactionRepository(session).create(
            TransactionModel(
                user_id=ride.driver_id,
                ride_id=ride.id,
                type=TransactionType.RIDE_PAYMENT,
                amount=ride.price,
                description=f"Payment for ride {ride.id}",
            )
        )
        credited = await ProfileRepository(session).credit_wallet(
            ride.driver_id, ride.price
        )
        if not credited:
            raise NotFoundError("Driver profile", ride.driver_id)

        logger.info(
            "Settled ride %d: %.2f credited to driver %d",
            ride.id,
            ride.price,
            ride.driver_id,
        )
        return txn

    async def get_wallet(self, principal: Principal) -> WalletSummary:
        async with self._unit_of_work() as session:
            balance = await ProfileRepository(session).get_wallet_balance(
                principal.user_id
            )
            if balance is None:
                raise NotFoundError("Profile", principal.user_id)
            transactions = await TransactionRepository(session).list_for_user(
                principal.user_id
            )
        return WalletSummary(
            user_id=principal.user_id, balance=balance, transactions=transactions
        )

"""FastAPI dependency injection helpers."""

from __future__ import annotations

from typing import Optional

from fastapi import Header, HTTPException

from schoolride.config import settings
from schoolride.domain.entities import Principal
from schoolride.domain.enums import UserRole
from schoolride.infrastructure.database import async_session_factory
from schoolride.infrastructure.redis_client import get_redis
from schoolride.services.engine import RideEngine, build_engine

_engine: Optional[RideEngine] = None


async def get_engine() -> RideEngine:
    """Process-wide engine bound to the shared DB and Redis pools."""
    global _engine
    if _engine is None:
        _engine = build_engine(async_session_factory, settings, await get_redis())
    return _engine


async def get_principal(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
) -> Principal:
    """
    Caller identity as asserted by the upstream identity provider.

    The gateway authenticates the user and forwards ``X-User-Id`` and
    ``X-User-Role``; they are trusted as-is here.
    """
    if not x_user_id or not x_user_role:
        raise HTTPException(status_code=401, detail="Missing caller identity")
    try:
        return Principal(user_id=int(x_user_id), role=UserRole(x_user_role))
    except ValueError:
        raise HTTPException(status_code=401, detail="Malformed caller identity")

"""
Shared test fixtures.

Uses a file-backed SQLite database (via aiosqlite) per test so tests run
without Docker / PostgreSQL / Redis.  A file rather than ``:memory:`` gives
every session its own connection, which the concurrency tests need.
Transactions open with ``BEGIN IMMEDIATE`` so competing writers queue on
SQLite's lock instead of failing with "database is locked".
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy import event, func, select
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from schoolride.config import Settings
from schoolride.domain.entities import Principal
from schoolride.domain.enums import UserRole
from schoolride.infrastructure.database import Base
from schoolride.infrastructure.models import ChildModel, ProfileModel
from schoolride.services.engine import RideEngine, build_engine


def in_minutes(minutes: int) -> datetime:
    return datetime.now(timezone.utc) + timedelta(minutes=minutes)


async def count_rows(session_factory, model, *where) -> int:
    async with session_factory() as session:
        result = await session.execute(
            select(func.count()).select_from(model).where(*where)
        )
        return result.scalar() or 0


# ── Database ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def db_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'schoolride.db'}",
        connect_args={"timeout": 30},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def people(session_factory) -> SimpleNamespace:
    """Two parents (each with one child) and two drivers."""
    async with session_factory() as session:
        parent = ProfileModel(role=UserRole.PARENT, name="Thandi", surname="Nkosi")
        other_parent = ProfileModel(role=UserRole.PARENT, name="Pieter", surname="van Wyk")
        driver = ProfileModel(role=UserRole.DRIVER, name="Sipho", surname="Dlamini")
        other_driver = ProfileModel(role=UserRole.DRIVER, name="Johan", surname="Botha")
        session.add_all([parent, other_parent, driver, other_driver])
        await session.flush()

        child = ChildModel(
            parent_id=parent.id,
            name="Ayanda",
            surname="Nkosi",
            school_name="Greenside Primary",
        )
        other_child = ChildModel(
            parent_id=other_parent.id,
            name="Anika",
            surname="van Wyk",
            school_name="Parkview Junior",
        )
        session.add_all([child, other_child])
        await session.commit()

        return SimpleNamespace(
            parent=Principal(parent.id, UserRole.PARENT),
            other_parent=Principal(other_parent.id, UserRole.PARENT),
            driver=Principal(driver.id, UserRole.DRIVER),
            other_driver=Principal(other_driver.id, UserRole.DRIVER),
            child_id=child.id,
            other_child_id=other_child.id,
        )


# ── Engine ────────────────────────────────────────────────────────────


@pytest.fixture
def settings() -> Settings:
    return Settings(
        default_fare=150.0,
        fare_policy="fixed",
        otp_length=4,
        otp_max_attempts=0,
        rating_requires_completion=False,
    )


@pytest.fixture
def engine(session_factory, settings) -> RideEngine:
    return build_engine(session_factory, settings)


@pytest.fixture
def make_request(engine, people):
    """Create an open request for ``people.parent``'s child."""

    async def _make(minutes_ahead: int = 30, price=None, **overrides):
        kwargs = dict(
            child_id=people.child_id,
            pickup_address="10 Home St",
            dropoff_address="School Rd",
            pickup_time=in_minutes(minutes_ahead),
            price=price,
        )
        kwargs.update(overrides)
        return await engine.create_request(people.parent, **kwargs)

    return _make


@pytest.fixture
def make_ride(engine, people, make_request):
    """Create a request and have ``people.driver`` accept it."""

    async def _make(minutes_ahead: int = 30, price=None, started: bool = False):
        request = await make_request(minutes_ahead, price=price)
        ride = await engine.accept_request(request.id, people.driver)
        if started:
            ride = await engine.submit_otp(ride.id, ride.otp, people.driver)
        return ride

    return _make

"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 4 sample parents, each with one or two children
  - 4 sample drivers with empty wallets
  - 3 open ride requests (pickup later today)
"""

import asyncio
from datetime import datetime, timedelta, timezone

from sqlalchemy import text

from schoolride.config import settings
from schoolride.domain.enums import RideRequestStatus, UserRole
from schoolride.infrastructure.database import async_session_factory, engine
from schoolride.infrastructure.models import (
    ChildModel,
    ProfileModel,
    RideRequestModel,
)


PARENTS = [
    {"name": "Thandi", "surname": "Nkosi", "phone": "+27 82 555 0101"},
    {"name": "Pieter", "surname": "van Wyk", "phone": "+27 83 555 0102"},
    {"name": "Aisha", "surname": "Patel", "phone": "+27 84 555 0103"},
    {"name": "Lerato", "surname": "Mokoena", "phone": "+27 71 555 0104"},
]

DRIVERS = [
    {"name": "Sipho", "surname": "Dlamini", "phone": "+27 72 555 0201"},
    {"name": "Johan", "surname": "Botha", "phone": "+27 73 555 0202"},
    {"name": "Nomsa", "surname": "Zulu", "phone": "+27 74 555 0203"},
    {"name": "Ravi", "surname": "Naidoo", "phone": "+27 76 555 0204"},
]

# (parent index, name, surname, school)
CHILDREN = [
    (0, "Ayanda", "Nkosi", "Greenside Primary"),
    (0, "Lwazi", "Nkosi", "Greenside Primary"),
    (1, "Anika", "van Wyk", "Parkview Junior"),
    (2, "Zara", "Patel", "Roosevelt High"),
    (3, "Kamo", "Mokoena", "Parkview Junior"),
]

SCHOOL_ADDRESSES = {
    "Greenside Primary": "12 Mowbray Rd, Greenside",
    "Parkview Junior": "1 Wicklow Ave, Parkview",
    "Roosevelt High": "3 Roosevelt St, Roosevelt Park",
}

HOME_ADDRESSES = [
    "10 Home St, Emmarentia",
    "44 Jan Smuts Ave, Westcliff",
    "7 Barry Hertzog Ave, Greenside",
    "21 Queen St, Parkview",
]


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM profiles"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        # ── Profiles ──────────────────────────────────────────────────
        parents = [ProfileModel(role=UserRole.PARENT, **p) for p in PARENTS]
        drivers = [ProfileModel(role=UserRole.DRIVER, **d) for d in DRIVERS]
        session.add_all(parents + drivers)
        await session.flush()
        print(f"  Created {len(parents)} parents and {len(drivers)} drivers")

        # ── Children ──────────────────────────────────────────────────
        children = []
        for parent_idx, name, surname, school in CHILDREN:
            child = ChildModel(
                parent_id=parents[parent_idx].id,
                name=name,
                surname=surname,
                school_name=school,
                school_address=SCHOOL_ADDRESSES[school],
            )
            session.add(child)
            children.append(child)
        await session.flush()
        print(f"  Created {len(children)} children")

        # ── Open ride requests ────────────────────────────────────────
        now = datetime.now(timezone.utc)
        for offset, child in zip((30, 45, 90), children[::2]):
            parent_idx = next(
                i for i, p in enumerate(parents) if p.id == child.parent_id
            )
            session.add(
                RideRequestModel(
                    parent_id=child.parent_id,
                    child_id=child.id,
                    pickup_address=HOME_ADDRESSES[parent_idx],
                    dropoff_address=child.school_address,
                    pickup_time=now + timedelta(minutes=offset),
                    price=settings.default_fare,
                    status=RideRequestStatus.REQUESTED,
                )
            )
        await session.flush()
        print("  Created 3 open ride requests")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())

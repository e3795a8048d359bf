"""
Database seeding script for development profiles.

Creates a DISPATCHER, an ADMIN and a DRIVER profile (plus the driver's
presence record) and prints bearer tokens for each, so the API can be
exercised locally without the identity service.
Run this script after database is set up but before first use.
"""

import asyncio
from datetime import datetime, timezone

from sqlalchemy import select

from dispatch_backend.app.db.session import AsyncSessionLocal, engine, Base
from dispatch_backend.app.core.jwt import create_access_token

# Import models to ensure they are registered with Base
from dispatch_backend.app.models.user import User
from dispatch_backend.app.models.driver import Driver
from dispatch_backend.app.models.trip import Trip
from dispatch_backend.app.models.trip_stop import TripStop
from dispatch_backend.app.models.driver_event import DriverEvent
from dispatch_backend.app.models.enums import UserRole
from dispatch_backend.app.services.presence import new_driver_record

SEED_PROFILES = [
    ("dev-dispatcher", "dispatcher@dispatch.local", "Dev Dispatcher", UserRole.DISPATCHER),
    ("dev-admin", "admin@dispatch.local", "Dev Admin", UserRole.ADMIN),
    ("dev-driver", "driver@dispatch.local", "Dev Driver", UserRole.DRIVER),
]


async def seed_users():
    """
    Seed development profiles.

    Existing profiles are left untouched.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("Starting profile seeding...")
        now = datetime.now(timezone.utc)

        for uid, email, name, role in SEED_PROFILES:
            result = await db.execute(select(User).where(User.uid == uid))
            if result.scalar_one_or_none():
                print(f"  {role.value:<10} {uid} already exists, skipping")
                continue

            db.add(User(uid=uid, email=email, name=name, role=role, created_at=now))
            if role == UserRole.DRIVER:
                db.add(new_driver_record(uid, now))
            print(f"  {role.value:<10} {uid} created")

        await db.commit()

    print("\nBearer tokens:")
    for uid, email, _, role in SEED_PROFILES:
        token = create_access_token(data={"sub": uid, "email": email})
        print(f"  {role.value:<10} {token}")


if __name__ == "__main__":
    asyncio.run(seed_users())

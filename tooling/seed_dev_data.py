"""Seed development users and the default offer into the API database."""

from __future__ import annotations

import asyncio
import os
from datetime import datetime, timezone
from typing import TypedDict

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from stampcard_api.core.settings import settings
from stampcard_api.models.user import User
from stampcard_api.services.stampcard import OfferRegistry


class SeedUser(TypedDict):
    email: str
    name: str
    role: str


DEV_USERS: list[SeedUser] = [
    {
        "email": os.getenv("DEV_SHORTCUT_CUSTOMER_EMAIL", "customer@stampcard.dev").lower(),
        "name": "Customer QA",
        "role": "customer",
    },
    {
        "email": os.getenv("DEV_SHORTCUT_ADMIN_EMAIL", "admin@stampcard.dev").lower(),
        "name": "Admin QA",
        "role": "admin",
    },
    {
        "email": os.getenv("DEV_SHORTCUT_SUPER_ADMIN_EMAIL", "owner@stampcard.dev").lower(),
        "name": "Owner QA",
        "role": "super_admin",
    },
]


async def seed(session: AsyncSession) -> None:
    now = datetime.now(timezone.utc)
    await OfferRegistry(session).ensure_default_offer(created_by="seed")
    for user in DEV_USERS:
        with session.no_autoflush:
            existing = await session.execute(select(User).where(User.email == user["email"]))
        record = existing.scalar_one_or_none()

        if record:
            record.name = user["name"]
            record.role = user["role"]
            record.updated_at = now
        else:
            session.add(
                User(
                    email=user["email"],
                    name=user["name"],
                    role=user["role"],
                    current_offer_progress=0,
                    purchases=0,
                    is_session_valid=False,
                    created_at=now,
                    updated_at=now,
                )
            )
    await session.commit()


async def main() -> None:
    engine = create_async_engine(settings.database_url, future=True)
    session_factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    try:
        async with session_factory() as session:
            await seed(session)
        print("Development users and default offer ready")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())

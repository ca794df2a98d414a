from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy import func, select

from stampcard_api.models import Reward, ScanEvent, User, UserRoleEnum
from stampcard_api.services.stampcard import (
    AccountService,
    DuplicateUserError,
    InvalidSessionError,
    ScanEngine,
    UnauthorizedError,
)

from conftest import build_offer, build_user

UTC = ZoneInfo("UTC")


@pytest.mark.asyncio
async def test_register_user_starts_with_no_progress(session_factory) -> None:
    async with session_factory() as session:
        service = AccountService(session)

        user = await service.register_user(" New@Example.com ", "Newbie", user_id="uid-1")
        await session.commit()

        assert user.id == "uid-1"
        assert user.email == "new@example.com"
        assert user.role == "customer"
        assert user.purchases == 0
        assert user.current_offer_id is None
        assert user.current_offer_progress == 0
        assert user.last_scan_at is None

        with pytest.raises(DuplicateUserError):
            await service.register_user("new@example.com")


@pytest.mark.asyncio
async def test_session_lifecycle(session_factory) -> None:
    async with session_factory() as session:
        service = AccountService(session)
        user = await service.register_user("member@example.com")

        first = await service.start_session(user.id)
        second = await service.start_session(user.id)
        await session.commit()

        assert first != second
        assert user.is_session_valid is True
        assert user.last_login_at is not None
        assert await service.validate_session(user.id, second) is user

        with pytest.raises(InvalidSessionError):
            await service.validate_session(user.id, first)

        await service.end_session(user.id)
        with pytest.raises(InvalidSessionError):
            await service.validate_session(user.id, second)

        with pytest.raises(InvalidSessionError):
            await service.validate_session("missing", second)


@pytest.mark.asyncio
async def test_update_role_requires_super_admin(session_factory) -> None:
    async with session_factory() as session:
        owner = build_user("owner@example.com", role="super_admin")
        admin = build_user("admin@example.com", role="admin")
        customer = build_user("customer@example.com")
        session.add_all([owner, admin, customer])
        await session.commit()
        service = AccountService(session)

        with pytest.raises(UnauthorizedError):
            await service.update_role(admin, customer.id, UserRoleEnum.ADMIN)

        promoted = await service.update_role(owner, customer.id, UserRoleEnum.ADMIN)
        assert promoted.role == "admin"
        assert promoted.is_admin is True

        with pytest.raises(UnauthorizedError):
            await service.list_users(build_user("someone@example.com"))
        assert len(await service.list_users(admin)) == 3


@pytest.mark.asyncio
async def test_reset_all_data_keeps_acting_super_admin(session_factory) -> None:
    async with session_factory() as session:
        owner = build_user("owner@example.com", role="super_admin")
        admin = build_user("admin@example.com", role="admin")
        customer = build_user("customer@example.com")
        session.add_all([owner, admin, customer, build_offer("offer_coffee")])
        await session.commit()
        await ScanEngine(session, tz=UTC).record_scan(
            admin, customer.id, "offer_coffee", now=datetime(2024, 1, 2, 10, tzinfo=timezone.utc)
        )
        await session.commit()
        service = AccountService(session)

        with pytest.raises(UnauthorizedError):
            await service.reset_all_data(admin)

        removed = await service.reset_all_data(owner)
        await session.commit()

        assert removed == 2
        remaining = (await session.execute(select(User.email))).scalars().all()
        assert remaining == ["owner@example.com"]
        assert (await session.execute(select(func.count()).select_from(Reward))).scalar_one() == 0
        assert (await session.execute(select(func.count()).select_from(ScanEvent))).scalar_one() == 0

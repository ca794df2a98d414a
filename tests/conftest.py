import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine


def _configure_path() -> None:
    src_path = Path(__file__).resolve().parents[1] / "src"
    if src_path.exists():
        sys.path.insert(0, str(src_path))


_configure_path()

from stampcard_api.app import create_app  # noqa: E402
from stampcard_api.db.base import Base  # noqa: E402
from stampcard_api.db.session import get_session  # noqa: E402
from stampcard_api.models import Offer, User  # noqa: E402
from stampcard_api.observability.stampcard import get_stampcard_store  # noqa: E402

SEED_TIME = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)


async def _create_engine(url: str):
    engine = create_async_engine(url, future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    return engine


@pytest_asyncio.fixture
async def session_factory():
    engine = await _create_engine("sqlite+aiosqlite:///:memory:")
    factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    try:
        yield factory
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def file_session_factory(tmp_path):
    """Separate connections per session, for lost-update scenarios."""

    engine = await _create_engine(f"sqlite+aiosqlite:///{tmp_path / 'stampcard.db'}")
    factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    try:
        yield factory
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def app_with_db(session_factory):
    app = create_app()

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session

    try:
        yield app, session_factory
    finally:
        app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def reset_stampcard_store():
    get_stampcard_store().reset()
    yield
    get_stampcard_store().reset()


def build_user(email: str, *, role: str = "customer", name: str | None = None, user_id: str | None = None) -> User:
    user = User(
        email=email,
        name=name,
        role=role,
        current_offer_progress=0,
        purchases=0,
        is_session_valid=False,
        created_at=SEED_TIME,
        updated_at=SEED_TIME,
    )
    if user_id:
        user.id = user_id
    return user


def build_offer(
    offer_id: str,
    *,
    stamp_requirement: int = 3,
    stamps_per_scan: int = 1,
    is_active: bool = True,
    name: str | None = None,
    reward_type: str = "free_item",
) -> Offer:
    return Offer(
        offer_id=offer_id,
        name=name or f"Offer {offer_id}",
        description="",
        stamp_requirement=stamp_requirement,
        stamps_per_scan=stamps_per_scan,
        reward_type=reward_type,
        reward_value="Coffee",
        reward_description="Free coffee",
        is_active=is_active,
        created_by="admin@example.com",
        created_at=SEED_TIME,
        updated_at=SEED_TIME,
    )

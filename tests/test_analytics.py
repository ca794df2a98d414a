from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from stampcard_api.services.stampcard import (
    RewardService,
    ScanEngine,
    StampcardAnalyticsService,
    UnauthorizedError,
)

from conftest import build_offer, build_user

UTC = ZoneInfo("UTC")
START = datetime(2024, 2, 1, 10, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_overview_counts(session_factory) -> None:
    async with session_factory() as session:
        admin = build_user("admin@example.com", role="admin")
        active = build_user("active@example.com")
        dormant = build_user("dormant@example.com")
        idle = build_user("idle@example.com")
        session.add_all(
            [
                admin,
                active,
                dormant,
                idle,
                build_offer("offer_coffee", stamp_requirement=1),
                build_offer("offer_bagel", stamp_requirement=3, is_active=False),
            ]
        )
        await session.commit()
        engine = ScanEngine(session, tz=UTC)

        old = await engine.record_scan(admin, dormant.id, "offer_coffee", now=START)
        await RewardService(session).redeem(admin, dormant.id, old.reward.reward_id, now=START)
        await engine.record_scan(admin, active.id, "offer_coffee", now=START + timedelta(days=20))
        await session.commit()

        overview = await StampcardAnalyticsService(session).overview(admin, now=START + timedelta(days=21))

    assert overview.total_users == 4
    assert overview.customers == 3
    assert overview.admins == 1
    assert overview.active_customers == 1
    assert overview.total_rewards == 2
    assert overview.completed_rewards == 2
    assert overview.redeemed_rewards == 1
    assert overview.rewards_in_progress == 0
    assert overview.total_offers == 2
    assert overview.active_offers == 1
    assert overview.total_scans == 2
    assert overview.participation_rate == pytest.approx(0.6667)
    assert overview.average_rewards_per_customer == pytest.approx(0.6667)
    assert overview.window_days == 7


@pytest.mark.asyncio
async def test_overview_requires_admin(session_factory) -> None:
    async with session_factory() as session:
        customer = build_user("customer@example.com")
        session.add(customer)
        await session.commit()

        with pytest.raises(UnauthorizedError):
            await StampcardAnalyticsService(session).overview(customer)

"""Admin overview metrics."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from stampcard_api.core.settings import settings
from stampcard_api.models.offer import Offer
from stampcard_api.models.reward import Reward
from stampcard_api.models.user import User, UserRoleEnum

from .cooldown import ensure_aware
from .guards import require_admin


@dataclass
class StampcardOverview:
    total_users: int
    customers: int
    admins: int
    active_customers: int
    total_rewards: int
    completed_rewards: int
    redeemed_rewards: int
    rewards_in_progress: int
    total_offers: int
    active_offers: int
    total_scans: int
    participation_rate: float
    average_rewards_per_customer: float
    window_days: int

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


class StampcardAnalyticsService:
    """Aggregates user, reward and offer counts for the admin dashboard."""

    def __init__(self, db_session: AsyncSession) -> None:
        self._db = db_session

    async def overview(self, actor: User, *, now: datetime | None = None) -> StampcardOverview:
        require_admin(actor, "view analytics")
        now = ensure_aware(now or datetime.now(timezone.utc))
        window_days = settings.analytics_active_window_days
        window_start = now - timedelta(days=window_days)

        users = list((await self._db.execute(select(User))).scalars().all())
        customers = [user for user in users if user.role == UserRoleEnum.CUSTOMER.value]
        active_customers = [
            user
            for user in customers
            if user.last_scan_at is not None and ensure_aware(user.last_scan_at) >= window_start
        ]

        rewards_stmt = select(Reward).options(selectinload(Reward.scan_history))
        rewards = list((await self._db.execute(rewards_stmt)).scalars().all())
        completed = [reward for reward in rewards if reward.is_completed]
        redeemed = [reward for reward in rewards if reward.claimed_at is not None]
        total_scans = sum(len(reward.scan_history) for reward in rewards)

        total_offers = (await self._db.execute(select(func.count()).select_from(Offer))).scalar_one()
        active_offers = (
            await self._db.execute(
                select(func.count()).select_from(Offer).where(Offer.is_active.is_(True))
            )
        ).scalar_one()

        customer_ids = {user.id for user in customers}
        participating = {reward.user_id for reward in rewards if reward.user_id in customer_ids}
        customer_count = len(customers)
        participation = len(participating) / customer_count if customer_count else 0.0
        average = len(completed) / customer_count if customer_count else 0.0

        overview = StampcardOverview(
            total_users=len(users),
            customers=customer_count,
            admins=len(users) - customer_count,
            active_customers=len(active_customers),
            total_rewards=len(rewards),
            completed_rewards=len(completed),
            redeemed_rewards=len(redeemed),
            rewards_in_progress=len(rewards) - len(completed),
            total_offers=int(total_offers),
            active_offers=int(active_offers),
            total_scans=total_scans,
            participation_rate=round(participation, 4),
            average_rewards_per_customer=round(average, 4),
            window_days=window_days,
        )
        logger.debug("Computed stampcard overview", total_users=overview.total_users)
        return overview

"""Reward redemption and listing."""

from __future__ import annotations

from datetime import datetime, timezone

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from stampcard_api.models.reward import Reward
from stampcard_api.models.user import User
from stampcard_api.observability.stampcard import get_stampcard_store

from .cooldown import ensure_aware
from .errors import (
    AlreadyClaimedError,
    NotCompletedError,
    RewardNotFoundError,
    StampcardError,
)
from .guards import flush_guarded, require_self_or_admin
from .scans import load_user_with_rewards


class RewardService:
    """Redeems completed rewards exactly once."""

    def __init__(self, db_session: AsyncSession) -> None:
        self._db = db_session
        self._store = get_stampcard_store()

    async def list_rewards(self, user_id: str) -> list[Reward]:
        """Rewards for ``user_id`` oldest first, scan history loaded."""

        user = await load_user_with_rewards(self._db, user_id)
        return list(user.completed_rewards)

    async def redeem(
        self,
        actor: User,
        user_id: str,
        reward_id: str,
        *,
        now: datetime | None = None,
    ) -> Reward:
        try:
            return await self._redeem(actor, user_id, reward_id, now)
        except StampcardError as exc:
            self._store.record_rejection(exc.code)
            raise

    async def _redeem(
        self,
        actor: User,
        user_id: str,
        reward_id: str,
        now: datetime | None,
    ) -> Reward:
        user = await load_user_with_rewards(self._db, user_id)
        require_self_or_admin(actor, user.id, "redeem rewards")

        reward = next((item for item in user.completed_rewards if item.reward_id == reward_id), None)
        if reward is None:
            raise RewardNotFoundError(reward_id)
        if reward.claimed_at is not None:
            raise AlreadyClaimedError(reward_id, ensure_aware(reward.claimed_at))
        if not reward.is_completed:
            raise NotCompletedError(reward_id, reward.total_stamps_earned, reward.stamp_requirement)

        reward.claimed_at = ensure_aware(now or datetime.now(timezone.utc))
        await flush_guarded(self._db, entity="Reward", identifier=reward_id)

        self._store.record_redemption(reward.reward_type)
        logger.info(
            "Redeemed reward",
            user_id=user_id,
            reward_id=reward_id,
            offer_id=reward.offer_id,
            reward_type=reward.reward_type,
            redeemed_by=actor.email,
        )
        return reward

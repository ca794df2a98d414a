"""Scan/progress engine: turns an accepted scan into reward progress."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from stampcard_api.models.offer import Offer
from stampcard_api.models.reward import Reward, ScanEvent, new_reward_id, new_scan_id
from stampcard_api.models.user import User
from stampcard_api.observability.stampcard import get_stampcard_store
from stampcard_api.observability.tracing import get_tracer

from .cooldown import cooldown_for_user, ensure_aware
from .errors import (
    AlreadyCompletedError,
    CooldownActiveError,
    OfferInactiveError,
    OfferNotFoundError,
    StampcardError,
    UserNotFoundError,
)
from .guards import flush_guarded, require_self_or_admin


@dataclass(slots=True)
class ScanOutcome:
    """Result of an accepted scan."""

    user: User
    offer: Offer
    reward: Reward
    stamps_earned: int
    completed: bool
    new_reward: bool

    @property
    def progress(self) -> int:
        return self.reward.total_stamps_earned

    @property
    def stamp_requirement(self) -> int:
        return self.reward.stamp_requirement


async def load_user_with_rewards(db: AsyncSession, user_id: str) -> User:
    stmt = (
        select(User)
        .options(selectinload(User.completed_rewards).selectinload(Reward.scan_history))
        .where(User.id == user_id)
    )
    result = await db.execute(stmt)
    user = result.scalar_one_or_none()
    if user is None:
        raise UserNotFoundError(user_id)
    return user


class ScanEngine:
    """Applies the scan rules: authorization, cooldown, offer and reward resolution."""

    def __init__(self, db_session: AsyncSession, *, tz: tzinfo | None = None) -> None:
        self._db = db_session
        self._tz = tz
        self._store = get_stampcard_store()

    async def record_scan(
        self,
        actor: User,
        target_user_id: str,
        offer_id: str | None = None,
        *,
        now: datetime | None = None,
    ) -> ScanOutcome:
        """Credit one scan to ``target_user_id`` against ``offer_id``.

        ``offer_id`` falls back to the user's current offer. Changes are flushed,
        not committed; the caller owns the transaction.
        """

        now = ensure_aware(now or datetime.now(timezone.utc))
        with get_tracer().start_as_current_span("stampcard.record_scan") as span:
            span.set_attribute("stampcard.user_id", target_user_id)
            try:
                outcome = await self._record(actor, target_user_id, offer_id, now)
            except StampcardError as exc:
                self._store.record_rejection(exc.code)
                span.set_attribute("stampcard.rejection", exc.code)
                raise
            span.set_attribute("stampcard.offer_id", outcome.offer.offer_id)
            span.set_attribute("stampcard.completed", outcome.completed)

        self._store.record_scan(
            offer_id=outcome.offer.offer_id,
            stamps=outcome.stamps_earned,
            completed=outcome.completed,
            new_cycle=outcome.new_reward,
        )
        return outcome

    async def _record(
        self,
        actor: User,
        target_user_id: str,
        offer_id: str | None,
        now: datetime,
    ) -> ScanOutcome:
        user = await load_user_with_rewards(self._db, target_user_id)
        require_self_or_admin(actor, user.id, "record scans")

        cooldown = cooldown_for_user(user, now, self._tz)
        if not cooldown.can_scan:
            logger.info(
                "Scan rejected by cooldown",
                user_id=user.id,
                last_scan_at=cooldown.last_scan_at.isoformat() if cooldown.last_scan_at else None,
                hours_remaining=cooldown.hours_remaining,
            )
            raise CooldownActiveError(
                cooldown.last_scan_at,
                cooldown.next_eligible_at,
                cooldown.hours_remaining,
            )

        resolved_offer_id = offer_id or user.current_offer_id
        if not resolved_offer_id:
            raise OfferNotFoundError(None)
        offer = await self._db.get(Offer, resolved_offer_id)
        if offer is None:
            raise OfferNotFoundError(resolved_offer_id)

        reward, is_new = self._resolve_reward(user, offer, now)

        stamps_earned = min(int(offer.stamps_per_scan or 1), reward.remaining_stamps)
        reward.scan_history.append(
            ScanEvent(
                scan_id=new_scan_id(),
                sequence=len(reward.scan_history),
                scanned_by=actor.display_label,
                scanned_by_email=actor.email,
                scanned_by_name=actor.name,
                stamps_earned=stamps_earned,
                timestamp=now,
            )
        )

        user.last_scan_at = now
        user.purchases = int(user.purchases or 0) + 1
        user.current_offer_id = offer.offer_id
        user.current_offer_progress = reward.total_stamps_earned
        user.updated_at = now

        await flush_guarded(self._db, entity="User", identifier=target_user_id)

        completed = reward.is_completed
        logger.info(
            "Scan recorded",
            user_id=user.id,
            offer_id=offer.offer_id,
            reward_id=reward.reward_id,
            stamps_earned=stamps_earned,
            progress=reward.total_stamps_earned,
            stamp_requirement=reward.stamp_requirement,
            scanned_by=actor.email,
        )
        if completed:
            logger.info("Reward completed", user_id=user.id, reward_id=reward.reward_id)

        return ScanOutcome(
            user=user,
            offer=offer,
            reward=reward,
            stamps_earned=stamps_earned,
            completed=completed,
            new_reward=is_new,
        )

    def _resolve_reward(self, user: User, offer: Offer, now: datetime) -> tuple[Reward, bool]:
        rewards = [reward for reward in user.completed_rewards if reward.offer_id == offer.offer_id]

        for reward in rewards:
            if reward.is_in_progress:
                return reward, False

        if not offer.is_active:
            raise OfferInactiveError(offer.offer_id)

        for reward in rewards:
            if reward.is_redeemable:
                raise AlreadyCompletedError(offer.offer_id, reward.reward_id)

        snapshot = offer.snapshot()
        reward = Reward(
            reward_id=new_reward_id(),
            offer_id=offer.offer_id,
            offer_snapshot=snapshot,
            reward_type=snapshot["reward_type"],
            reward_value=snapshot["reward_value"],
            reward_description=snapshot["reward_description"],
            expires_at=offer.expires_at,
            created_at=now,
            scan_history=[],
        )
        user.completed_rewards.append(reward)
        logger.info(
            "Started reward cycle",
            user_id=user.id,
            offer_id=offer.offer_id,
            reward_id=reward.reward_id,
        )
        return reward, True

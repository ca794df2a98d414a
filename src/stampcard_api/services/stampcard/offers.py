"""Offer registry: creation, editing, activation and guarded deletion."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from stampcard_api.core.settings import settings
from stampcard_api.models.offer import Offer, OfferRewardTypeEnum, new_offer_id
from stampcard_api.models.reward import Reward
from stampcard_api.models.user import User
from stampcard_api.observability.stampcard import get_stampcard_store

from .errors import (
    OfferActiveError,
    OfferNotFoundError,
    OffersInUseError,
    OfferValidationError,
)
from .guards import flush_guarded, require_admin


EDITABLE_FIELDS = frozenset(
    {
        "name",
        "description",
        "stamp_requirement",
        "stamps_per_scan",
        "reward_type",
        "reward_value",
        "reward_description",
        "expires_at",
    }
)


@dataclass
class OfferDraft:
    """Caller-supplied fields for a new offer."""

    name: str
    stamp_requirement: int
    reward_type: str
    description: str = ""
    stamps_per_scan: int = 1
    reward_value: str = ""
    reward_description: str = ""
    expires_at: datetime | None = None


def _validate_fields(values: Mapping[str, Any]) -> None:
    if "name" in values and not str(values["name"] or "").strip():
        raise OfferValidationError("Offer name is required", field="name")
    for field in ("stamp_requirement", "stamps_per_scan"):
        if field in values:
            value = values[field]
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise OfferValidationError(f"{field} must be a positive integer", field=field)
    if "reward_type" in values:
        try:
            OfferRewardTypeEnum(values["reward_type"])
        except ValueError as exc:
            raise OfferValidationError(
                f"Unsupported reward type: {values['reward_type']}", field="reward_type"
            ) from exc


class OfferRegistry:
    """Coordinates offer lifecycle rules for the admin surface."""

    def __init__(self, db_session: AsyncSession) -> None:
        self._db = db_session
        self._store = get_stampcard_store()

    async def get_offer(self, offer_id: str) -> Offer:
        offer = await self._db.get(Offer, offer_id)
        if offer is None:
            raise OfferNotFoundError(offer_id)
        return offer

    async def list_offers(self, *, active_only: bool = False) -> list[Offer]:
        """Return offers oldest first; ``active_only`` is the start-collecting listing."""

        stmt = select(Offer).order_by(Offer.created_at.asc(), Offer.offer_id.asc())
        if active_only:
            stmt = stmt.where(Offer.is_active.is_(True))
        result = await self._db.execute(stmt)
        offers = list(result.scalars().all())
        logger.debug("Fetched offers", count=len(offers), active_only=active_only)
        return offers

    async def create_offer(self, actor: User, draft: OfferDraft, *, now: datetime | None = None) -> Offer:
        """Create an offer. New offers are always inactive."""

        require_admin(actor, "create offers")
        values = {
            "name": draft.name,
            "stamp_requirement": draft.stamp_requirement,
            "stamps_per_scan": draft.stamps_per_scan,
            "reward_type": draft.reward_type,
        }
        _validate_fields(values)

        timestamp = now or datetime.now(timezone.utc)
        offer = Offer(
            offer_id=new_offer_id(),
            name=draft.name.strip(),
            description=draft.description or "",
            stamp_requirement=draft.stamp_requirement,
            stamps_per_scan=draft.stamps_per_scan,
            reward_type=OfferRewardTypeEnum(draft.reward_type).value,
            reward_value=draft.reward_value or "",
            reward_description=draft.reward_description or "",
            expires_at=draft.expires_at,
            is_active=False,
            created_by=actor.email or "system",
            created_at=timestamp,
            updated_at=timestamp,
        )
        self._db.add(offer)
        await self._db.flush()
        self._store.record_offer_event("created")
        logger.info(
            "Created offer",
            offer_id=offer.offer_id,
            created_by=offer.created_by,
            stamp_requirement=offer.stamp_requirement,
        )
        return offer

    async def update_offer(
        self,
        actor: User,
        offer_id: str,
        patch: Mapping[str, Any],
        *,
        now: datetime | None = None,
    ) -> Offer:
        """Apply ``patch`` to an inactive offer. Existing rewards keep their snapshot."""

        require_admin(actor, "update offers")
        offer = await self.get_offer(offer_id)
        if offer.is_active:
            raise OfferActiveError(offer_id, "edited")

        unknown = set(patch) - EDITABLE_FIELDS
        if unknown:
            raise OfferValidationError(
                f"Fields cannot be edited: {', '.join(sorted(unknown))}",
                fields=sorted(unknown),
            )
        _validate_fields(patch)

        for field, value in patch.items():
            if field == "reward_type":
                value = OfferRewardTypeEnum(value).value
            elif field == "name":
                value = str(value).strip()
            setattr(offer, field, value)
        offer.updated_at = now or datetime.now(timezone.utc)

        await flush_guarded(self._db, entity="Offer", identifier=offer_id)
        self._store.record_offer_event("updated")
        logger.info("Updated offer", offer_id=offer_id, fields=sorted(patch))
        return offer

    async def set_active(
        self,
        actor: User,
        offer_id: str,
        active: bool,
        *,
        now: datetime | None = None,
    ) -> Offer:
        """Show or hide an offer for new collectors. In-flight rewards are untouched."""

        require_admin(actor, "change offer status")
        offer = await self.get_offer(offer_id)
        if bool(offer.is_active) == active:
            return offer

        offer.is_active = active
        offer.updated_at = now or datetime.now(timezone.utc)
        await flush_guarded(self._db, entity="Offer", identifier=offer_id)
        self._store.record_offer_event("activated" if active else "deactivated")
        logger.info("Changed offer status", offer_id=offer_id, is_active=active)
        return offer

    async def count_collectors(self, offer_id: str) -> int:
        """Number of users with an in-progress reward on the offer."""

        stmt = (
            select(Reward)
            .options(selectinload(Reward.scan_history))
            .where(Reward.offer_id == offer_id, Reward.claimed_at.is_(None))
        )
        result = await self._db.execute(stmt)
        return len({reward.user_id for reward in result.scalars().all() if reward.is_in_progress})

    async def delete_offer(self, actor: User, offer_id: str) -> None:
        """Delete an inactive offer nobody is collecting against."""

        require_admin(actor, "delete offers")
        offer = await self.get_offer(offer_id)
        if offer.is_active:
            raise OfferActiveError(offer_id, "deleted")

        collectors = await self.count_collectors(offer_id)
        if collectors:
            raise OffersInUseError(offer_id, collectors)

        stmt = select(User).where(User.current_offer_id == offer_id)
        result = await self._db.execute(stmt)
        detached = 0
        for user in result.scalars().all():
            user.current_offer_id = None
            user.current_offer_progress = 0
            detached += 1

        await self._db.delete(offer)
        await flush_guarded(self._db, entity="Offer", identifier=offer_id)
        self._store.record_offer_event("deleted")
        logger.info("Deleted offer", offer_id=offer_id, detached_users=detached)

    async def ensure_default_offer(self, *, created_by: str = "system") -> Offer:
        """Create the active bootstrap offer targeted by legacy QR codes."""

        offer_id = settings.default_offer_id
        offer = await self._db.get(Offer, offer_id)
        if offer is not None:
            return offer

        timestamp = datetime.now(timezone.utc)
        offer = Offer(
            offer_id=offer_id,
            name=settings.default_offer_name,
            description=settings.default_offer_description,
            stamp_requirement=settings.default_offer_stamp_requirement,
            stamps_per_scan=settings.default_offer_stamps_per_scan,
            reward_type=settings.default_offer_reward_type,
            reward_value=settings.default_offer_reward_value,
            reward_description=settings.default_offer_reward_description,
            is_active=True,
            created_by=created_by,
            created_at=timestamp,
            updated_at=timestamp,
        )
        self._db.add(offer)
        await self._db.flush()
        logger.info("Created default offer", offer_id=offer_id)
        return offer

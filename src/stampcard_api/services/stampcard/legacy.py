"""Import of legacy single-offer user documents.

Early cards tracked one global ``purchases`` counter and a ``currentReward``
without an offer snapshot. Every such reward is attached to the default offer
so there is one reward model for old and new data alike.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

from loguru import logger
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from stampcard_api.models.offer import Offer
from stampcard_api.models.reward import Reward, ScanEvent, new_reward_id, new_scan_id
from stampcard_api.models.user import User, UserRoleEnum

from .cooldown import ensure_aware
from .offers import OfferRegistry


def parse_legacy_timestamp(value: Any) -> datetime | None:
    """Accept ISO strings, epoch milliseconds and ``{seconds, nanoseconds}`` maps."""

    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_aware(value)
    if isinstance(value, Mapping):
        seconds = value.get("seconds", value.get("_seconds"))
        if seconds is None:
            return None
        nanos = value.get("nanoseconds", value.get("_nanoseconds", 0)) or 0
        return datetime.fromtimestamp(int(seconds) + int(nanos) / 1_000_000_000, tz=timezone.utc)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    if isinstance(value, str):
        try:
            return ensure_aware(datetime.fromisoformat(value.replace("Z", "+00:00")))
        except ValueError:
            logger.warning("Unparseable legacy timestamp", value=value)
            return None
    return None


def _snapshot_from_document(document: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "offer_id": document.get("offerId"),
        "offer_name": document.get("offerName", ""),
        "description": document.get("description", ""),
        "stamp_requirement": int(document.get("stampRequirement") or 0),
        "reward_type": document.get("rewardType", ""),
        "reward_value": document.get("rewardValue", ""),
        "reward_description": document.get("rewardDescription", ""),
    }


def convert_reward(
    document: Mapping[str, Any],
    default_offer: Offer,
    purchase_limit: int | None = None,
) -> Reward:
    """Build a :class:`Reward` from a legacy reward map.

    Rewards without an offer snapshot take the default offer's terms. Their
    stamp requirement comes from the reward's ``settingsSnapshot.purchaseLimit``,
    then ``purchase_limit`` (the user's own limit), then the default offer.
    """

    raw_snapshot = document.get("offerSnapshot")
    if raw_snapshot and raw_snapshot.get("offerId"):
        snapshot = _snapshot_from_document(raw_snapshot)
    else:
        snapshot = default_offer.snapshot()
        settings_snapshot = document.get("settingsSnapshot") or {}
        limit = settings_snapshot.get("purchaseLimit") or purchase_limit
        if limit:
            snapshot["stamp_requirement"] = int(limit)

    created_at = parse_legacy_timestamp(document.get("createdAt"))
    history = []
    for sequence, event in enumerate(document.get("scanHistory") or []):
        timestamp = parse_legacy_timestamp(event.get("timestamp")) or created_at
        history.append(
            ScanEvent(
                scan_id=event.get("scanId") or new_scan_id(),
                sequence=sequence,
                scanned_by=event.get("scannedBy") or "unknown",
                scanned_by_email=event.get("scannedByEmail"),
                scanned_by_name=event.get("scannedByName"),
                stamps_earned=int(event.get("stampsEarned") or 1),
                timestamp=timestamp or datetime.now(timezone.utc),
            )
        )

    if created_at is None:
        created_at = history[0].timestamp if history else datetime.now(timezone.utc)

    return Reward(
        reward_id=document.get("rewardId") or new_reward_id(),
        offer_id=snapshot["offer_id"],
        offer_snapshot=snapshot,
        reward_type=document.get("rewardType") or snapshot["reward_type"],
        reward_value=document.get("rewardValue") or snapshot["reward_value"],
        reward_description=document.get("rewardDescription") or snapshot["reward_description"],
        claimed_at=parse_legacy_timestamp(document.get("claimedAt")),
        created_at=created_at,
        expires_at=parse_legacy_timestamp(document.get("expiresAt")),
        scan_history=history,
    )


def _legacy_rewards(document: Mapping[str, Any]) -> list[Mapping[str, Any]]:
    candidates: list[Mapping[str, Any]] = []
    for key in ("completedRewards", "rewards"):
        candidates.extend(document.get(key) or [])
    if document.get("currentReward"):
        candidates.append(document["currentReward"])

    seen: set[str] = set()
    unique: list[Mapping[str, Any]] = []
    for candidate in candidates:
        reward_id = candidate.get("rewardId")
        if reward_id and reward_id in seen:
            continue
        if reward_id:
            seen.add(reward_id)
        unique.append(candidate)
    return unique


@dataclass
class LegacyImportReport:
    imported: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    rewards: int = 0


class LegacyUserImporter:
    """Loads legacy user documents into users and per-offer rewards."""

    def __init__(self, db_session: AsyncSession) -> None:
        self._db = db_session
        self._registry = OfferRegistry(db_session)

    def convert_user(self, document: Mapping[str, Any], default_offer: Offer) -> User:
        user_id = document.get("id") or document.get("uid")
        email = (document.get("email") or "").strip().lower()
        if not user_id or not email:
            raise ValueError("Legacy user documents need an id and an email")

        role = document.get("role") or UserRoleEnum.CUSTOMER.value
        role = UserRoleEnum(role).value
        created_at = parse_legacy_timestamp(document.get("createdAt")) or datetime.now(timezone.utc)
        purchase_limit = document.get("purchaseLimit")
        rewards = [
            convert_reward(item, default_offer, purchase_limit)
            for item in _legacy_rewards(document)
        ]

        current_offer_id = document.get("currentOfferId")
        if not current_offer_id and rewards:
            current_offer_id = rewards[-1].offer_id
        in_progress = next(
            (reward for reward in rewards if reward.offer_id == current_offer_id and reward.is_in_progress),
            None,
        )

        return User(
            id=user_id,
            email=email,
            name=document.get("name"),
            role=role,
            current_offer_id=current_offer_id,
            current_offer_progress=in_progress.total_stamps_earned if in_progress else 0,
            purchases=int(document.get("purchases") or 0),
            last_scan_at=parse_legacy_timestamp(document.get("lastScanAt")),
            is_session_valid=False,
            created_at=created_at,
            updated_at=created_at,
            completed_rewards=rewards,
        )

    async def import_documents(self, documents: Iterable[Mapping[str, Any]]) -> LegacyImportReport:
        """Insert users that do not exist yet. Changes are flushed, not committed."""

        default_offer = await self._registry.ensure_default_offer(created_by="legacy-import")
        known_offers = {offer.offer_id for offer in await self._registry.list_offers()}
        report = LegacyImportReport()

        for document in documents:
            try:
                user = self.convert_user(document, default_offer)
            except ValueError as exc:
                document_id = document.get("id") or document.get("uid") or document.get("email") or "unknown"
                report.skipped.append(str(document_id))
                logger.warning("Skipped malformed legacy user", document_id=document_id, error=str(exc))
                continue
            existing = await self._db.execute(
                select(User.id).where(or_(User.id == user.id, User.email == user.email))
            )
            if existing.first() is not None:
                report.skipped.append(user.id)
                logger.info("Skipped existing legacy user", user_id=user.id)
                continue
            if user.current_offer_id and user.current_offer_id not in known_offers:
                user.current_offer_id = None
                user.current_offer_progress = 0

            self._db.add(user)
            await self._db.flush()
            report.imported.append(user.id)
            report.rewards += len(user.completed_rewards)
            logger.info(
                "Imported legacy user",
                user_id=user.id,
                rewards=len(user.completed_rewards),
            )

        return report

"""Response and request models shared by the stampcard endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from stampcard_api.models.offer import Offer
from stampcard_api.models.reward import Reward, ScanEvent
from stampcard_api.models.user import User
from stampcard_api.services.stampcard import CooldownState
from stampcard_api.services.stampcard.cooldown import ensure_aware


def _aware(value: datetime | None) -> datetime | None:
    return ensure_aware(value) if value is not None else None


class OfferResponse(BaseModel):
    offerId: str
    name: str
    description: str
    stampRequirement: int
    stampsPerScan: int
    rewardType: str
    rewardValue: str
    rewardDescription: str
    isActive: bool
    createdBy: str
    createdAt: datetime
    updatedAt: datetime
    expiresAt: Optional[datetime]


class OfferCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    stampRequirement: int = Field(..., ge=1)
    stampsPerScan: int = Field(1, ge=1)
    rewardType: str
    rewardValue: str = ""
    rewardDescription: str = ""
    expiresAt: Optional[datetime] = None


class OfferUpdateRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    stampRequirement: Optional[int] = None
    stampsPerScan: Optional[int] = None
    rewardType: Optional[str] = None
    rewardValue: Optional[str] = None
    rewardDescription: Optional[str] = None
    expiresAt: Optional[datetime] = None

    def to_patch(self) -> dict[str, Any]:
        mapping = {
            "name": "name",
            "description": "description",
            "stampRequirement": "stamp_requirement",
            "stampsPerScan": "stamps_per_scan",
            "rewardType": "reward_type",
            "rewardValue": "reward_value",
            "rewardDescription": "reward_description",
            "expiresAt": "expires_at",
        }
        provided = self.model_dump(exclude_unset=True)
        return {mapping[key]: value for key, value in provided.items()}


class OfferStatusRequest(BaseModel):
    isActive: bool


class ScanEventResponse(BaseModel):
    scanId: str
    scannedBy: str
    scannedByEmail: Optional[str]
    scannedByName: Optional[str]
    stampsEarned: int
    timestamp: datetime


class OfferSnapshotResponse(BaseModel):
    offerId: str
    offerName: str
    description: str
    stampRequirement: int
    rewardType: str
    rewardValue: str
    rewardDescription: str


class RewardResponse(BaseModel):
    rewardId: str
    userId: str
    offerId: str
    offerSnapshot: OfferSnapshotResponse
    rewardType: str
    rewardValue: str
    rewardDescription: str
    status: str
    totalStampsEarned: int
    stampRequirement: int
    isRedeemable: bool
    claimedAt: Optional[datetime]
    createdAt: datetime
    expiresAt: Optional[datetime]
    scanHistory: List[ScanEventResponse]


class UserResponse(BaseModel):
    id: str
    email: str
    name: Optional[str]
    role: str
    currentOfferId: Optional[str]
    currentOfferProgress: int
    purchases: int
    lastScanAt: Optional[datetime]
    lastLoginAt: Optional[datetime]
    createdAt: datetime


class CooldownResponse(BaseModel):
    canScan: bool
    hoursRemaining: int
    remainingSeconds: int
    remainingLabel: Optional[str]
    nextEligibleAt: Optional[datetime]
    lastScanAt: Optional[datetime]


class ScanRequest(BaseModel):
    userId: str = Field(..., min_length=1)
    offerId: Optional[str] = None


class RawScanRequest(BaseModel):
    payload: str = Field(..., description="Raw QR code contents")


class ScanResponse(BaseModel):
    userId: str
    offerId: str
    stampsEarned: int
    progress: int
    stampRequirement: int
    completed: bool
    newReward: bool
    reward: RewardResponse


class RawScanResponse(BaseModel):
    action: str
    scan: Optional[ScanResponse] = None
    redeemed: Optional[RewardResponse] = None


def serialize_offer(offer: Offer) -> OfferResponse:
    return OfferResponse(
        offerId=offer.offer_id,
        name=offer.name,
        description=offer.description or "",
        stampRequirement=int(offer.stamp_requirement),
        stampsPerScan=int(offer.stamps_per_scan or 1),
        rewardType=offer.reward_type,
        rewardValue=offer.reward_value or "",
        rewardDescription=offer.reward_description or "",
        isActive=bool(offer.is_active),
        createdBy=offer.created_by,
        createdAt=_aware(offer.created_at),
        updatedAt=_aware(offer.updated_at),
        expiresAt=_aware(offer.expires_at),
    )


def _serialize_scan(event: ScanEvent) -> ScanEventResponse:
    return ScanEventResponse(
        scanId=event.scan_id,
        scannedBy=event.scanned_by,
        scannedByEmail=event.scanned_by_email,
        scannedByName=event.scanned_by_name,
        stampsEarned=int(event.stamps_earned),
        timestamp=_aware(event.timestamp),
    )


def serialize_reward(reward: Reward) -> RewardResponse:
    snapshot = reward.offer_snapshot or {}
    return RewardResponse(
        rewardId=reward.reward_id,
        userId=reward.user_id,
        offerId=reward.offer_id,
        offerSnapshot=OfferSnapshotResponse(
            offerId=snapshot.get("offer_id") or reward.offer_id,
            offerName=snapshot.get("offer_name", ""),
            description=snapshot.get("description", ""),
            stampRequirement=int(snapshot.get("stamp_requirement", 0)),
            rewardType=snapshot.get("reward_type", ""),
            rewardValue=snapshot.get("reward_value", ""),
            rewardDescription=snapshot.get("reward_description", ""),
        ),
        rewardType=reward.reward_type,
        rewardValue=reward.reward_value or "",
        rewardDescription=reward.reward_description or "",
        status=reward.status.value,
        totalStampsEarned=reward.total_stamps_earned,
        stampRequirement=reward.stamp_requirement,
        isRedeemable=reward.is_redeemable,
        claimedAt=_aware(reward.claimed_at),
        createdAt=_aware(reward.created_at),
        expiresAt=_aware(reward.expires_at),
        scanHistory=[_serialize_scan(event) for event in reward.scan_history],
    )


def serialize_user(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
        currentOfferId=user.current_offer_id,
        currentOfferProgress=int(user.current_offer_progress or 0),
        purchases=int(user.purchases or 0),
        lastScanAt=_aware(user.last_scan_at),
        lastLoginAt=_aware(user.last_login_at),
        createdAt=_aware(user.created_at),
    )


def serialize_cooldown(state: CooldownState) -> CooldownResponse:
    return CooldownResponse(
        canScan=state.can_scan,
        hoursRemaining=state.hours_remaining,
        remainingSeconds=int(state.remaining.total_seconds()),
        remainingLabel=state.remaining_label,
        nextEligibleAt=state.next_eligible_at,
        lastScanAt=state.last_scan_at,
    )

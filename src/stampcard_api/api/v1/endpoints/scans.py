"""API endpoints for stamp scans."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from stampcard_api.api.dependencies.session import require_actor
from stampcard_api.api.errors import http_error
from stampcard_api.db.session import get_session
from stampcard_api.models.user import User
from stampcard_api.schemas.stampcard import (
    RawScanRequest,
    RawScanResponse,
    ScanRequest,
    ScanResponse,
    serialize_reward,
)
from stampcard_api.services.stampcard import (
    RewardService,
    ScanEngine,
    ScanOutcome,
    StampcardError,
    parse_scan_payload,
)


router = APIRouter(prefix="/scans", tags=["scans"])


def _serialize_outcome(outcome: ScanOutcome) -> ScanResponse:
    return ScanResponse(
        userId=outcome.user.id,
        offerId=outcome.offer.offer_id,
        stampsEarned=outcome.stamps_earned,
        progress=outcome.progress,
        stampRequirement=outcome.stamp_requirement,
        completed=outcome.completed,
        newReward=outcome.new_reward,
        reward=serialize_reward(outcome.reward),
    )


@router.post("", response_model=ScanResponse)
async def record_scan(
    request: ScanRequest,
    actor: User = Depends(require_actor),
    db: AsyncSession = Depends(get_session),
) -> ScanResponse:
    """Credit a stamp to ``userId`` against ``offerId`` or their current offer."""

    try:
        outcome = await ScanEngine(db).record_scan(actor, request.userId, request.offerId)
    except StampcardError as exc:
        raise http_error(exc) from exc
    await db.commit()
    return _serialize_outcome(outcome)


@router.post("/qr", response_model=RawScanResponse)
async def record_qr_scan(
    request: RawScanRequest,
    actor: User = Depends(require_actor),
    db: AsyncSession = Depends(get_session),
) -> RawScanResponse:
    """Handle the raw contents of a scanned customer QR code."""

    try:
        payload = parse_scan_payload(request.payload)
        if payload.is_redemption:
            reward = await RewardService(db).redeem(actor, payload.user_id, payload.reward_id)
            await db.commit()
            return RawScanResponse(action="redeem_reward", redeemed=serialize_reward(reward))
        outcome = await ScanEngine(db).record_scan(actor, payload.user_id, payload.offer_id)
    except StampcardError as exc:
        raise http_error(exc) from exc
    await db.commit()
    return RawScanResponse(action="scan", scan=_serialize_outcome(outcome))

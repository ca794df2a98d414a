"""API endpoints for merchant offers."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from stampcard_api.api.dependencies.session import require_actor
from stampcard_api.api.errors import http_error
from stampcard_api.db.session import get_session
from stampcard_api.models.user import User
from stampcard_api.schemas.stampcard import (
    OfferCreateRequest,
    OfferResponse,
    OfferStatusRequest,
    OfferUpdateRequest,
    serialize_offer,
)
from stampcard_api.services.stampcard import OfferDraft, OfferRegistry, StampcardError


router = APIRouter(prefix="/offers", tags=["offers"])


@router.get("", response_model=List[OfferResponse])
async def list_offers(
    active_only: bool = Query(False, alias="activeOnly"),
    _: User = Depends(require_actor),
    db: AsyncSession = Depends(get_session),
) -> List[OfferResponse]:
    """List offers; ``activeOnly`` returns those open to new collectors."""

    offers = await OfferRegistry(db).list_offers(active_only=active_only)
    return [serialize_offer(offer) for offer in offers]


@router.get("/{offer_id}", response_model=OfferResponse)
async def get_offer(
    offer_id: str,
    _: User = Depends(require_actor),
    db: AsyncSession = Depends(get_session),
) -> OfferResponse:
    try:
        offer = await OfferRegistry(db).get_offer(offer_id)
    except StampcardError as exc:
        raise http_error(exc) from exc
    return serialize_offer(offer)


@router.post("", response_model=OfferResponse, status_code=status.HTTP_201_CREATED)
async def create_offer(
    request: OfferCreateRequest,
    actor: User = Depends(require_actor),
    db: AsyncSession = Depends(get_session),
) -> OfferResponse:
    draft = OfferDraft(
        name=request.name,
        description=request.description,
        stamp_requirement=request.stampRequirement,
        stamps_per_scan=request.stampsPerScan,
        reward_type=request.rewardType,
        reward_value=request.rewardValue,
        reward_description=request.rewardDescription,
        expires_at=request.expiresAt,
    )
    try:
        offer = await OfferRegistry(db).create_offer(actor, draft)
    except StampcardError as exc:
        raise http_error(exc) from exc
    await db.commit()
    return serialize_offer(offer)


@router.patch("/{offer_id}", response_model=OfferResponse)
async def update_offer(
    offer_id: str,
    request: OfferUpdateRequest,
    actor: User = Depends(require_actor),
    db: AsyncSession = Depends(get_session),
) -> OfferResponse:
    try:
        offer = await OfferRegistry(db).update_offer(actor, offer_id, request.to_patch())
    except StampcardError as exc:
        raise http_error(exc) from exc
    await db.commit()
    return serialize_offer(offer)


@router.post("/{offer_id}/status", response_model=OfferResponse)
async def set_offer_status(
    offer_id: str,
    request: OfferStatusRequest,
    actor: User = Depends(require_actor),
    db: AsyncSession = Depends(get_session),
) -> OfferResponse:
    """Activate or deactivate an offer. Users already collecting keep going."""

    try:
        offer = await OfferRegistry(db).set_active(actor, offer_id, request.isActive)
    except StampcardError as exc:
        raise http_error(exc) from exc
    await db.commit()
    return serialize_offer(offer)


@router.delete("/{offer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_offer(
    offer_id: str,
    actor: User = Depends(require_actor),
    db: AsyncSession = Depends(get_session),
) -> Response:
    try:
        await OfferRegistry(db).delete_offer(actor, offer_id)
    except StampcardError as exc:
        raise http_error(exc) from exc
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)

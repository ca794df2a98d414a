"""Admin dashboard endpoints: analytics and full data reset."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from stampcard_api.api.dependencies.session import require_actor
from stampcard_api.api.errors import http_error
from stampcard_api.db.session import get_session
from stampcard_api.models.user import User
from stampcard_api.services.stampcard import (
    AccountService,
    StampcardAnalyticsService,
    StampcardError,
)


router = APIRouter(prefix="/admin", tags=["admin"])


class AnalyticsOverviewResponse(BaseModel):
    totalUsers: int
    customers: int
    admins: int
    activeCustomers: int
    totalRewards: int
    completedRewards: int
    redeemedRewards: int
    rewardsInProgress: int
    totalOffers: int
    activeOffers: int
    totalScans: int
    participationRate: float
    averageRewardsPerCustomer: float
    windowDays: int


class ResetResponse(BaseModel):
    removedUsers: int


@router.get("/analytics", response_model=AnalyticsOverviewResponse)
async def get_analytics_overview(
    actor: User = Depends(require_actor),
    db: AsyncSession = Depends(get_session),
) -> AnalyticsOverviewResponse:
    try:
        overview = await StampcardAnalyticsService(db).overview(actor)
    except StampcardError as exc:
        raise http_error(exc) from exc
    return AnalyticsOverviewResponse(
        totalUsers=overview.total_users,
        customers=overview.customers,
        admins=overview.admins,
        activeCustomers=overview.active_customers,
        totalRewards=overview.total_rewards,
        completedRewards=overview.completed_rewards,
        redeemedRewards=overview.redeemed_rewards,
        rewardsInProgress=overview.rewards_in_progress,
        totalOffers=overview.total_offers,
        activeOffers=overview.active_offers,
        totalScans=overview.total_scans,
        participationRate=overview.participation_rate,
        averageRewardsPerCustomer=overview.average_rewards_per_customer,
        windowDays=overview.window_days,
    )


@router.post("/reset", response_model=ResetResponse)
async def reset_all_data(
    actor: User = Depends(require_actor),
    db: AsyncSession = Depends(get_session),
) -> ResetResponse:
    """Delete every user except the acting super admin."""

    try:
        removed = await AccountService(db).reset_all_data(actor)
    except StampcardError as exc:
        raise http_error(exc) from exc
    await db.commit()
    return ResetResponse(removedUsers=removed)

"""API endpoints for users, their rewards and their scan cooldown."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from stampcard_api.api.dependencies.session import require_actor
from stampcard_api.api.errors import http_error
from stampcard_api.db.session import get_session
from stampcard_api.models.user import User, UserRoleEnum
from stampcard_api.schemas.stampcard import (
    CooldownResponse,
    RewardResponse,
    UserResponse,
    serialize_cooldown,
    serialize_reward,
    serialize_user,
)
from stampcard_api.services.stampcard import (
    AccountService,
    RewardService,
    StampcardError,
    cooldown_for_user,
)
from stampcard_api.services.stampcard.guards import require_self_or_admin


router = APIRouter(prefix="/users", tags=["users"])


class UserRegisterRequest(BaseModel):
    email: str = Field(..., min_length=3)
    name: Optional[str] = None
    userId: Optional[str] = Field(None, description="Identity provider uid to keep as the user id")


class RoleUpdateRequest(BaseModel):
    role: UserRoleEnum


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    request: UserRegisterRequest,
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    """Register a customer account with no progress."""

    try:
        user = await AccountService(db).register_user(
            request.email, request.name, user_id=request.userId
        )
    except StampcardError as exc:
        raise http_error(exc) from exc
    await db.commit()
    return serialize_user(user)


@router.get("", response_model=List[UserResponse])
async def list_users(
    actor: User = Depends(require_actor),
    db: AsyncSession = Depends(get_session),
) -> List[UserResponse]:
    try:
        users = await AccountService(db).list_users(actor)
    except StampcardError as exc:
        raise http_error(exc) from exc
    return [serialize_user(user) for user in users]


@router.get("/me", response_model=UserResponse)
async def get_current_user(actor: User = Depends(require_actor)) -> UserResponse:
    return serialize_user(actor)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    actor: User = Depends(require_actor),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    try:
        require_self_or_admin(actor, user_id, "view user profiles")
        user = await AccountService(db).get_user(user_id)
    except StampcardError as exc:
        raise http_error(exc) from exc
    return serialize_user(user)


@router.get("/{user_id}/cooldown", response_model=CooldownResponse)
async def get_user_cooldown(
    user_id: str,
    actor: User = Depends(require_actor),
    db: AsyncSession = Depends(get_session),
) -> CooldownResponse:
    """Countdown until the user may collect their next stamp."""

    try:
        require_self_or_admin(actor, user_id, "view scan cooldowns")
        user = await AccountService(db).get_user(user_id)
    except StampcardError as exc:
        raise http_error(exc) from exc
    return serialize_cooldown(cooldown_for_user(user, datetime.now(timezone.utc)))


@router.get("/{user_id}/rewards", response_model=List[RewardResponse])
async def list_user_rewards(
    user_id: str,
    actor: User = Depends(require_actor),
    db: AsyncSession = Depends(get_session),
) -> List[RewardResponse]:
    try:
        require_self_or_admin(actor, user_id, "view rewards")
        rewards = await RewardService(db).list_rewards(user_id)
    except StampcardError as exc:
        raise http_error(exc) from exc
    return [serialize_reward(reward) for reward in rewards]


@router.post("/{user_id}/rewards/{reward_id}/redeem", response_model=RewardResponse)
async def redeem_reward(
    user_id: str,
    reward_id: str,
    actor: User = Depends(require_actor),
    db: AsyncSession = Depends(get_session),
) -> RewardResponse:
    """Mark a completed reward as claimed. A second attempt is rejected."""

    try:
        reward = await RewardService(db).redeem(actor, user_id, reward_id)
    except StampcardError as exc:
        raise http_error(exc) from exc
    await db.commit()
    return serialize_reward(reward)


@router.put("/{user_id}/role", response_model=UserResponse)
async def update_user_role(
    user_id: str,
    request: RoleUpdateRequest,
    actor: User = Depends(require_actor),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    try:
        user = await AccountService(db).update_role(actor, user_id, request.role)
    except StampcardError as exc:
        raise http_error(exc) from exc
    await db.commit()
    return serialize_user(user)

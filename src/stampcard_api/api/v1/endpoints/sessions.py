"""Session bookkeeping for users signed in through the identity provider."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from stampcard_api.api.dependencies.security import require_admin_api_key
from stampcard_api.api.dependencies.session import require_actor
from stampcard_api.api.errors import http_error
from stampcard_api.db.session import get_session
from stampcard_api.models.user import User
from stampcard_api.schemas.stampcard import UserResponse, serialize_user
from stampcard_api.services.stampcard import AccountService, StampcardError


router = APIRouter(prefix="/sessions", tags=["sessions"])


class SessionStartRequest(BaseModel):
    userId: str = Field(..., min_length=1)


class SessionResponse(BaseModel):
    token: str
    user: UserResponse


@router.post(
    "",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin_api_key)],
)
async def start_session(
    request: SessionStartRequest,
    db: AsyncSession = Depends(get_session),
) -> SessionResponse:
    """Issue a session token after the identity provider has authenticated the user."""

    service = AccountService(db)
    try:
        token = await service.start_session(request.userId)
        user = await service.get_user(request.userId)
    except StampcardError as exc:
        raise http_error(exc) from exc
    await db.commit()
    return SessionResponse(token=token, user=serialize_user(user))


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def end_session(
    actor: User = Depends(require_actor),
    db: AsyncSession = Depends(get_session),
) -> Response:
    try:
        await AccountService(db).end_session(actor.id)
    except StampcardError as exc:
        raise http_error(exc) from exc
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)

"""Session-aware dependencies resolving the acting user."""

from __future__ import annotations

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from stampcard_api.db.session import get_session
from stampcard_api.models.user import User
from stampcard_api.services.stampcard import AccountService, InvalidSessionError


async def require_actor(
    session_user: str | None = Header(None, alias="X-Session-User"),
    session_token: str | None = Header(None, alias="X-Session-Token"),
    db: AsyncSession = Depends(get_session),
) -> User:
    """Resolve the signed-in user from forwarded session headers."""

    if not session_user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing session user context",
        )

    try:
        return await AccountService(db).validate_session(session_user, session_token)
    except InvalidSessionError as error:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=error.as_dict(),
        ) from error

"""User accounts, sessions and super-admin maintenance."""

from __future__ import annotations

import secrets
from datetime import datetime, timezone

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from stampcard_api.core.settings import settings
from stampcard_api.models.reward import Reward
from stampcard_api.models.user import User, UserRoleEnum

from .errors import DuplicateUserError, InvalidSessionError, UserNotFoundError
from .guards import flush_guarded, require_admin, require_super_admin


class AccountService:
    """Registration, session bookkeeping and role management."""

    def __init__(self, db_session: AsyncSession) -> None:
        self._db = db_session

    async def get_user(self, user_id: str) -> User:
        user = await self._db.get(User, user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    async def list_users(self, actor: User) -> list[User]:
        """All users, newest first."""

        require_admin(actor, "list users")
        stmt = select(User).order_by(User.created_at.desc(), User.id.asc())
        result = await self._db.execute(stmt)
        return list(result.scalars().all())

    async def register_user(
        self,
        email: str,
        name: str | None = None,
        *,
        user_id: str | None = None,
        role: UserRoleEnum = UserRoleEnum.CUSTOMER,
    ) -> User:
        """Create a user with no progress. ``user_id`` keeps identity-provider uids."""

        normalized = email.strip().lower()
        existing = await self._db.execute(select(User.id).where(User.email == normalized))
        if existing.scalar_one_or_none() is not None:
            raise DuplicateUserError(normalized)

        timestamp = datetime.now(timezone.utc)
        user = User(
            email=normalized,
            name=name,
            role=role.value,
            current_offer_id=None,
            current_offer_progress=0,
            purchases=0,
            is_session_valid=False,
            created_at=timestamp,
            updated_at=timestamp,
        )
        if user_id:
            user.id = user_id
        self._db.add(user)
        try:
            await self._db.flush()
        except IntegrityError as exc:
            await self._db.rollback()
            logger.warning("Detected race when registering user", email=normalized)
            raise DuplicateUserError(normalized) from exc

        logger.info("Registered user", user_id=user.id, role=user.role)
        return user

    async def start_session(self, user_id: str, *, now: datetime | None = None) -> str:
        """Issue a fresh session token; any earlier token stops validating."""

        user = await self.get_user(user_id)
        token = secrets.token_urlsafe(settings.session_token_bytes)
        timestamp = now or datetime.now(timezone.utc)
        user.session_token = token
        user.is_session_valid = True
        user.last_login_at = timestamp
        user.updated_at = timestamp
        await flush_guarded(self._db, entity="User", identifier=user_id)
        logger.info("Started session", user_id=user_id)
        return token

    async def end_session(self, user_id: str) -> None:
        user = await self.get_user(user_id)
        user.is_session_valid = False
        user.session_token = None
        user.updated_at = datetime.now(timezone.utc)
        await flush_guarded(self._db, entity="User", identifier=user_id)
        logger.info("Ended session", user_id=user_id)

    async def validate_session(self, user_id: str, token: str | None) -> User:
        """Return the user owning a live session, or raise :class:`InvalidSessionError`."""

        user = await self._db.get(User, user_id)
        if user is None:
            raise InvalidSessionError(user_id)
        if not token or not user.is_session_valid or not user.session_token:
            raise InvalidSessionError(user_id)
        if not secrets.compare_digest(user.session_token, token):
            raise InvalidSessionError(user_id)
        return user

    async def update_role(self, actor: User, user_id: str, role: UserRoleEnum) -> User:
        require_super_admin(actor, "update user roles")
        user = await self.get_user(user_id)
        previous = user.role
        user.role = UserRoleEnum(role).value
        user.updated_at = datetime.now(timezone.utc)
        await flush_guarded(self._db, entity="User", identifier=user_id)
        logger.info(
            "Updated user role",
            user_id=user_id,
            previous_role=previous,
            role=user.role,
            changed_by=actor.email,
        )
        return user

    async def reset_all_data(self, actor: User) -> int:
        """Delete every user and their rewards except the acting super admin.

        Returns the number of users removed.
        """

        require_super_admin(actor, "reset all data")
        stmt = (
            select(User)
            .options(selectinload(User.completed_rewards).selectinload(Reward.scan_history))
            .where(User.id != actor.id)
        )
        result = await self._db.execute(stmt)
        users = list(result.scalars().all())
        for user in users:
            await self._db.delete(user)
        await self._db.flush()
        logger.warning("Reset all stampcard data", removed_users=len(users), reset_by=actor.email)
        return len(users)

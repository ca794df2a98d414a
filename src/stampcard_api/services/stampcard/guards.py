"""Role checks and version-guarded flushes shared by the stampcard services."""

from __future__ import annotations

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from stampcard_api.models.user import User, UserRoleEnum

from .errors import ConcurrentModificationError, UnauthorizedError


def require_admin(actor: User, action: str) -> None:
    if not actor.is_admin:
        raise UnauthorizedError(f"Only admins can {action}", actor_id=actor.id, role=actor.role)


def require_super_admin(actor: User, action: str) -> None:
    if actor.role != UserRoleEnum.SUPER_ADMIN.value:
        raise UnauthorizedError(f"Only super admins can {action}", actor_id=actor.id, role=actor.role)


def require_self_or_admin(actor: User, user_id: str, action: str) -> None:
    if actor.id != user_id and not actor.is_admin:
        raise UnauthorizedError(
            f"Only the account owner or an admin can {action}",
            actor_id=actor.id,
            role=actor.role,
        )


async def flush_guarded(db: AsyncSession, *, entity: str, identifier: str) -> None:
    """Flush pending changes; a version mismatch rolls back and raises."""

    try:
        await db.flush()
    except StaleDataError as exc:
        await db.rollback()
        logger.warning(
            "Concurrent modification detected",
            entity=entity,
            identifier=identifier,
        )
        raise ConcurrentModificationError(entity, identifier) from exc

"""Domain errors raised by the stampcard services."""

from __future__ import annotations

from datetime import datetime
from typing import Any


class StampcardError(RuntimeError):
    """Base exception for stamp collection and reward failures."""

    code = "stampcard_error"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        for key, value in self.context.items():
            payload[key] = value.isoformat() if isinstance(value, datetime) else value
        return payload


class UnauthorizedError(StampcardError):
    """Raised when the acting identity lacks the role an operation requires."""

    code = "unauthorized"


class UserNotFoundError(StampcardError):
    code = "user_not_found"

    def __init__(self, user_id: str) -> None:
        super().__init__(f"User {user_id} not found", user_id=user_id)
        self.user_id = user_id


class OfferNotFoundError(StampcardError):
    code = "offer_not_found"

    def __init__(self, offer_id: str | None) -> None:
        message = f"Offer {offer_id} not found" if offer_id else "No offer selected for this scan"
        super().__init__(message, offer_id=offer_id)
        self.offer_id = offer_id


class OfferInactiveError(StampcardError):
    """Raised when a scan would start new progress on an inactive offer."""

    code = "offer_inactive"

    def __init__(self, offer_id: str) -> None:
        super().__init__(f"Offer {offer_id} is not active", offer_id=offer_id)
        self.offer_id = offer_id


class OfferActiveError(StampcardError):
    """Raised when editing or deleting an offer that is still active."""

    code = "offer_active"

    def __init__(self, offer_id: str, action: str) -> None:
        super().__init__(
            f"Offer {offer_id} must be deactivated before it can be {action}",
            offer_id=offer_id,
        )
        self.offer_id = offer_id


class OfferValidationError(StampcardError):
    code = "offer_invalid"


class OffersInUseError(StampcardError):
    """Raised when deleting an offer that users are still collecting against."""

    code = "offer_in_use"

    def __init__(self, offer_id: str, collectors: int) -> None:
        super().__init__(
            f"Cannot delete offer {offer_id}: {collectors} user(s) are collecting stamps on it",
            offer_id=offer_id,
            collectors=collectors,
        )
        self.offer_id = offer_id
        self.collectors = collectors


class AlreadyCompletedError(StampcardError):
    """Raised when a completed reward must be redeemed before a new cycle starts."""

    code = "reward_already_completed"

    def __init__(self, offer_id: str, reward_id: str) -> None:
        super().__init__(
            f"Reward {reward_id} for offer {offer_id} is complete and waiting to be redeemed",
            offer_id=offer_id,
            reward_id=reward_id,
        )
        self.offer_id = offer_id
        self.reward_id = reward_id


class RewardNotFoundError(StampcardError):
    code = "reward_not_found"

    def __init__(self, reward_id: str) -> None:
        super().__init__(f"Reward {reward_id} not found", reward_id=reward_id)
        self.reward_id = reward_id


class NotCompletedError(StampcardError):
    code = "reward_not_completed"

    def __init__(self, reward_id: str, earned: int, required: int) -> None:
        super().__init__(
            f"Reward {reward_id} has {earned} of {required} stamps",
            reward_id=reward_id,
            stamps_earned=earned,
            stamp_requirement=required,
        )
        self.reward_id = reward_id


class AlreadyClaimedError(StampcardError):
    code = "reward_already_claimed"

    def __init__(self, reward_id: str, claimed_at: datetime) -> None:
        super().__init__(
            f"Reward {reward_id} has already been redeemed",
            reward_id=reward_id,
            claimed_at=claimed_at,
        )
        self.reward_id = reward_id
        self.claimed_at = claimed_at


class CooldownActiveError(StampcardError):
    """Raised when a customer scans again before the next local midnight."""

    code = "cooldown_active"

    def __init__(self, last_scan_at: datetime, next_eligible_at: datetime, hours_remaining: int) -> None:
        super().__init__(
            f"You can collect your next stamp in {hours_remaining} hours. "
            f"Last scan was {last_scan_at.isoformat()}",
            last_scan_at=last_scan_at,
            next_eligible_at=next_eligible_at,
            hours_remaining=hours_remaining,
        )
        self.last_scan_at = last_scan_at
        self.retry_after = next_eligible_at
        self.hours_remaining = hours_remaining


class ConcurrentModificationError(StampcardError):
    """Raised when another writer changed the record between read and write."""

    code = "concurrent_modification"

    def __init__(self, entity: str, identifier: str) -> None:
        super().__init__(
            f"{entity} {identifier} was modified concurrently; retry the request",
            entity=entity,
            identifier=identifier,
        )


class InvalidScanPayloadError(StampcardError):
    code = "invalid_scan_payload"


class DuplicateUserError(StampcardError):
    code = "user_exists"

    def __init__(self, email: str) -> None:
        super().__init__(f"A user with email {email} already exists", email=email)
        self.email = email


class InvalidSessionError(StampcardError):
    """Raised when a session token is missing, stale or was logged out."""

    code = "invalid_session"

    def __init__(self, user_id: str) -> None:
        super().__init__("Session is not valid; sign in again", user_id=user_id)
        self.user_id = user_id

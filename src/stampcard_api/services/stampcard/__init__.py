"""Stampcard service exports."""

from .accounts import AccountService  # noqa: F401
from .analytics import StampcardAnalyticsService, StampcardOverview  # noqa: F401
from .cooldown import CooldownState, cooldown_for_user, derive_cooldown  # noqa: F401
from .errors import (  # noqa: F401
    AlreadyClaimedError,
    AlreadyCompletedError,
    ConcurrentModificationError,
    CooldownActiveError,
    DuplicateUserError,
    InvalidScanPayloadError,
    InvalidSessionError,
    NotCompletedError,
    OfferActiveError,
    OfferInactiveError,
    OfferNotFoundError,
    OffersInUseError,
    OfferValidationError,
    RewardNotFoundError,
    StampcardError,
    UnauthorizedError,
    UserNotFoundError,
)
from .legacy import LegacyImportReport, LegacyUserImporter  # noqa: F401
from .offers import EDITABLE_FIELDS, OfferDraft, OfferRegistry  # noqa: F401
from .payloads import ScanPayload, parse_scan_payload  # noqa: F401
from .redemption import RewardService  # noqa: F401
from .scans import ScanEngine, ScanOutcome  # noqa: F401

"""SQLAlchemy models package."""

from .offer import Offer, OfferRewardTypeEnum  # noqa: F401
from .reward import Reward, RewardStatusEnum, ScanEvent  # noqa: F401
from .user import ADMIN_ROLES, User, UserRoleEnum  # noqa: F401

"""Per-offer reward cycles and the scans that fill them."""

from __future__ import annotations

from enum import Enum
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from stampcard_api.db.base import Base
from stampcard_api.models.user import utcnow


def new_reward_id() -> str:
    return f"reward_{uuid4().hex}"


def new_scan_id() -> str:
    return f"scan_{uuid4().hex}"


class RewardStatusEnum(str, Enum):
    """Derived lifecycle state of a reward cycle."""

    IN_PROGRESS = "in_progress"
    REDEEMABLE = "redeemable"
    CLAIMED = "claimed"


class Reward(Base):
    """One collection cycle of a user against an offer.

    Progress is derived from ``scan_history``; nothing but ``claimed_at`` changes
    once the reward is complete.
    """

    __tablename__ = "stamp_rewards"

    reward_id = Column(String(64), primary_key=True, default=new_reward_id)
    user_id = Column(
        String(128),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Not a foreign key: a claimed reward outlives the offer it was collected against.
    offer_id = Column(String(64), nullable=False, index=True)
    offer_snapshot = Column(JSON, nullable=False)
    reward_type = Column(String(32), nullable=False)
    reward_value = Column(String, nullable=False, default="")
    reward_description = Column(String, nullable=False, default="")
    claimed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    version = Column(Integer, nullable=False)

    user = relationship("User", back_populates="completed_rewards")
    scan_history = relationship(
        "ScanEvent",
        back_populates="reward",
        cascade="all, delete-orphan",
        order_by="ScanEvent.sequence",
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def stamp_requirement(self) -> int:
        return int((self.offer_snapshot or {}).get("stamp_requirement", 0))

    @property
    def offer_name(self) -> str:
        return str((self.offer_snapshot or {}).get("offer_name", ""))

    @property
    def total_stamps_earned(self) -> int:
        return sum(int(scan.stamps_earned or 0) for scan in self.scan_history)

    @property
    def remaining_stamps(self) -> int:
        return max(self.stamp_requirement - self.total_stamps_earned, 0)

    @property
    def is_in_progress(self) -> bool:
        return self.claimed_at is None and self.total_stamps_earned < self.stamp_requirement

    @property
    def is_completed(self) -> bool:
        return self.total_stamps_earned >= self.stamp_requirement

    @property
    def is_redeemable(self) -> bool:
        return self.is_completed and self.claimed_at is None

    @property
    def status(self) -> RewardStatusEnum:
        if self.claimed_at is not None:
            return RewardStatusEnum.CLAIMED
        if self.is_completed:
            return RewardStatusEnum.REDEEMABLE
        return RewardStatusEnum.IN_PROGRESS


class ScanEvent(Base):
    """Append-only scan entry credited to a reward."""

    __tablename__ = "stamp_scan_events"
    __table_args__ = (
        UniqueConstraint("reward_id", "sequence", name="uq_stamp_scan_events_reward_sequence"),
    )

    scan_id = Column(String(64), primary_key=True, default=new_scan_id)
    reward_id = Column(
        String(64),
        ForeignKey("stamp_rewards.reward_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sequence = Column(Integer, nullable=False)
    scanned_by = Column(String, nullable=False)
    scanned_by_email = Column(String, nullable=True)
    scanned_by_name = Column(String, nullable=True)
    stamps_earned = Column(Integer, nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    reward = relationship("Reward", back_populates="scan_history")

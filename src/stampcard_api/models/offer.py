"""Merchant-defined stamp offers."""

from __future__ import annotations

from enum import Enum
from typing import Any
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text

from stampcard_api.db.base import Base
from stampcard_api.models.user import utcnow


def new_offer_id() -> str:
    return f"offer_{uuid4().hex}"


class OfferRewardTypeEnum(str, Enum):
    """Kinds of reward an offer can grant once its stamps are collected."""

    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"
    FREE_ITEM = "free_item"
    BUY_ONE_GET_ONE = "buy_one_get_one"


class Offer(Base):
    """Stamp offer. Born inactive; only inactive offers may be edited or deleted."""

    __tablename__ = "offers"

    offer_id = Column(String(64), primary_key=True, default=new_offer_id)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="", server_default="")
    stamp_requirement = Column(Integer, nullable=False)
    stamps_per_scan = Column(Integer, nullable=False, default=1, server_default="1")
    reward_type = Column(String(32), nullable=False)
    reward_value = Column(String, nullable=False, default="", server_default="")
    reward_description = Column(String, nullable=False, default="", server_default="")
    is_active = Column(Boolean, nullable=False, default=False, server_default="false")
    created_by = Column(String, nullable=False, default="system", server_default="system")
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def snapshot(self) -> dict[str, Any]:
        """Copy of the rules a reward is collected against."""

        return {
            "offer_id": self.offer_id,
            "offer_name": self.name,
            "description": self.description or "",
            "stamp_requirement": int(self.stamp_requirement),
            "reward_type": self.reward_type,
            "reward_value": self.reward_value or "",
            "reward_description": self.reward_description or "",
        }

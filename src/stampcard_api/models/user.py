from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from stampcard_api.db.base import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserRoleEnum(str, Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


ADMIN_ROLES = frozenset({UserRoleEnum.ADMIN.value, UserRoleEnum.SUPER_ADMIN.value})


class User(Base):
    __tablename__ = "users"

    id = Column(String(128), primary_key=True, default=lambda: str(uuid4()))
    email = Column(String, nullable=False, unique=True, index=True)
    name = Column(String, nullable=True)
    role = Column(
        String(length=16),
        nullable=False,
        default=UserRoleEnum.CUSTOMER.value,
        server_default=UserRoleEnum.CUSTOMER.value,
    )

    current_offer_id = Column(
        String(64),
        ForeignKey("offers.offer_id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    current_offer_progress = Column(Integer, nullable=False, default=0, server_default="0")
    purchases = Column(Integer, nullable=False, default=0, server_default="0")
    last_scan_at = Column(DateTime(timezone=True), nullable=True)

    session_token = Column(String(128), nullable=True)
    is_session_valid = Column(Boolean, nullable=False, default=False, server_default="false")
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    version = Column(Integer, nullable=False)

    completed_rewards = relationship(
        "Reward",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="Reward.created_at",
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    @property
    def display_label(self) -> str:
        if self.name:
            return f"{self.name} ({self.email})"
        return self.email

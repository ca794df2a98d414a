"""Initial stampcard tables.

Revision ID: 20261019_01
Revises:
Create Date: 2026-10-19
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261019_01"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    reward_type_check = sa.CheckConstraint(
        "reward_type IN ('percentage','fixed_amount','free_item','buy_one_get_one')",
        name="ck_offers_reward_type_valid",
    )
    role_check = sa.CheckConstraint(
        "role IN ('customer','admin','super_admin')",
        name="ck_users_role_valid",
    )

    op.create_table(
        "offers",
        sa.Column("offer_id", sa.String(length=64), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("stamp_requirement", sa.Integer(), nullable=False),
        sa.Column("stamps_per_scan", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("reward_type", sa.String(length=32), nullable=False),
        sa.Column("reward_value", sa.String(), nullable=False, server_default=""),
        sa.Column("reward_description", sa.String(), nullable=False, server_default=""),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_by", sa.String(), nullable=False, server_default="system"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.CheckConstraint("stamp_requirement >= 1", name="ck_offers_stamp_requirement_positive"),
        sa.CheckConstraint("stamps_per_scan >= 1", name="ck_offers_stamps_per_scan_positive"),
        reward_type_check,
    )

    op.create_table(
        "users",
        sa.Column("id", sa.String(length=128), primary_key=True),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("role", sa.String(length=16), nullable=False, server_default="customer"),
        sa.Column(
            "current_offer_id",
            sa.String(length=64),
            sa.ForeignKey("offers.offer_id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("current_offer_progress", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("purchases", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_scan_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("session_token", sa.String(length=128), nullable=True),
        sa.Column("is_session_valid", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        role_check,
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_current_offer_id", "users", ["current_offer_id"])

    op.create_table(
        "stamp_rewards",
        sa.Column("reward_id", sa.String(length=64), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(length=128),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("offer_id", sa.String(length=64), nullable=False),
        sa.Column("offer_snapshot", sa.JSON(), nullable=False),
        sa.Column("reward_type", sa.String(length=32), nullable=False),
        sa.Column("reward_value", sa.String(), nullable=False, server_default=""),
        sa.Column("reward_description", sa.String(), nullable=False, server_default=""),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
    )
    op.create_index("ix_stamp_rewards_user_id", "stamp_rewards", ["user_id"])
    op.create_index("ix_stamp_rewards_offer_id", "stamp_rewards", ["offer_id"])

    op.create_table(
        "stamp_scan_events",
        sa.Column("scan_id", sa.String(length=64), primary_key=True),
        sa.Column(
            "reward_id",
            sa.String(length=64),
            sa.ForeignKey("stamp_rewards.reward_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("scanned_by", sa.String(), nullable=False),
        sa.Column("scanned_by_email", sa.String(), nullable=True),
        sa.Column("scanned_by_name", sa.String(), nullable=True),
        sa.Column("stamps_earned", sa.Integer(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("reward_id", "sequence", name="uq_stamp_scan_events_reward_sequence"),
    )
    op.create_index("ix_stamp_scan_events_reward_id", "stamp_scan_events", ["reward_id"])


def downgrade() -> None:
    op.drop_index("ix_stamp_scan_events_reward_id", table_name="stamp_scan_events")
    op.drop_table("stamp_scan_events")
    op.drop_index("ix_stamp_rewards_offer_id", table_name="stamp_rewards")
    op.drop_index("ix_stamp_rewards_user_id", table_name="stamp_rewards")
    op.drop_table("stamp_rewards")
    op.drop_index("ix_users_current_offer_id", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
    op.drop_table("offers")

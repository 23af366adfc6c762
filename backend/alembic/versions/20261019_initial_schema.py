"""Initial partner portal schema

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

Creates:
- channel_partners: Referring organizations and their referral codes
- partner_users: Role, partner link and points per identity-store user
- referral_submissions: Referred leads
- raffles / raffle_entries: Point-funded prize drawings
- activity_log: Audit trail
- site_media: Marketing asset URLs
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create partner portal tables."""

    # Channel partners
    op.create_table(
        "channel_partners",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("company_name", sa.String(255), nullable=False),
        sa.Column("contact_name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("website", sa.String(500), nullable=True),
        sa.Column("referral_code", sa.String(50), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("commission_rate", sa.Numeric(5, 2), nullable=False, server_default="10.00"),
        sa.Column("total_referrals", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_conversions", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_revenue", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("approved_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_channel_partners_referral_code", "channel_partners", ["referral_code"], unique=True)

    # Partner users (role + points)
    op.create_table(
        "partner_users",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("partner_id", sa.String(36), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="viewer"),
        sa.Column("points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["partner_id"], ["channel_partners.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("points >= 0", name="ck_partner_users_points_non_negative"),
    )
    op.create_index("ix_partner_users_user_id", "partner_users", ["user_id"], unique=True)
    op.create_index("ix_partner_users_partner_id", "partner_users", ["partner_id"])

    # Referral submissions
    op.create_table(
        "referral_submissions",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("partner_id", sa.String(36), nullable=True),
        sa.Column("referral_code", sa.String(50), nullable=True),
        sa.Column("submitted_by_user_id", sa.String(64), nullable=True),
        sa.Column("lead_name", sa.String(255), nullable=False),
        sa.Column("lead_email", sa.String(255), nullable=False),
        sa.Column("lead_phone", sa.String(50), nullable=True),
        sa.Column("lead_company", sa.String(255), nullable=True),
        sa.Column("lead_job_title", sa.String(255), nullable=True),
        sa.Column("lead_industry", sa.String(100), nullable=True),
        sa.Column("lead_company_size", sa.String(50), nullable=True),
        sa.Column("lead_budget_range", sa.String(50), nullable=True),
        sa.Column("lead_timeline", sa.String(50), nullable=True),
        sa.Column("lead_pain_points", sa.Text(), nullable=True),
        sa.Column("lead_linkedin_url", sa.String(500), nullable=True),
        sa.Column("lead_message", sa.Text(), nullable=True),
        sa.Column("submission_source", sa.String(20), nullable=False),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("user_agent", sa.String(500), nullable=True),
        sa.Column("utm_source", sa.String(255), nullable=True),
        sa.Column("utm_medium", sa.String(255), nullable=True),
        sa.Column("utm_campaign", sa.String(255), nullable=True),
        sa.Column("is_authenticated", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_accounted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("status", sa.String(20), nullable=False, server_default="new"),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.Column("conversion_value", sa.Numeric(12, 2), nullable=True),
        sa.Column("quality_score", sa.Integer(), nullable=True),
        sa.Column("contacted_at", sa.DateTime(), nullable=True),
        sa.Column("converted_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["partner_id"], ["channel_partners.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_referral_submissions_partner_id", "referral_submissions", ["partner_id"])
    op.create_index(
        "ix_referral_submissions_submitted_by_user_id", "referral_submissions", ["submitted_by_user_id"]
    )
    op.create_index("ix_referral_submissions_status", "referral_submissions", ["status"])
    op.create_index("ix_referral_submissions_created_at", "referral_submissions", ["created_at"])

    # Raffles
    op.create_table(
        "raffles",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("entry_cost_points", sa.Integer(), nullable=False),
        sa.Column("max_entries", sa.Integer(), nullable=False),
        sa.Column("entry_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("image_url", sa.String(1000), nullable=True),
        sa.Column("created_by", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("entry_cost_points > 0", name="ck_raffles_entry_cost_positive"),
        sa.CheckConstraint("max_entries > 0", name="ck_raffles_max_entries_positive"),
        sa.CheckConstraint("entry_count <= max_entries", name="ck_raffles_entry_count_within_capacity"),
    )
    op.create_index("ix_raffles_created_at", "raffles", ["created_at"])

    # Raffle entries (several per user allowed)
    op.create_table(
        "raffle_entries",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("raffle_id", sa.String(36), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("points_spent", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["raffle_id"], ["raffles.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_raffle_entries_raffle_id", "raffle_entries", ["raffle_id"])
    op.create_index("ix_raffle_entries_user_id", "raffle_entries", ["user_id"])

    # Activity log
    op.create_table(
        "activity_log",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=True),
        sa.Column("partner_id", sa.String(36), nullable=True),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("entity_type", sa.String(100), nullable=True),
        sa.Column("entity_id", sa.String(64), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_activity_log_entity", "activity_log", ["entity_type", "entity_id"])

    # Site media
    op.create_table(
        "site_media",
        sa.Column("key", sa.String(100), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("key"),
    )


def downgrade() -> None:
    """Drop partner portal tables."""
    op.drop_table("site_media")
    op.drop_index("ix_activity_log_entity", table_name="activity_log")
    op.drop_table("activity_log")
    op.drop_index("ix_raffle_entries_user_id", table_name="raffle_entries")
    op.drop_index("ix_raffle_entries_raffle_id", table_name="raffle_entries")
    op.drop_table("raffle_entries")
    op.drop_index("ix_raffles_created_at", table_name="raffles")
    op.drop_table("raffles")
    op.drop_index("ix_referral_submissions_created_at", table_name="referral_submissions")
    op.drop_index("ix_referral_submissions_status", table_name="referral_submissions")
    op.drop_index("ix_referral_submissions_submitted_by_user_id", table_name="referral_submissions")
    op.drop_index("ix_referral_submissions_partner_id", table_name="referral_submissions")
    op.drop_table("referral_submissions")
    op.drop_index("ix_partner_users_partner_id", table_name="partner_users")
    op.drop_index("ix_partner_users_user_id", table_name="partner_users")
    op.drop_table("partner_users")
    op.drop_index("ix_channel_partners_referral_code", table_name="channel_partners")
    op.drop_table("channel_partners")

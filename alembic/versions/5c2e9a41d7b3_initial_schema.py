"""Initial schema: profiles, content, stars, special events, settings, audit

Revision ID: 5c2e9a41d7b3
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "5c2e9a41d7b3"
down_revision = None
branch_labels = None
depends_on = None


def _content_table(name: str) -> None:
    op.create_table(
        name,
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "user_id", sa.String(36),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("submission_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("approved", sa.Boolean(), nullable=True),
        sa.Column("stars_received", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("points_awarded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(f"ix_{name}_submission_date", name, ["submission_date"])
    op.create_index(f"ix_{name}_user", name, ["user_id"])


def upgrade() -> None:
    op.create_table(
        "profiles",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="member"),
        sa.Column("score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_profiles_score_desc", "profiles", ["score"])

    _content_table("posts")
    _content_table("submissions")

    op.create_table(
        "stars",
        sa.Column(
            "profile_id", sa.String(36),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column("content_id", sa.String(36), primary_key=True),
        sa.Column("content_kind", sa.String(20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_stars_content", "stars", ["content_id"])

    op.create_table(
        "special_events",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("anchor_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("start_time", sa.String(8), nullable=True),
        sa.Column("end_time", sa.String(8), nullable=True),
        sa.Column("bonus_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_recurring", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("recurring_interval_days", sa.Integer(), nullable=True),
        sa.Column("recurring_end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("show_notification", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("notification_message", sa.Text(), nullable=True),
        sa.Column(
            "parent_event_id", sa.String(36),
            sa.ForeignKey("special_events.id", ondelete="CASCADE"), nullable=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("bonus_points >= 0", name="ck_special_events_bonus_nonneg"),
        sa.CheckConstraint(
            "NOT is_recurring OR recurring_interval_days >= 1",
            name="ck_special_events_interval",
        ),
    )
    op.create_index(
        "ix_special_events_parent", "special_events", ["parent_event_id", "anchor_date"],
    )
    op.create_index("ix_special_events_anchor", "special_events", ["anchor_date"])

    op.create_table(
        "settings",
        sa.Column("key", sa.String(100), primary_key=True),
        sa.Column("value_json", sa.Text(), nullable=False),
        sa.Column("category", sa.String(50), nullable=False, server_default="general"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "admin_log",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("actor_id", sa.String(36), nullable=False),
        sa.Column("action_type", sa.String(50), nullable=False),
        sa.Column("target_table", sa.String(50), nullable=False),
        sa.Column("target_id", sa.String(100), nullable=True),
        sa.Column("before_snapshot", postgresql.JSONB(), nullable=True),
        sa.Column("after_snapshot", postgresql.JSONB(), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_admin_log_actor_time", "admin_log", ["actor_id", "timestamp"])
    op.create_index(
        "ix_admin_log_target", "admin_log", ["target_table", "target_id", "timestamp"],
    )


def downgrade() -> None:
    op.drop_table("admin_log")
    op.drop_table("settings")
    op.drop_index("ix_special_events_anchor", table_name="special_events")
    op.drop_index("ix_special_events_parent", table_name="special_events")
    op.drop_table("special_events")
    op.drop_table("stars")
    op.drop_table("submissions")
    op.drop_table("posts")
    op.drop_table("profiles")

"""
starboard.database.models — SQLAlchemy 2.0 Data Models
=======================================================

Tables:
- profiles        — Community member profiles (auth subject PK) with score
- posts           — Dated member posts (content items)
- submissions     — Dated member submissions (same shape as posts)
- stars           — One row per (profile, content item) appreciation
- special_events  — Admin-defined bonus events, parents and generated children
- settings        — Admin-configurable gameplay tuning (key → JSON)
- admin_log       — Append-only audit trail of admin mutations
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Starboard ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class ContentKind(enum.StrEnum):
    """The two parallel content tables that can be starred and approved."""
    POST = "post"
    SUBMISSION = "submission"


class Role(enum.StrEnum):
    MEMBER = "member"
    ADMIN = "admin"


class AdminActionType(enum.StrEnum):
    """Categories of admin mutations recorded in admin_log."""
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    MODERATE = "MODERATE"
    MAINTENANCE = "MAINTENANCE"


# ---------------------------------------------------------------------------
# Profile — one row per member
# ---------------------------------------------------------------------------
class Profile(Base):
    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=Role.MEMBER.value)
    score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    stars: Mapped[list[Star]] = relationship(
        back_populates="profile", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_profiles_score_desc", "score"),
    )

    @property
    def starred_submissions(self) -> set[str]:
        """Ids of every content item this profile currently has starred."""
        return {star.content_id for star in self.stars}

    def __repr__(self) -> str:
        return f"<Profile id={self.id} name={self.name!r} score={self.score}>"


# ---------------------------------------------------------------------------
# Content items — posts and submissions share one shape
# ---------------------------------------------------------------------------
class ContentMixin:
    """Columns shared by :class:`Post` and :class:`Submission`.

    ``approved`` is tri-state: ``None`` pending, ``True`` approved,
    ``False`` rejected.  ``points_awarded_at`` is set exactly once, in
    the same transaction that credits the author's approval points.
    """

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    summary: Mapped[str | None] = mapped_column(Text, default=None)
    submission_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    approved: Mapped[bool | None] = mapped_column(Boolean, nullable=True, default=None)
    stars_received: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    points_awarded_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class Post(ContentMixin, Base):
    __tablename__ = "posts"

    kind = ContentKind.POST

    __table_args__ = (
        Index("ix_posts_submission_date", "submission_date"),
        Index("ix_posts_user", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<Post id={self.id} user={self.user_id} approved={self.approved}>"


class Submission(ContentMixin, Base):
    __tablename__ = "submissions"

    kind = ContentKind.SUBMISSION

    __table_args__ = (
        Index("ix_submissions_submission_date", "submission_date"),
        Index("ix_submissions_user", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<Submission id={self.id} user={self.user_id} approved={self.approved}>"


CONTENT_MODELS: dict[ContentKind, type[Post] | type[Submission]] = {
    ContentKind.POST: Post,
    ContentKind.SUBMISSION: Submission,
}


# ---------------------------------------------------------------------------
# Star — a profile's appreciation of one content item
# ---------------------------------------------------------------------------
class Star(Base):
    """Backs ``Profile.starred_submissions``.

    Content ids are UUIDs, so one column addresses both content tables;
    ``content_kind`` records which one.
    """
    __tablename__ = "stars"

    profile_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True
    )
    content_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    content_kind: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    profile: Mapped[Profile] = relationship(back_populates="stars")

    __table_args__ = (
        Index("ix_stars_content", "content_id"),
    )

    def __repr__(self) -> str:
        return f"<Star profile={self.profile_id} content={self.content_id}>"


# ---------------------------------------------------------------------------
# SpecialEvent — bonus events (parents) and materialized occurrences (children)
# ---------------------------------------------------------------------------
class SpecialEvent(Base):
    """An admin-defined bonus event.

    Parents have ``parent_event_id IS NULL`` and are the only rows that
    take part in activation.  Children are materialized future
    occurrences of a recurring parent, kept for listings only.
    """
    __tablename__ = "special_events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    anchor_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    start_time: Mapped[str | None] = mapped_column(String(8), default=None)
    end_time: Mapped[str | None] = mapped_column(String(8), default=None)
    bonus_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_recurring: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    recurring_interval_days: Mapped[int | None] = mapped_column(Integer, default=None)
    recurring_end_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )
    show_notification: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notification_message: Mapped[str | None] = mapped_column(Text, default=None)
    parent_event_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("special_events.id", ondelete="CASCADE"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("ix_special_events_parent", "parent_event_id", "anchor_date"),
        Index("ix_special_events_anchor", "anchor_date"),
        CheckConstraint("bonus_points >= 0", name="ck_special_events_bonus_nonneg"),
        CheckConstraint(
            "NOT is_recurring OR recurring_interval_days >= 1",
            name="ck_special_events_interval",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<SpecialEvent id={self.id} name={self.name!r} "
            f"recurring={self.is_recurring} parent={self.parent_event_id}>"
        )


# ---------------------------------------------------------------------------
# Setting — admin-configurable key-value store
# ---------------------------------------------------------------------------
class Setting(Base):
    """Key-value configuration store.

    Gameplay tuning knobs (base points, points per star, instance
    maintenance) live here so admins can adjust them without redeploying.
    Values are stored as JSON strings; typed accessors live in
    :class:`~starboard.engine.cache.ConfigCache`.
    """
    __tablename__ = "settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value_json: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False, default="general")
    description: Mapped[str | None] = mapped_column(Text, default=None)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<Setting key={self.key!r} category={self.category!r}>"


# ---------------------------------------------------------------------------
# AdminLog — append-only audit trail
# ---------------------------------------------------------------------------
class AdminLog(Base):
    __tablename__ = "admin_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    actor_id: Mapped[str] = mapped_column(String(36), nullable=False)
    action_type: Mapped[str] = mapped_column(String(50), nullable=False)
    target_table: Mapped[str] = mapped_column(String(50), nullable=False)
    target_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    before_snapshot: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    after_snapshot: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_admin_log_actor_time", "actor_id", "timestamp"),
        Index("ix_admin_log_target", "target_table", "target_id", "timestamp"),
    )

    def __repr__(self) -> str:
        return f"<AdminLog id={self.id} actor={self.actor_id} action={self.action_type}>"

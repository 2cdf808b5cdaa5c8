"""ORM models for the review subsystem.

Every table carries a ``list_variant`` column: the classic and platformer
leaderboards share one schema and one engine instead of parallel copies.
Status-like columns are stored as plain strings holding enum values.
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
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from levelboard.db.base import Base


class ListVariant(str, enum.Enum):
    """Which leaderboard a row belongs to."""

    CLASSIC = "classic"
    PLATFORMER = "platformer"


class SubmissionStatus(str, enum.Enum):
    PENDING = "pending"
    CLAIMED = "claimed"
    UNDER_CONSIDERATION = "under_consideration"
    DENIED = "denied"
    # Only ever written to history; accepted submissions are deleted.
    ACCEPTED = "accepted"


class ShiftStatus(str, enum.Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    EXPIRED = "expired"


class Weekday(str, enum.Enum):
    """Ordered Monday-first to match ``date.weekday()``."""

    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def from_index(cls, index: int) -> Weekday:
        return list(cls)[index]


class NotificationType(str, enum.Enum):
    INFO = "info"
    SUCCESS = "success"
    FAILURE = "failure"


# ---------------------------------------------------------------------------
# Levels (owned by the levels service; read-only here)
# ---------------------------------------------------------------------------


class Level(Base):
    """A leaderboard level, consulted for intake rules and notification text."""

    __tablename__ = "levels"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    list_variant: Mapped[str] = mapped_column(String(16), nullable=False)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    legacy: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


# ---------------------------------------------------------------------------
# Submissions
# ---------------------------------------------------------------------------


class Submission(Base):
    """A completion awaiting review. Deleted when accepted."""

    __tablename__ = "submissions"
    __table_args__ = (
        UniqueConstraint("list_variant", "submitted_by", "level_id", name="uq_submissions_user_level"),
        CheckConstraint(
            "(status = 'pending') = (reviewer_id IS NULL)",
            name="reviewer_matches_status",
        ),
        Index("ix_submissions_queue", "list_variant", "status", "priority", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    list_variant: Mapped[str] = mapped_column(String(16), nullable=False)
    level_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("levels.id", ondelete="CASCADE"), nullable=False)
    submitted_by: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    mobile: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    ldm_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    video_url: Mapped[str] = mapped_column(Text, nullable=False)
    raw_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    mod_menu: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    priority: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=SubmissionStatus.PENDING.value)
    reviewer_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    reviewer_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    private_reviewer_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    completion_time: Mapped[int | None] = mapped_column(Integer, nullable=True)
    locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class Record(Base):
    """An accepted, standing completion for a (user, level) pair."""

    __tablename__ = "records"
    __table_args__ = (
        UniqueConstraint("list_variant", "submitted_by", "level_id", name="uq_records_user_level"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    list_variant: Mapped[str] = mapped_column(String(16), nullable=False)
    level_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("levels.id", ondelete="CASCADE"), nullable=False)
    submitted_by: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    mobile: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    ldm_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    video_url: Mapped[str] = mapped_column(Text, nullable=False)
    raw_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    mod_menu: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewer_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    reviewer_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    completion_time: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_verification: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class SubmissionHistory(Base):
    """Append-only audit trail. ``submission_id`` is kept by value, not as a foreign key."""

    __tablename__ = "submission_history"
    __table_args__ = (
        Index("ix_submission_history_submission", "submission_id", "timestamp"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    list_variant: Mapped[str] = mapped_column(String(16), nullable=False)
    submission_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    record_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    reviewer_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewer_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class SubmissionsEnabled(Base):
    """Append-only toggle log; the newest row per variant wins."""

    __tablename__ = "submissions_enabled"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    list_variant: Mapped[str] = mapped_column(String(16), nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False)
    moderator_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Shifts
# ---------------------------------------------------------------------------


class Shift(Base):
    """A reviewer's time-boxed review quota."""

    __tablename__ = "shifts"
    __table_args__ = (
        UniqueConstraint("list_variant", "user_id", "start_at", name="uq_shifts_user_start"),
        CheckConstraint("target_count > 0", name="target_positive"),
        CheckConstraint("completed_count >= 0", name="completed_non_negative"),
        CheckConstraint("end_at > start_at", name="window_ordered"),
        Index("ix_shifts_user_status", "user_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    list_variant: Mapped[str] = mapped_column(String(16), nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    target_count: Mapped[int] = mapped_column(Integer, nullable=False)
    completed_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    start_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=ShiftStatus.RUNNING.value)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class RecurringShift(Base):
    """Weekly template expanded into concrete shifts by the generator."""

    __tablename__ = "recurring_shifts"
    __table_args__ = (
        CheckConstraint("start_hour >= 0 AND start_hour <= 23", name="start_hour_range"),
        CheckConstraint("duration > 0", name="duration_positive"),
        CheckConstraint("target_count > 0", name="target_positive"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    list_variant: Mapped[str] = mapped_column(String(16), nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    weekday: Mapped[str] = mapped_column(String(16), nullable=False)
    start_hour: Mapped[int] = mapped_column(Integer, nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    target_count: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class Notification(Base):
    """Per-user notification, delivered later over WebSocket."""

    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_user_created", "user_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    notification_type: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

"""Review queue: levels, submissions, records, history, gate, shifts, notifications.

Revision ID: 001_review_tables
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_review_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Levels (owned by the levels service; created here if absent) ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS levels (
            id UUID PRIMARY KEY,
            list_variant VARCHAR(16) NOT NULL,
            name VARCHAR(128) NOT NULL,
            position INTEGER NOT NULL,
            legacy BOOLEAN NOT NULL DEFAULT false
        )
    """)

    # --- Submissions ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS submissions (
            id UUID PRIMARY KEY,
            list_variant VARCHAR(16) NOT NULL,
            level_id UUID NOT NULL REFERENCES levels(id) ON DELETE CASCADE,
            submitted_by UUID NOT NULL,
            mobile BOOLEAN NOT NULL DEFAULT false,
            ldm_id INTEGER,
            video_url TEXT NOT NULL,
            raw_url TEXT,
            mod_menu VARCHAR(64),
            user_notes TEXT,
            priority BOOLEAN NOT NULL DEFAULT false,
            status VARCHAR(32) NOT NULL DEFAULT 'pending',
            reviewer_id UUID,
            reviewer_notes TEXT,
            private_reviewer_notes TEXT,
            completion_time INTEGER,
            locked BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_submissions_user_level UNIQUE (list_variant, submitted_by, level_id),
            CONSTRAINT ck_submissions_reviewer_matches_status
                CHECK ((status = 'pending') = (reviewer_id IS NULL))
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_submissions_queue
        ON submissions(list_variant, status, priority, created_at)
    """)

    # --- Records ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS records (
            id UUID PRIMARY KEY,
            list_variant VARCHAR(16) NOT NULL,
            level_id UUID NOT NULL REFERENCES levels(id) ON DELETE CASCADE,
            submitted_by UUID NOT NULL,
            mobile BOOLEAN NOT NULL DEFAULT false,
            ldm_id INTEGER,
            video_url TEXT NOT NULL,
            raw_url TEXT,
            mod_menu VARCHAR(64),
            user_notes TEXT,
            reviewer_id UUID,
            reviewer_notes TEXT,
            completion_time INTEGER,
            is_verification BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_records_user_level UNIQUE (list_variant, submitted_by, level_id)
        )
    """)

    # --- Submission history (no FK: outlives the submission) ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS submission_history (
            id UUID PRIMARY KEY,
            list_variant VARCHAR(16) NOT NULL,
            submission_id UUID NOT NULL,
            record_id UUID,
            status VARCHAR(32) NOT NULL,
            reviewer_notes TEXT,
            user_notes TEXT,
            reviewer_id UUID,
            timestamp TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_submission_history_submission
        ON submission_history(submission_id, timestamp)
    """)

    # --- Submissions gate ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS submissions_enabled (
            id UUID PRIMARY KEY,
            list_variant VARCHAR(16) NOT NULL,
            enabled BOOLEAN NOT NULL,
            moderator_id UUID NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # --- Shifts ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS shifts (
            id UUID PRIMARY KEY,
            list_variant VARCHAR(16) NOT NULL,
            user_id UUID NOT NULL,
            target_count INTEGER NOT NULL,
            completed_count INTEGER NOT NULL DEFAULT 0,
            start_at TIMESTAMPTZ NOT NULL,
            end_at TIMESTAMPTZ NOT NULL,
            status VARCHAR(16) NOT NULL DEFAULT 'running',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_shifts_user_start UNIQUE (list_variant, user_id, start_at),
            CONSTRAINT ck_shifts_target_positive CHECK (target_count > 0),
            CONSTRAINT ck_shifts_completed_non_negative CHECK (completed_count >= 0),
            CONSTRAINT ck_shifts_window_ordered CHECK (end_at > start_at)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_shifts_user_status
        ON shifts(user_id, status)
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS recurring_shifts (
            id UUID PRIMARY KEY,
            list_variant VARCHAR(16) NOT NULL,
            user_id UUID NOT NULL,
            weekday VARCHAR(16) NOT NULL,
            start_hour INTEGER NOT NULL,
            duration INTEGER NOT NULL,
            target_count INTEGER NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_recurring_shifts_start_hour_range CHECK (start_hour >= 0 AND start_hour <= 23),
            CONSTRAINT ck_recurring_shifts_duration_positive CHECK (duration > 0),
            CONSTRAINT ck_recurring_shifts_target_positive CHECK (target_count > 0)
        )
    """)

    # --- Notifications ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS notifications (
            id UUID PRIMARY KEY,
            user_id UUID NOT NULL,
            content TEXT NOT NULL,
            notification_type VARCHAR(16) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_notifications_user_created
        ON notifications(user_id, created_at)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS notifications CASCADE")
    op.execute("DROP TABLE IF EXISTS recurring_shifts CASCADE")
    op.execute("DROP TABLE IF EXISTS shifts CASCADE")
    op.execute("DROP TABLE IF EXISTS submissions_enabled CASCADE")
    op.execute("DROP TABLE IF EXISTS submission_history CASCADE")
    op.execute("DROP TABLE IF EXISTS records CASCADE")
    op.execute("DROP TABLE IF EXISTS submissions CASCADE")
    # levels belongs to the levels service

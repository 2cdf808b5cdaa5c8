"""Append-only submission history."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from levelboard.db.models import ListVariant, Submission, SubmissionHistory, SubmissionStatus


async def append_history(
    db: AsyncSession,
    submission: Submission,
    status: SubmissionStatus,
    reviewer_id: uuid.UUID | None = None,
    reviewer_notes: str | None = None,
    record_id: uuid.UUID | None = None,
    timestamp: datetime | None = None,
) -> SubmissionHistory:
    """Stage a history entry for ``submission`` in the current transaction."""
    entry = SubmissionHistory(
        list_variant=submission.list_variant,
        submission_id=submission.id,
        record_id=record_id,
        status=status.value,
        reviewer_notes=reviewer_notes,
        user_notes=submission.user_notes,
        reviewer_id=reviewer_id,
        timestamp=timestamp or datetime.now(timezone.utc),
    )
    db.add(entry)
    await db.flush()
    return entry


async def list_history(
    db: AsyncSession,
    variant: ListVariant,
    submission_id: uuid.UUID,
) -> list[SubmissionHistory]:
    """History of a submission, newest first. Works after the submission is gone."""
    result = await db.execute(
        select(SubmissionHistory)
        .where(
            SubmissionHistory.list_variant == variant.value,
            SubmissionHistory.submission_id == submission_id,
        )
        .order_by(SubmissionHistory.timestamp.desc(), SubmissionHistory.id.desc())
    )
    return list(result.scalars().all())

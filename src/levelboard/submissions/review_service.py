"""Review action engine: the submission state machine.

State progression:
    pending -> claimed                       (claim, see claim_service)
    claimed -> pending                       (unclaim)
    claimed / under_consideration / denied -> accepted   (accept; row deleted)
    claimed / under_consideration -> denied              (deny)
    claimed / denied -> under_consideration              (mark_under_consideration)

Each action is one transaction: the submission row is locked, the status
precondition is re-checked under the lock, and every side effect (record
upsert, history entry, notification row, shift quota) is written before the
single commit. A racing action that loses sees the winner's status and fails
with ConflictError. Pushes to Redis happen only after commit.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from levelboard.database import atomic
from levelboard.db.models import (
    Level,
    ListVariant,
    Notification,
    NotificationType,
    Record,
    Shift,
    Submission,
    SubmissionHistory,
    SubmissionStatus,
)
from levelboard.errors import ConflictError, NotFoundError
from levelboard.notifications.push import publish_staff_event, push_notification_to_user
from levelboard.notifications.service import create_notification
from levelboard.shifts.shift_service import record_review, shift_payload
from levelboard.submissions.history_service import append_history
from levelboard.submissions.submission_service import get_submission

logger = structlog.get_logger()

VALID_TRANSITIONS: dict[SubmissionStatus, list[SubmissionStatus]] = {
    SubmissionStatus.PENDING: [SubmissionStatus.CLAIMED],
    SubmissionStatus.CLAIMED: [
        SubmissionStatus.PENDING,
        SubmissionStatus.UNDER_CONSIDERATION,
        SubmissionStatus.DENIED,
        SubmissionStatus.ACCEPTED,
    ],
    SubmissionStatus.UNDER_CONSIDERATION: [SubmissionStatus.DENIED, SubmissionStatus.ACCEPTED],
    SubmissionStatus.DENIED: [SubmissionStatus.UNDER_CONSIDERATION, SubmissionStatus.ACCEPTED],
    SubmissionStatus.ACCEPTED: [],
}

NOTIFICATION_TEMPLATES: dict[SubmissionStatus, tuple[NotificationType, str]] = {
    SubmissionStatus.CLAIMED: (NotificationType.INFO, 'Your submission for "{level}" is being reviewed.'),
    SubmissionStatus.PENDING: (NotificationType.INFO, 'Your submission for "{level}" has been returned to the queue.'),
    SubmissionStatus.ACCEPTED: (NotificationType.SUCCESS, 'Your submission for "{level}" has been accepted!'),
    SubmissionStatus.DENIED: (NotificationType.FAILURE, 'Your submission for "{level}" has been denied.'),
    SubmissionStatus.UNDER_CONSIDERATION: (
        NotificationType.INFO,
        'Your submission for "{level}" has been placed under consideration.',
    ),
}


def validate_transition(current: SubmissionStatus, target: SubmissionStatus) -> None:
    """Raise ConflictError unless ``current -> target`` is allowed."""
    if target in VALID_TRANSITIONS.get(current, []):
        return
    if current == target:
        label = current.value.replace("_", " ")
        raise ConflictError(f"This submission is already {label}")
    if target == SubmissionStatus.PENDING:
        raise ConflictError("This submission is not claimed")
    if current == SubmissionStatus.PENDING:
        raise ConflictError("This submission must be claimed before it can be reviewed")
    raise ConflictError(f"Cannot move a submission from {current.value} to {target.value}")


async def notify_submitter(
    db: AsyncSession,
    submission: Submission,
    outcome: SubmissionStatus,
) -> Notification:
    """Stage the submitter's notification for ``outcome``."""
    level_name = (
        await db.execute(select(Level.name).where(Level.id == submission.level_id))
    ).scalar_one_or_none() or str(submission.level_id)
    type_, template = NOTIFICATION_TEMPLATES[outcome]
    return await create_notification(
        db,
        submission.submitted_by,
        template.format(level=level_name),
        type_,
    )


async def deliver(
    redis: Any | None,
    notification: Notification | None,
    completed_shift: Shift | None = None,
) -> None:
    """Post-commit, fire-and-forget pushes for one action."""
    if notification is not None:
        await push_notification_to_user(redis, notification)
    if completed_shift is not None:
        await publish_staff_event(redis, "SHIFT_COMPLETED", shift_payload(completed_shift))


async def _lock_for_review(db: AsyncSession, variant: ListVariant, submission_id: uuid.UUID) -> Submission:
    """Row-lock a submission for a review action.

    An accepted submission is deleted, so a missing row with an accepted
    history entry means another reviewer finished it first.
    """
    try:
        return await get_submission(db, variant, submission_id, for_update=True)
    except NotFoundError:
        accepted = await db.execute(
            select(SubmissionHistory.id)
            .where(
                SubmissionHistory.list_variant == variant.value,
                SubmissionHistory.submission_id == submission_id,
                SubmissionHistory.status == SubmissionStatus.ACCEPTED.value,
            )
            .limit(1)
        )
        if accepted.scalar_one_or_none() is not None:
            raise ConflictError("This submission has already been accepted") from None
        raise


async def _upsert_record(
    db: AsyncSession,
    submission: Submission,
    reviewer_id: uuid.UUID,
    notes: str | None,
    now: datetime,
) -> Record:
    """Update the (user, level) record in place, or create it."""
    result = await db.execute(
        select(Record)
        .where(
            Record.list_variant == submission.list_variant,
            Record.submitted_by == submission.submitted_by,
            Record.level_id == submission.level_id,
        )
        .with_for_update()
    )
    record = result.scalar_one_or_none()
    if record is None:
        record = Record(
            list_variant=submission.list_variant,
            submitted_by=submission.submitted_by,
            level_id=submission.level_id,
            is_verification=False,
            created_at=now,
        )
        db.add(record)

    record.mobile = submission.mobile
    record.ldm_id = submission.ldm_id
    record.video_url = submission.video_url
    record.raw_url = submission.raw_url
    record.mod_menu = submission.mod_menu
    record.user_notes = submission.user_notes
    record.completion_time = submission.completion_time
    record.reviewer_id = reviewer_id
    record.reviewer_notes = notes
    record.updated_at = now
    await db.flush()
    return record


async def accept(
    db: AsyncSession,
    variant: ListVariant,
    submission_id: uuid.UUID,
    actor: uuid.UUID,
    notes: str | None = None,
    redis: Any | None = None,
) -> Record:
    """Accept a submission: materialize its record and retire it from the queue.

    Raises:
        NotFoundError: If the submission does not exist.
        ConflictError: If it is still pending (unclaimed) or was already accepted.
    """
    async with atomic(db):
        submission = await _lock_for_review(db, variant, submission_id)
        validate_transition(SubmissionStatus(submission.status), SubmissionStatus.ACCEPTED)
        now = datetime.now(timezone.utc)

        record = await _upsert_record(db, submission, actor, notes, now)
        await append_history(
            db,
            submission,
            SubmissionStatus.ACCEPTED,
            reviewer_id=actor,
            reviewer_notes=notes,
            record_id=record.id,
            timestamp=now,
        )
        notification = await notify_submitter(db, submission, SubmissionStatus.ACCEPTED)
        completed_shift = await record_review(db, variant, actor, now)

        await db.delete(submission)
        await db.flush()

    logger.info(
        "submission_accepted",
        submission_id=str(submission_id),
        record_id=str(record.id),
        reviewer_id=str(actor),
        variant=variant.value,
    )
    await deliver(redis, notification, completed_shift)
    return record


async def _review(
    db: AsyncSession,
    variant: ListVariant,
    submission_id: uuid.UUID,
    actor: uuid.UUID,
    target: SubmissionStatus,
    notes: str | None,
    redis: Any | None,
) -> Submission:
    async with atomic(db):
        submission = await _lock_for_review(db, variant, submission_id)
        validate_transition(SubmissionStatus(submission.status), target)
        now = datetime.now(timezone.utc)

        submission.status = target.value
        submission.reviewer_id = actor
        submission.reviewer_notes = notes
        submission.updated_at = now
        await db.flush()

        await append_history(
            db,
            submission,
            target,
            reviewer_id=actor,
            reviewer_notes=notes,
            timestamp=now,
        )
        notification = await notify_submitter(db, submission, target)
        completed_shift = await record_review(db, variant, actor, now)

    logger.info(
        "submission_reviewed",
        submission_id=str(submission_id),
        status=target.value,
        reviewer_id=str(actor),
        variant=variant.value,
    )
    await deliver(redis, notification, completed_shift)
    return submission


async def deny(
    db: AsyncSession,
    variant: ListVariant,
    submission_id: uuid.UUID,
    actor: uuid.UUID,
    notes: str | None = None,
    redis: Any | None = None,
) -> Submission:
    """Deny a claimed or under-consideration submission.

    Raises:
        NotFoundError: If the submission does not exist.
        ConflictError: If it is already denied, accepted, or still pending.
    """
    return await _review(db, variant, submission_id, actor, SubmissionStatus.DENIED, notes, redis)


async def mark_under_consideration(
    db: AsyncSession,
    variant: ListVariant,
    submission_id: uuid.UUID,
    actor: uuid.UUID,
    notes: str | None = None,
    redis: Any | None = None,
) -> Submission:
    """Park a claimed or denied submission for further discussion.

    Raises:
        NotFoundError: If the submission does not exist.
        ConflictError: If it is already under consideration, accepted, or still pending.
    """
    return await _review(db, variant, submission_id, actor, SubmissionStatus.UNDER_CONSIDERATION, notes, redis)


async def unclaim(
    db: AsyncSession,
    variant: ListVariant,
    submission_id: uuid.UUID,
    actor: uuid.UUID,
    redis: Any | None = None,
) -> Submission:
    """Return a claimed submission to the queue.

    Raises:
        NotFoundError: If the submission does not exist.
        ConflictError: If it is not currently claimed or was already accepted.
    """
    async with atomic(db):
        submission = await _lock_for_review(db, variant, submission_id)
        validate_transition(SubmissionStatus(submission.status), SubmissionStatus.PENDING)
        now = datetime.now(timezone.utc)

        submission.status = SubmissionStatus.PENDING.value
        submission.reviewer_id = None
        submission.updated_at = now
        await db.flush()

        await append_history(db, submission, SubmissionStatus.PENDING, reviewer_id=actor, timestamp=now)
        notification = await notify_submitter(db, submission, SubmissionStatus.PENDING)

    logger.info(
        "submission_unclaimed",
        submission_id=str(submission_id),
        actor=str(actor),
        variant=variant.value,
    )
    await deliver(redis, notification)
    return submission

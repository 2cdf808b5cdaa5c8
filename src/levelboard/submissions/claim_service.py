"""Claim coordinator: hands the next pending submission to a reviewer.

Candidate selection uses ``SELECT ... FOR UPDATE SKIP LOCKED``: a row another
claimant has locked is passed over instead of waited on, so N concurrent
claimants fan out over the first N unlocked rows. The status flip is a
conditional write (``WHERE status = 'pending'``); if it matches nothing the
candidate was taken by someone else and the next one is tried.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from levelboard.config import get_settings
from levelboard.database import atomic
from levelboard.db.models import ListVariant, Submission, SubmissionStatus
from levelboard.errors import NotFoundError
from levelboard.submissions.history_service import append_history
from levelboard.submissions.queue_service import QUEUE_ORDER, pending_in
from levelboard.submissions.review_service import deliver, notify_submitter

logger = structlog.get_logger()


async def _next_candidate(
    db: AsyncSession,
    variant: ListVariant,
    reviewer_id: uuid.UUID,
    skip: list[uuid.UUID],
) -> uuid.UUID | None:
    query = (
        select(Submission.id)
        .where(
            pending_in(variant),
            # Reviewers never pick up their own submissions
            Submission.submitted_by != reviewer_id,
        )
        .order_by(*QUEUE_ORDER)
        .limit(1)
        .with_for_update(skip_locked=True)
    )
    if skip:
        query = query.where(Submission.id.not_in(skip))
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def _try_claim(
    db: AsyncSession,
    candidate_id: uuid.UUID,
    reviewer_id: uuid.UUID,
    now: datetime,
) -> Submission | None:
    """Flip one candidate to claimed; None if another claimant got there first."""
    result = await db.execute(
        update(Submission)
        .where(
            Submission.id == candidate_id,
            Submission.status == SubmissionStatus.PENDING.value,
        )
        .values(
            status=SubmissionStatus.CLAIMED.value,
            reviewer_id=reviewer_id,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        return None
    return await db.get(Submission, candidate_id, populate_existing=True)


async def claim(
    db: AsyncSession,
    variant: ListVariant,
    reviewer_id: uuid.UUID,
    redis: Any | None = None,
) -> Submission:
    """Claim the highest-priority pending submission for ``reviewer_id``.

    Raises:
        NotFoundError: If no pending submission is available right now
            (empty queue, or every candidate is locked by another claimant).
    """
    max_attempts = get_settings().claim_max_attempts
    lost: list[uuid.UUID] = []
    claimed: Submission | None = None

    async with atomic(db):
        while claimed is None and len(lost) < max_attempts:
            candidate_id = await _next_candidate(db, variant, reviewer_id, lost)
            if candidate_id is None:
                break
            now = datetime.now(timezone.utc)
            claimed = await _try_claim(db, candidate_id, reviewer_id, now)
            if claimed is None:
                lost.append(candidate_id)

        if claimed is None:
            raise NotFoundError("No pending submissions are available to claim")

        await append_history(
            db,
            claimed,
            SubmissionStatus.CLAIMED,
            reviewer_id=reviewer_id,
            timestamp=now,
        )
        notification = await notify_submitter(db, claimed, SubmissionStatus.CLAIMED)

    logger.info(
        "submission_claimed",
        submission_id=str(claimed.id),
        reviewer_id=str(reviewer_id),
        variant=variant.value,
        retries=len(lost),
    )
    await deliver(redis, notification)
    return claimed


async def release_stale_claims(
    db: AsyncSession,
    variant: ListVariant,
    now: datetime | None = None,
    redis: Any | None = None,
) -> list[Submission]:
    """Return claims untouched for ``stale_claim_minutes`` to the queue.

    Rows locked by an in-flight review are skipped and picked up next run.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    cutoff = now - timedelta(minutes=get_settings().stale_claim_minutes)

    async with atomic(db):
        result = await db.execute(
            select(Submission)
            .where(
                Submission.list_variant == variant.value,
                Submission.status == SubmissionStatus.CLAIMED.value,
                Submission.updated_at < cutoff,
            )
            .with_for_update(skip_locked=True)
            .execution_options(populate_existing=True)
        )
        released = list(result.scalars().all())
        notifications = []
        for submission in released:
            submission.status = SubmissionStatus.PENDING.value
            submission.reviewer_id = None
            submission.updated_at = now
            await db.flush()
            await append_history(db, submission, SubmissionStatus.PENDING, timestamp=now)
            notifications.append(await notify_submitter(db, submission, SubmissionStatus.PENDING))

    if released:
        logger.info("stale_claims_released", variant=variant.value, count=len(released))
    for notification in notifications:
        await deliver(redis, notification)
    return released

"""Submission intake: create, edit, withdraw.

Intake rules live here so every submission that reaches the queue is already
well-formed; the review engine never re-validates URLs or level rules.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

import structlog
from pydantic import AnyHttpUrl, TypeAdapter, ValidationError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from levelboard.config import get_settings
from levelboard.database import atomic
from levelboard.db.models import Level, ListVariant, Submission, SubmissionStatus
from levelboard.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    SubmissionValidationError,
)
from levelboard.submissions.gate_service import is_enabled
from levelboard.submissions.history_service import append_history
from levelboard.submissions.schemas import SubmissionCreate, SubmissionPatch

logger = structlog.get_logger()

_http_url = TypeAdapter(AnyHttpUrl)

# Statuses a reviewer is actively working on; the submitter must wait.
_IN_REVIEW = frozenset({SubmissionStatus.CLAIMED.value, SubmissionStatus.UNDER_CONSIDERATION.value})


def validate_url(value: str, field: str) -> str:
    """Reject anything that is not an absolute http(s) URL with a host."""
    try:
        _http_url.validate_python(value)
    except ValidationError as e:
        raise SubmissionValidationError(f"{field} must be a valid http(s) URL") from e
    return value


async def get_submission(
    db: AsyncSession,
    variant: ListVariant,
    submission_id: uuid.UUID,
    *,
    for_update: bool = False,
) -> Submission:
    """Load a submission of the variant, optionally row-locked.

    Raises:
        NotFoundError: If it does not exist in this variant.
    """
    query = select(Submission).where(
        Submission.id == submission_id,
        Submission.list_variant == variant.value,
    )
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    submission = result.scalar_one_or_none()
    if submission is None:
        raise NotFoundError(f"Submission {submission_id} not found")
    return submission


async def _get_level(db: AsyncSession, variant: ListVariant, level_id: uuid.UUID) -> Level:
    result = await db.execute(
        select(Level).where(Level.id == level_id, Level.list_variant == variant.value)
    )
    level = result.scalar_one_or_none()
    if level is None:
        raise NotFoundError(f"Level {level_id} not found")
    return level


def _check_raw_footage(level: Level, raw_url: str | None) -> None:
    if raw_url is None and level.position <= get_settings().raw_footage_required_top:
        raise SubmissionValidationError(
            f"Raw footage is required for levels in the top {get_settings().raw_footage_required_top}"
        )


async def create_submission(
    db: AsyncSession,
    variant: ListVariant,
    submitter_id: uuid.UUID,
    body: SubmissionCreate,
    *,
    can_review: bool = False,
    priority: bool = False,
) -> Submission:
    """Validate and enqueue a new pending submission.

    Raises:
        SubmissionValidationError: Bad URL, closed gate, legacy level, or
            missing raw footage.
        ForbiddenError: Submitting for someone else without review rights.
        NotFoundError: Unknown level.
        ConflictError: The user already has a submission for this level.
    """
    validate_url(body.video_url, "video_url")
    if body.raw_url is not None:
        validate_url(body.raw_url, "raw_url")

    target_user = body.submitted_by or submitter_id

    async with atomic(db):
        if target_user == submitter_id:
            if not await is_enabled(db, variant):
                raise SubmissionValidationError("Submissions are currently disabled")
        elif not can_review:
            raise ForbiddenError("Only reviewers may submit on behalf of another user")

        level = await _get_level(db, variant, body.level_id)
        if level.legacy:
            raise SubmissionValidationError("Legacy levels do not accept submissions")
        _check_raw_footage(level, body.raw_url)

        existing = await db.execute(
            select(Submission.id).where(
                Submission.list_variant == variant.value,
                Submission.submitted_by == target_user,
                Submission.level_id == level.id,
            )
        )
        if existing.scalar_one_or_none() is not None:
            raise ConflictError("A submission for this level already exists")

        now = datetime.now(timezone.utc)
        submission = Submission(
            list_variant=variant.value,
            level_id=level.id,
            submitted_by=target_user,
            mobile=body.mobile,
            ldm_id=body.ldm_id,
            video_url=body.video_url,
            raw_url=body.raw_url,
            mod_menu=body.mod_menu,
            user_notes=body.user_notes,
            completion_time=body.completion_time,
            priority=priority,
            status=SubmissionStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        db.add(submission)
        try:
            await db.flush()
        except IntegrityError as e:
            # Concurrent duplicate beat us past the existence check
            raise ConflictError("A submission for this level already exists") from e

    logger.info(
        "submission_created",
        submission_id=str(submission.id),
        submitted_by=str(target_user),
        level_id=str(level.id),
        variant=variant.value,
        on_behalf=target_user != submitter_id,
    )
    return submission


async def edit_submission(
    db: AsyncSession,
    variant: ListVariant,
    submission_id: uuid.UUID,
    submitter_id: uuid.UUID,
    patch: SubmissionPatch,
) -> Submission:
    """Apply a submitter's edit and send the submission back to the queue.

    Raises:
        NotFoundError: Absent, or not the caller's submission.
        ForbiddenError: The submission is locked.
        ConflictError: A reviewer is working on it.
        SubmissionValidationError: Empty patch, bad URL, or closed gate.
    """
    async with atomic(db):
        submission = await get_submission(db, variant, submission_id, for_update=True)
        if submission.submitted_by != submitter_id:
            raise NotFoundError(f"Submission {submission_id} not found")
        if submission.locked:
            raise ForbiddenError("This submission is locked")
        if submission.status in _IN_REVIEW:
            raise ConflictError("This submission is being reviewed and cannot be edited")

        changes = patch.model_dump(exclude_unset=True)
        if not changes:
            raise SubmissionValidationError("No changes provided")
        for field in ("video_url", "mobile"):
            if field in changes and changes[field] is None:
                raise SubmissionValidationError(f"{field} cannot be cleared")
        if "video_url" in changes:
            validate_url(changes["video_url"], "video_url")
        if changes.get("raw_url") is not None:
            validate_url(changes["raw_url"], "raw_url")
        elif "raw_url" in changes:
            _check_raw_footage(await _get_level(db, variant, submission.level_id), None)

        if submission.status != SubmissionStatus.PENDING.value and not await is_enabled(db, variant):
            raise SubmissionValidationError("Submissions are currently disabled")

        for field, value in changes.items():
            setattr(submission, field, value)
        now = datetime.now(timezone.utc)
        submission.status = SubmissionStatus.PENDING.value
        submission.reviewer_id = None
        submission.reviewer_notes = None
        submission.updated_at = now
        await db.flush()

        await append_history(db, submission, SubmissionStatus.PENDING, timestamp=now)

    logger.info(
        "submission_edited",
        submission_id=str(submission_id),
        fields=sorted(changes),
        variant=variant.value,
    )
    return submission


async def withdraw_submission(
    db: AsyncSession,
    variant: ListVariant,
    submission_id: uuid.UUID,
    actor_id: uuid.UUID,
    *,
    can_review: bool = False,
) -> None:
    """Delete a submission.

    Reviewers may delete any submission; submitters only their own pending ones.

    Raises:
        NotFoundError: Absent, or not deletable by the caller.
    """
    async with atomic(db):
        submission = await get_submission(db, variant, submission_id, for_update=True)
        if not can_review and (
            submission.submitted_by != actor_id
            or submission.status != SubmissionStatus.PENDING.value
        ):
            raise NotFoundError(f"Submission {submission_id} not found")
        await db.delete(submission)
        await db.flush()

    logger.info(
        "submission_withdrawn",
        submission_id=str(submission_id),
        actor=str(actor_id),
        variant=variant.value,
    )

"""Submission and review API endpoints.

Intake (5), Listing (2), Review (5), Queue (3), Gate (2). Every route is scoped
to a list variant taken from the path.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from levelboard.auth.dependencies import Actor, get_current_user, require_moderator, require_reviewer
from levelboard.database import get_session
from levelboard.db.models import ListVariant, SubmissionStatus
from levelboard.errors import NotFoundError
from levelboard.redis_client import get_optional_redis
from levelboard.submissions import review_service
from levelboard.submissions.claim_service import claim
from levelboard.submissions.gate_service import is_enabled, set_enabled
from levelboard.submissions.history_service import list_history
from levelboard.submissions.queue_service import (
    get_pending_queue,
    list_submissions,
    queue_position,
    queue_summary,
)
from levelboard.submissions.schemas import (
    GateStatusResponse,
    GateUpdateRequest,
    HistoryEntryResponse,
    QueuePositionResponse,
    QueueSummaryResponse,
    RecordResponse,
    ReviewRequest,
    SubmissionCreate,
    SubmissionPatch,
    SubmissionResponse,
)
from levelboard.submissions.submission_service import (
    create_submission,
    edit_submission,
    get_submission,
    withdraw_submission,
)

router = APIRouter(prefix="/api/v1/{variant}/submissions", tags=["Submissions"])


# ── Queue & gate (static paths first) ──


@router.get("/queue", response_model=QueueSummaryResponse)
async def queue_summary_endpoint(
    variant: ListVariant,
    _actor: Actor = Depends(require_reviewer),
    db: AsyncSession = Depends(get_session),
    redis=Depends(get_optional_redis),
):
    """Pending and under-consideration counts for the reviewer dashboard."""
    summary = await queue_summary(db, variant, redis)
    return QueueSummaryResponse(
        pending_count=summary.pending_count,
        under_consideration_count=summary.under_consideration_count,
        oldest_pending_at=summary.oldest_pending_at,
    )


@router.get("/queue/pending", response_model=list[SubmissionResponse])
async def pending_queue_endpoint(
    variant: ListVariant,
    limit: int = Query(20, ge=1, le=200),
    offset: int = Query(0, ge=0),
    _actor: Actor = Depends(require_reviewer),
    db: AsyncSession = Depends(get_session),
):
    """The next pending submissions in the order claims will take them."""
    return await get_pending_queue(db, variant, limit=limit, offset=offset)


@router.post("/claim", response_model=SubmissionResponse)
async def claim_endpoint(
    variant: ListVariant,
    actor: Actor = Depends(require_reviewer),
    db: AsyncSession = Depends(get_session),
    redis=Depends(get_optional_redis),
):
    """Claim the next submission in the queue. 404 when the queue is empty."""
    return await claim(db, variant, actor.id, redis=redis)


@router.get("/status", response_model=GateStatusResponse)
async def gate_status_endpoint(
    variant: ListVariant,
    db: AsyncSession = Depends(get_session),
):
    """Whether new submissions are accepted (public)."""
    return GateStatusResponse(enabled=await is_enabled(db, variant))


@router.put("/status", response_model=GateStatusResponse)
async def set_gate_status_endpoint(
    variant: ListVariant,
    body: GateUpdateRequest,
    actor: Actor = Depends(require_moderator),
    db: AsyncSession = Depends(get_session),
):
    """Open or close the submission gate (moderators)."""
    entry = await set_enabled(db, variant, actor.id, body.enabled)
    await db.commit()
    return GateStatusResponse(enabled=entry.enabled)


# ── Listing ──


@router.get("", response_model=list[SubmissionResponse])
async def list_submissions_endpoint(
    variant: ListVariant,
    status: SubmissionStatus | None = Query(None),
    level_id: uuid.UUID | None = Query(None),
    submitted_by: uuid.UUID | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    _actor: Actor = Depends(require_reviewer),
    db: AsyncSession = Depends(get_session),
):
    """Browse submissions in queue order (reviewers)."""
    return await list_submissions(
        db,
        variant,
        status=status,
        level_id=level_id,
        submitted_by=submitted_by,
        limit=limit,
        offset=offset,
    )


@router.get("/mine", response_model=list[SubmissionResponse])
async def my_submissions_endpoint(
    variant: ListVariant,
    status: SubmissionStatus | None = Query(None),
    actor: Actor = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """The caller's own open submissions. Accepted ones are records, not listed here."""
    return await list_submissions(db, variant, status=status, submitted_by=actor.id)


# ── Intake ──


@router.post("", response_model=SubmissionResponse, status_code=201)
async def create_submission_endpoint(
    variant: ListVariant,
    body: SubmissionCreate,
    actor: Actor = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Submit a completion for review."""
    return await create_submission(
        db,
        variant,
        actor.id,
        body,
        can_review=actor.can_review,
        priority=actor.priority,
    )


@router.get("/{submission_id}", response_model=SubmissionResponse)
async def get_submission_endpoint(
    variant: ListVariant,
    submission_id: uuid.UUID,
    actor: Actor = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Submitters see their own submissions; reviewers see any."""
    submission = await get_submission(db, variant, submission_id)
    if submission.submitted_by != actor.id and not actor.can_review:
        raise NotFoundError(f"Submission {submission_id} not found")
    return submission


@router.patch("/{submission_id}", response_model=SubmissionResponse)
async def edit_submission_endpoint(
    variant: ListVariant,
    submission_id: uuid.UUID,
    body: SubmissionPatch,
    actor: Actor = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Edit your own submission; it goes back to the queue as pending."""
    return await edit_submission(db, variant, submission_id, actor.id, body)


@router.delete("/{submission_id}", status_code=204)
async def withdraw_submission_endpoint(
    variant: ListVariant,
    submission_id: uuid.UUID,
    actor: Actor = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> None:
    """Withdraw a pending submission (or delete any, as a reviewer)."""
    await withdraw_submission(db, variant, submission_id, actor.id, can_review=actor.can_review)


@router.get("/{submission_id}/queue-position", response_model=QueuePositionResponse)
async def queue_position_endpoint(
    variant: ListVariant,
    submission_id: uuid.UUID,
    _actor: Actor = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis=Depends(get_optional_redis),
):
    """1-based position among pending submissions."""
    position = await queue_position(db, variant, submission_id, redis)
    return QueuePositionResponse(position=position.position, total=position.total)


@router.get("/{submission_id}/history", response_model=list[HistoryEntryResponse])
async def history_endpoint(
    variant: ListVariant,
    submission_id: uuid.UUID,
    _actor: Actor = Depends(require_reviewer),
    db: AsyncSession = Depends(get_session),
):
    """Review history, newest first. Available after acceptance too."""
    return await list_history(db, variant, submission_id)


# ── Review ──


@router.post("/{submission_id}/unclaim", response_model=SubmissionResponse)
async def unclaim_endpoint(
    variant: ListVariant,
    submission_id: uuid.UUID,
    actor: Actor = Depends(require_reviewer),
    db: AsyncSession = Depends(get_session),
    redis=Depends(get_optional_redis),
):
    """Return a claimed submission to the queue."""
    return await review_service.unclaim(db, variant, submission_id, actor.id, redis=redis)


@router.post("/{submission_id}/accept", response_model=RecordResponse)
async def accept_endpoint(
    variant: ListVariant,
    submission_id: uuid.UUID,
    body: ReviewRequest,
    actor: Actor = Depends(require_reviewer),
    db: AsyncSession = Depends(get_session),
    redis=Depends(get_optional_redis),
):
    """Accept: creates or updates the player's record."""
    return await review_service.accept(db, variant, submission_id, actor.id, body.notes, redis=redis)


@router.post("/{submission_id}/deny", response_model=SubmissionResponse)
async def deny_endpoint(
    variant: ListVariant,
    submission_id: uuid.UUID,
    body: ReviewRequest,
    actor: Actor = Depends(require_reviewer),
    db: AsyncSession = Depends(get_session),
    redis=Depends(get_optional_redis),
):
    """Deny: the submitter may edit and resubmit."""
    return await review_service.deny(db, variant, submission_id, actor.id, body.notes, redis=redis)


@router.post("/{submission_id}/under-consideration", response_model=SubmissionResponse)
async def under_consideration_endpoint(
    variant: ListVariant,
    submission_id: uuid.UUID,
    body: ReviewRequest,
    actor: Actor = Depends(require_reviewer),
    db: AsyncSession = Depends(get_session),
    redis=Depends(get_optional_redis),
):
    """Park a claimed submission for a second opinion; it stays out of the queue."""
    return await review_service.mark_under_consideration(
        db, variant, submission_id, actor.id, body.notes, redis=redis,
    )

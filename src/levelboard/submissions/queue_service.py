"""Priority view over the review queue.

Pending submissions are ordered by priority flag (priority first), then age
(oldest first), then id, which makes the order total. Claims always read the
live table; queue position and summary may be served from a short Redis cache
when ``queue_cache_ttl_seconds`` is set, trading bounded staleness for fewer
count queries.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any

import structlog
from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from levelboard.config import get_settings
from levelboard.db.models import ListVariant, Submission, SubmissionStatus
from levelboard.errors import NotFoundError

logger = structlog.get_logger()

QUEUE_POSITION_CACHE_KEY = "queue:{variant}:position:{submission_id}"
QUEUE_SUMMARY_CACHE_KEY = "queue:{variant}:summary"

QUEUE_ORDER = (
    Submission.priority.desc(),
    Submission.created_at.asc(),
    Submission.id.asc(),
)


@dataclass
class QueuePosition:
    position: int
    total: int


@dataclass
class QueueSummary:
    pending_count: int
    under_consideration_count: int
    oldest_pending_at: datetime | None


def pending_in(variant: ListVariant) -> Any:
    """WHERE clause selecting the variant's pending submissions."""
    return and_(
        Submission.list_variant == variant.value,
        Submission.status == SubmissionStatus.PENDING.value,
    )


def ahead_of(target: Submission) -> Any:
    """WHERE clause matching submissions strictly ahead of ``target`` in queue order."""
    same_tier_older = or_(
        Submission.created_at < target.created_at,
        and_(Submission.created_at == target.created_at, Submission.id < target.id),
    )
    if target.priority:
        return and_(Submission.priority.is_(True), same_tier_older)
    return or_(
        Submission.priority.is_(True),
        and_(Submission.priority.is_(False), same_tier_older),
    )


async def _cache_get(redis: Any | None, key: str) -> dict | None:
    if redis is None:
        return None
    try:
        cached = await redis.get(key)
    except Exception:
        logger.warning("queue_cache_read_failed", key=key, exc_info=True)
        return None
    return json.loads(cached) if cached else None


async def _cache_set(redis: Any | None, key: str, ttl: int, value: dict) -> None:
    if redis is None:
        return
    try:
        await redis.setex(key, ttl, json.dumps(value, default=str))
    except Exception:
        logger.warning("queue_cache_write_failed", key=key, exc_info=True)


async def list_submissions(
    db: AsyncSession,
    variant: ListVariant,
    *,
    status: SubmissionStatus | None = None,
    level_id: uuid.UUID | None = None,
    submitted_by: uuid.UUID | None = None,
    limit: int | None = None,
    offset: int = 0,
) -> list[Submission]:
    """Submissions of one variant in queue order, optionally filtered."""
    query = select(Submission).where(Submission.list_variant == variant.value)
    if status is not None:
        query = query.where(Submission.status == status.value)
    if level_id is not None:
        query = query.where(Submission.level_id == level_id)
    if submitted_by is not None:
        query = query.where(Submission.submitted_by == submitted_by)
    query = query.order_by(*QUEUE_ORDER).offset(offset)
    if limit is not None:
        query = query.limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_pending_queue(
    db: AsyncSession,
    variant: ListVariant,
    limit: int | None = None,
    offset: int = 0,
) -> list[Submission]:
    """Pending submissions in claim order."""
    return await list_submissions(
        db, variant, status=SubmissionStatus.PENDING, limit=limit, offset=offset,
    )


async def compute_queue_position(
    db: AsyncSession,
    variant: ListVariant,
    submission_id: uuid.UUID,
) -> QueuePosition:
    """Live queue position of a pending submission."""
    result = await db.execute(
        select(Submission).where(
            Submission.id == submission_id,
            pending_in(variant),
        )
    )
    target = result.scalar_one_or_none()
    if target is None:
        raise NotFoundError(f"Submission {submission_id} is not pending in the {variant.value} queue")

    ahead = await db.execute(
        select(func.count()).select_from(Submission).where(pending_in(variant), ahead_of(target))
    )
    total = await db.execute(
        select(func.count()).select_from(Submission).where(pending_in(variant))
    )
    return QueuePosition(position=ahead.scalar_one() + 1, total=total.scalar_one())


async def queue_position(
    db: AsyncSession,
    variant: ListVariant,
    submission_id: uuid.UUID,
    redis: Any | None = None,
) -> QueuePosition:
    """Queue position, possibly cached for ``queue_cache_ttl_seconds``.

    Raises:
        NotFoundError: If the submission is absent or not pending.
    """
    ttl = get_settings().queue_cache_ttl_seconds
    cache_key = QUEUE_POSITION_CACHE_KEY.format(variant=variant.value, submission_id=submission_id)

    if ttl > 0:
        cached = await _cache_get(redis, cache_key)
        if cached is not None:
            return QueuePosition(**cached)

    position = await compute_queue_position(db, variant, submission_id)

    if ttl > 0:
        await _cache_set(redis, cache_key, ttl, asdict(position))
    return position


async def compute_queue_summary(db: AsyncSession, variant: ListVariant) -> QueueSummary:
    """Live counts and the age of the oldest pending submission."""
    result = await db.execute(
        select(Submission.status, func.count(), func.min(Submission.created_at))
        .where(
            Submission.list_variant == variant.value,
            Submission.status.in_([
                SubmissionStatus.PENDING.value,
                SubmissionStatus.UNDER_CONSIDERATION.value,
            ]),
        )
        .group_by(Submission.status)
    )
    by_status = {row[0]: (row[1], row[2]) for row in result.all()}
    pending_count, oldest = by_status.get(SubmissionStatus.PENDING.value, (0, None))
    under_consideration_count, _ = by_status.get(SubmissionStatus.UNDER_CONSIDERATION.value, (0, None))
    return QueueSummary(
        pending_count=pending_count,
        under_consideration_count=under_consideration_count,
        oldest_pending_at=oldest,
    )


async def queue_summary(
    db: AsyncSession,
    variant: ListVariant,
    redis: Any | None = None,
) -> QueueSummary:
    """Queue summary, possibly cached for ``queue_cache_ttl_seconds``."""
    ttl = get_settings().queue_cache_ttl_seconds
    cache_key = QUEUE_SUMMARY_CACHE_KEY.format(variant=variant.value)

    if ttl > 0:
        cached = await _cache_get(redis, cache_key)
        if cached is not None:
            oldest = cached["oldest_pending_at"]
            return QueueSummary(
                pending_count=cached["pending_count"],
                under_consideration_count=cached["under_consideration_count"],
                oldest_pending_at=datetime.fromisoformat(oldest) if oldest else None,
            )

    summary = await compute_queue_summary(db, variant)

    if ttl > 0:
        await _cache_set(redis, cache_key, ttl, {
            "pending_count": summary.pending_count,
            "under_consideration_count": summary.under_consideration_count,
            "oldest_pending_at": summary.oldest_pending_at.isoformat() if summary.oldest_pending_at else None,
        })
    return summary

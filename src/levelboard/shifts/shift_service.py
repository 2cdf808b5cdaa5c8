"""Reviewer shift tracking.

``completed_count`` has exactly one writer: ``record_review``, called by the
review engine inside the same transaction as the review it counts. There is no
other write path, so the count always equals the reviews performed in the
shift window.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from levelboard.db.models import ListVariant, Shift, ShiftStatus

logger = structlog.get_logger()


async def get_running_shift(
    db: AsyncSession,
    variant: ListVariant,
    user_id: uuid.UUID,
    now: datetime,
    *,
    for_update: bool = False,
) -> Shift | None:
    """The reviewer's earliest running shift whose window covers ``now``."""
    query = (
        select(Shift)
        .where(
            Shift.list_variant == variant.value,
            Shift.user_id == user_id,
            Shift.status == ShiftStatus.RUNNING.value,
            Shift.start_at <= now,
            Shift.end_at > now,
        )
        .order_by(Shift.start_at.asc())
        .limit(1)
    )
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def record_review(
    db: AsyncSession,
    variant: ListVariant,
    reviewer_id: uuid.UUID,
    now: datetime | None = None,
) -> Shift | None:
    """Count one review against the reviewer's current shift, if any.

    Returns the shift when it just reached its target (now Completed), so the
    caller can announce it after commit; otherwise None.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    shift = await get_running_shift(db, variant, reviewer_id, now, for_update=True)
    if shift is None:
        return None

    shift.completed_count = shift.completed_count + 1
    shift.updated_at = now
    completed = shift.completed_count >= shift.target_count
    if completed:
        shift.status = ShiftStatus.COMPLETED.value
    await db.flush()

    logger.info(
        "shift_progress",
        shift_id=str(shift.id),
        reviewer_id=str(reviewer_id),
        completed_count=shift.completed_count,
        target_count=shift.target_count,
        completed=completed,
    )
    return shift if completed else None


async def list_shifts(
    db: AsyncSession,
    variant: ListVariant,
    user_id: uuid.UUID | None = None,
    status: ShiftStatus | None = None,
    limit: int | None = None,
    offset: int = 0,
) -> list[Shift]:
    """Shifts of one variant, most recent first."""
    query = select(Shift).where(Shift.list_variant == variant.value)
    if user_id is not None:
        query = query.where(Shift.user_id == user_id)
    if status is not None:
        query = query.where(Shift.status == status.value)
    query = query.order_by(Shift.start_at.desc(), Shift.id.asc()).offset(offset)
    if limit is not None:
        query = query.limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_user_shifts(
    db: AsyncSession,
    variant: ListVariant,
    user_id: uuid.UUID,
    status: ShiftStatus | None = None,
) -> list[Shift]:
    """A reviewer's shifts, most recent first."""
    return await list_shifts(db, variant, user_id=user_id, status=status)


async def expire_overdue_shifts(
    db: AsyncSession,
    variant: ListVariant,
    now: datetime | None = None,
) -> list[Shift]:
    """Mark running shifts whose window has closed as Expired. Returns them."""
    if now is None:
        now = datetime.now(timezone.utc)

    result = await db.execute(
        select(Shift)
        .where(
            Shift.list_variant == variant.value,
            Shift.status == ShiftStatus.RUNNING.value,
            Shift.end_at < now,
        )
        .with_for_update(skip_locked=True)
    )
    expired = list(result.scalars().all())
    for shift in expired:
        shift.status = ShiftStatus.EXPIRED.value
        shift.updated_at = now
    await db.flush()
    return expired


def shift_payload(shift: Shift) -> dict:
    """JSON-ready view of a shift for staff events."""
    return {
        "id": str(shift.id),
        "list_variant": shift.list_variant,
        "user_id": str(shift.user_id),
        "target_count": shift.target_count,
        "completed_count": shift.completed_count,
        "start_at": shift.start_at.isoformat(),
        "end_at": shift.end_at.isoformat(),
        "status": shift.status,
    }

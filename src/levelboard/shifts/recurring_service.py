"""Recurring shift templates and the per-day shift generator."""

from __future__ import annotations

import uuid
from datetime import date, datetime, time, timedelta, timezone

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from levelboard.db.models import ListVariant, RecurringShift, Shift, ShiftStatus, Weekday

logger = structlog.get_logger()


def shift_window(template: RecurringShift, day: date) -> tuple[datetime, datetime]:
    """UTC (start_at, end_at) of ``template`` on ``day``."""
    start_at = datetime.combine(day, time(hour=template.start_hour), tzinfo=timezone.utc)
    return start_at, start_at + timedelta(hours=template.duration)


def _validate_template(start_hour: int, duration: int, target_count: int) -> None:
    if not 0 <= start_hour <= 23:
        raise ValueError("start_hour must be between 0 and 23")
    if duration <= 0:
        raise ValueError("duration must be a positive number of hours")
    if target_count <= 0:
        raise ValueError("target_count must be positive")


async def create_template(
    db: AsyncSession,
    variant: ListVariant,
    user_id: uuid.UUID,
    weekday: Weekday,
    start_hour: int,
    duration: int,
    target_count: int,
) -> RecurringShift:
    """Create a weekly template. The caller commits.

    Raises:
        ValueError: If the hour, duration or target is out of range.
    """
    _validate_template(start_hour, duration, target_count)
    now = datetime.now(timezone.utc)
    template = RecurringShift(
        list_variant=variant.value,
        user_id=user_id,
        weekday=weekday.value,
        start_hour=start_hour,
        duration=duration,
        target_count=target_count,
        created_at=now,
        updated_at=now,
    )
    db.add(template)
    await db.flush()
    return template


async def list_templates(
    db: AsyncSession,
    variant: ListVariant,
    user_id: uuid.UUID | None = None,
) -> list[RecurringShift]:
    query = select(RecurringShift).where(RecurringShift.list_variant == variant.value)
    if user_id is not None:
        query = query.where(RecurringShift.user_id == user_id)
    result = await db.execute(
        query.order_by(RecurringShift.user_id, RecurringShift.weekday, RecurringShift.start_hour)
    )
    return list(result.scalars().all())


async def delete_template(db: AsyncSession, variant: ListVariant, template_id: uuid.UUID) -> bool:
    """Delete a template. Returns False if it did not exist. Shifts already generated are kept."""
    result = await db.execute(
        select(RecurringShift).where(
            RecurringShift.id == template_id,
            RecurringShift.list_variant == variant.value,
        )
    )
    template = result.scalar_one_or_none()
    if template is None:
        return False
    await db.delete(template)
    await db.flush()
    return True


async def create_shifts_for_date(
    db: AsyncSession,
    variant: ListVariant,
    day: date,
) -> list[Shift]:
    """Materialize the day's templates into Running shifts. Idempotent per date.

    A shift that already exists for (user, start_at) is skipped, whether it
    was found up front or inserted concurrently by another generator run.
    The caller commits.
    """
    weekday = Weekday.from_index(day.weekday())
    result = await db.execute(
        select(RecurringShift).where(
            RecurringShift.list_variant == variant.value,
            RecurringShift.weekday == weekday.value,
        )
    )
    templates = list(result.scalars().all())

    created: list[Shift] = []
    for template in templates:
        start_at, end_at = shift_window(template, day)

        existing = await db.execute(
            select(Shift.id).where(
                Shift.list_variant == variant.value,
                Shift.user_id == template.user_id,
                Shift.start_at == start_at,
            )
        )
        if existing.scalar_one_or_none() is not None:
            continue

        now = datetime.now(timezone.utc)
        shift = Shift(
            list_variant=variant.value,
            user_id=template.user_id,
            target_count=template.target_count,
            completed_count=0,
            start_at=start_at,
            end_at=end_at,
            status=ShiftStatus.RUNNING.value,
            created_at=now,
            updated_at=now,
        )
        try:
            async with db.begin_nested():
                db.add(shift)
        except IntegrityError:
            logger.info(
                "shift_already_generated",
                user_id=str(template.user_id),
                start_at=start_at.isoformat(),
            )
            continue
        created.append(shift)

    if created:
        logger.info(
            "shifts_generated",
            variant=variant.value,
            day=day.isoformat(),
            count=len(created),
        )
    return created

"""Submissions gate: whether new self-submissions may enter a variant's queue."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from levelboard.db.models import ListVariant, SubmissionsEnabled

logger = structlog.get_logger()


async def get_latest_entry(db: AsyncSession, variant: ListVariant) -> SubmissionsEnabled | None:
    result = await db.execute(
        select(SubmissionsEnabled)
        .where(SubmissionsEnabled.list_variant == variant.value)
        .order_by(SubmissionsEnabled.created_at.desc(), SubmissionsEnabled.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def is_enabled(db: AsyncSession, variant: ListVariant) -> bool:
    """Latest toggle wins; a variant that was never toggled is open."""
    entry = await get_latest_entry(db, variant)
    return True if entry is None else entry.enabled


async def set_enabled(
    db: AsyncSession,
    variant: ListVariant,
    moderator_id: uuid.UUID,
    enabled: bool,
) -> SubmissionsEnabled:
    """Append a toggle entry. The caller commits."""
    entry = SubmissionsEnabled(
        list_variant=variant.value,
        enabled=enabled,
        moderator_id=moderator_id,
        created_at=datetime.now(timezone.utc),
    )
    db.add(entry)
    await db.flush()
    logger.info(
        "submissions_gate_changed",
        variant=variant.value,
        enabled=enabled,
        moderator_id=str(moderator_id),
    )
    return entry

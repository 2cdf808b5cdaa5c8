"""Notification persistence.

Notifications are written inside the caller's transaction so a review outcome
and the message telling the submitter about it commit or roll back together.
Delivery happens after commit through ``notifications.push``.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from levelboard.db.models import Notification, NotificationType

logger = logging.getLogger(__name__)


async def create_notification(
    db: AsyncSession,
    user_id: uuid.UUID,
    content: str,
    type_: NotificationType,
) -> Notification:
    """Stage a notification row in the current transaction."""
    notification = Notification(
        user_id=user_id,
        content=content,
        notification_type=type_.value,
        created_at=datetime.now(timezone.utc),
    )
    db.add(notification)
    await db.flush()
    return notification


async def get_notifications(
    db: AsyncSession,
    user_id: uuid.UUID,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[Notification], int]:
    """Get a page of a user's notifications, most recent first, and the total count."""
    total_result = await db.execute(
        select(func.count()).select_from(Notification).where(Notification.user_id == user_id)
    )
    total = total_result.scalar_one()

    result = await db.execute(
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.asc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return list(result.scalars().all()), total


async def prune_notifications(
    db: AsyncSession,
    retention_days: int,
    now: datetime | None = None,
) -> int:
    """Delete notifications older than the retention window. Returns count deleted."""
    if now is None:
        now = datetime.now(timezone.utc)
    cutoff = now - timedelta(days=retention_days)
    result = await db.execute(
        delete(Notification).where(Notification.created_at < cutoff)
    )
    return result.rowcount or 0

"""Notification API endpoints: the caller's inbox (1)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from levelboard.auth.dependencies import Actor, get_current_user
from levelboard.database import get_session
from levelboard.notifications.schemas import NotificationListResponse, NotificationResponse
from levelboard.notifications.service import get_notifications

router = APIRouter(prefix="/api/v1", tags=["Notifications"])


@router.get("/notifications", response_model=NotificationListResponse)
async def list_notifications(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    actor: Actor = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """List the caller's review notifications (paginated)."""
    notifications, total = await get_notifications(db, actor.id, page, per_page)
    return NotificationListResponse(
        notifications=[
            NotificationResponse(
                id=n.id,
                type=n.notification_type,
                content=n.content,
                timestamp=n.created_at,
            )
            for n in notifications
        ],
        total=total,
        page=page,
        per_page=per_page,
    )

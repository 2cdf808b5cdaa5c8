"""Fire-and-forget delivery over Redis pub/sub.

A separate WebSocket bridge subscribes to ``ws:user:*`` (per-user messages) and
``ws:staff`` (shift events for moderators). Publishing never raises: a lost
push only delays what the user already has persisted.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from levelboard.db.models import Notification

logger = logging.getLogger(__name__)

STAFF_CHANNEL = "ws:staff"


async def push_notification_to_user(redis: Any | None, notification: Notification) -> None:
    """Publish a committed notification to ws:user:{user_id}."""
    if redis is None:
        return

    ws_payload = {
        "event": "notification",
        "data": {
            "id": str(notification.id),
            "type": notification.notification_type,
            "content": notification.content,
            "timestamp": (
                notification.created_at.isoformat()
                if notification.created_at
                else None
            ),
        },
    }
    try:
        await redis.publish(
            f"ws:user:{notification.user_id}",
            json.dumps(ws_payload),
        )
    except Exception:
        logger.warning(
            "Failed to push notification via ws:user:%s",
            notification.user_id,
            exc_info=True,
        )


async def publish_staff_event(redis: Any | None, event: str, data: Any) -> None:
    """Publish a moderator-facing event (SHIFT_COMPLETED, SHIFTS_CREATED, SHIFTS_MISSED)."""
    if redis is None:
        return

    try:
        await redis.publish(
            STAFF_CHANNEL,
            json.dumps({"event": event, "data": data}, default=str),
        )
    except Exception:
        logger.warning("Failed to publish %s to %s", event, STAFF_CHANNEL, exc_info=True)

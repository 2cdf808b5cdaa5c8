"""Shift scheduling arq worker.

Jobs:
- generate_shifts: hourly; expands today's recurring templates into shifts.
  Safe to run any number of times per day.
- run_maintenance: every 10 minutes; expires overdue shifts, releases stale
  claims and prunes old notifications.

Each variant is processed in its own transaction so one failing variant does
not block the other. Failures are logged and retried on the next tick.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import redis.asyncio as aioredis
from arq import cron
from sqlalchemy.ext.asyncio import AsyncSession

from levelboard.config import get_settings
from levelboard.database import close_db, get_session, init_db
from levelboard.db.models import ListVariant
from levelboard.middleware.logging import setup_logging
from levelboard.notifications.push import publish_staff_event
from levelboard.notifications.service import prune_notifications
from levelboard.shifts.recurring_service import create_shifts_for_date
from levelboard.shifts.shift_service import expire_overdue_shifts, shift_payload
from levelboard.submissions.claim_service import release_stale_claims

logger = logging.getLogger(__name__)


async def _get_db_session() -> AsyncSession:
    """Get a database session for the worker."""
    async for session in get_session():
        return session
    raise RuntimeError("Failed to get database session")


async def generate_shifts(ctx: dict) -> int:
    """Create today's shifts for every variant. Returns the number created."""
    redis_client: aioredis.Redis = ctx["redis"]
    today = datetime.now(timezone.utc).date()
    total = 0

    for variant in ListVariant:
        db = await _get_db_session()
        try:
            created = await create_shifts_for_date(db, variant, today)
            await db.commit()
        except Exception:
            await db.rollback()
            logger.exception("Shift generation failed for %s on %s", variant.value, today)
            continue
        finally:
            await db.close()

        if created:
            await publish_staff_event(
                redis_client,
                "SHIFTS_CREATED",
                [shift_payload(shift) for shift in created],
            )
        total += len(created)

    logger.info("Shift generation for %s: %d created", today, total)
    return total


async def run_maintenance(ctx: dict) -> dict[str, int]:
    """Expire shifts, release stale claims, prune notifications."""
    redis_client: aioredis.Redis = ctx["redis"]
    settings = get_settings()
    now = datetime.now(timezone.utc)
    counts = {"expired_shifts": 0, "released_claims": 0, "pruned_notifications": 0}

    for variant in ListVariant:
        db = await _get_db_session()
        try:
            expired = await expire_overdue_shifts(db, variant, now)
            await db.commit()
            if expired:
                await publish_staff_event(
                    redis_client,
                    "SHIFTS_MISSED",
                    [shift_payload(shift) for shift in expired],
                )
            counts["expired_shifts"] += len(expired)

            released = await release_stale_claims(db, variant, now, redis=redis_client)
            counts["released_claims"] += len(released)
        except Exception:
            await db.rollback()
            logger.exception("Maintenance failed for %s", variant.value)
        finally:
            await db.close()

    db = await _get_db_session()
    try:
        counts["pruned_notifications"] = await prune_notifications(
            db, settings.notification_retention_days, now
        )
        await db.commit()
    except Exception:
        await db.rollback()
        logger.exception("Notification pruning failed")
    finally:
        await db.close()

    logger.info(
        "Maintenance: %d shifts expired, %d claims released, %d notifications pruned",
        counts["expired_shifts"],
        counts["released_claims"],
        counts["pruned_notifications"],
    )
    return counts


async def startup(ctx: dict) -> None:
    """Initialize Redis + DB connections on worker startup."""
    settings = get_settings()
    setup_logging(settings)
    await init_db(settings.database_url)
    ctx["redis"] = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=10,
    )
    logger.info("Shift worker started")


async def shutdown(ctx: dict) -> None:
    """Clean up on worker shutdown."""
    redis_client = ctx.get("redis")
    if redis_client:
        await redis_client.aclose()
    await close_db()
    logger.info("Shift worker shut down")


def _every(minutes: int) -> set[int]:
    return set(range(0, 60, minutes))


class ShiftWorkerSettings:
    """arq worker settings for shift scheduling and maintenance."""

    functions = [generate_shifts, run_maintenance]
    cron_jobs = [
        cron(generate_shifts, minute={get_settings().shift_generator_minute}, run_at_startup=True),
        cron(run_maintenance, minute=_every(get_settings().maintenance_interval_minutes)),
    ]
    on_startup = startup
    on_shutdown = shutdown
    max_jobs = 2
    job_timeout = 300

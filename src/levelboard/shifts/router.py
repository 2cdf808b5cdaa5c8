"""Shift API endpoints: listing (2), templates (3), manual generation (1)."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from levelboard.auth.dependencies import Actor, get_current_user, require_moderator
from levelboard.database import get_session
from levelboard.db.models import ListVariant, ShiftStatus
from levelboard.shifts.recurring_service import (
    create_shifts_for_date,
    create_template,
    delete_template,
    list_templates,
)
from levelboard.shifts.schemas import (
    GenerateShiftsRequest,
    RecurringShiftCreate,
    RecurringShiftResponse,
    ShiftResponse,
)
from levelboard.shifts.shift_service import get_user_shifts, list_shifts

router = APIRouter(prefix="/api/v1/{variant}/shifts", tags=["Shifts"])


@router.get("", response_model=list[ShiftResponse])
async def list_shifts_endpoint(
    variant: ListVariant,
    user_id: uuid.UUID | None = Query(None),
    status: ShiftStatus | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    _actor: Actor = Depends(require_moderator),
    db: AsyncSession = Depends(get_session),
):
    """All reviewers' shifts, most recent first (moderators)."""
    return await list_shifts(db, variant, user_id, status, limit=limit, offset=offset)


@router.get("/me", response_model=list[ShiftResponse])
async def my_shifts_endpoint(
    variant: ListVariant,
    status: ShiftStatus | None = Query(None),
    actor: Actor = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """The caller's shifts, most recent first."""
    return await get_user_shifts(db, variant, actor.id, status)


@router.get("/templates", response_model=list[RecurringShiftResponse])
async def list_templates_endpoint(
    variant: ListVariant,
    user_id: uuid.UUID | None = Query(None),
    _actor: Actor = Depends(require_moderator),
    db: AsyncSession = Depends(get_session),
):
    return await list_templates(db, variant, user_id)


@router.post("/templates", response_model=RecurringShiftResponse, status_code=201)
async def create_template_endpoint(
    variant: ListVariant,
    body: RecurringShiftCreate,
    _actor: Actor = Depends(require_moderator),
    db: AsyncSession = Depends(get_session),
):
    """Schedule a weekly shift for a reviewer."""
    try:
        template = await create_template(
            db,
            variant,
            body.user_id,
            body.weekday,
            body.start_hour,
            body.duration,
            body.target_count,
        )
        await db.commit()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return template


@router.delete("/templates/{template_id}", status_code=204)
async def delete_template_endpoint(
    variant: ListVariant,
    template_id: uuid.UUID,
    _actor: Actor = Depends(require_moderator),
    db: AsyncSession = Depends(get_session),
) -> None:
    if not await delete_template(db, variant, template_id):
        raise HTTPException(status_code=404, detail="Template not found")
    await db.commit()


@router.post("/generate", response_model=list[ShiftResponse])
async def generate_shifts_endpoint(
    variant: ListVariant,
    body: GenerateShiftsRequest,
    _actor: Actor = Depends(require_moderator),
    db: AsyncSession = Depends(get_session),
):
    """Run the generator for one day now. Safe to repeat."""
    created = await create_shifts_for_date(db, variant, body.day)
    await db.commit()
    return created

"""Pydantic schemas for shift endpoints."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from levelboard.db.models import Weekday


class ShiftResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    list_variant: str
    user_id: uuid.UUID
    target_count: int
    completed_count: int
    start_at: datetime
    end_at: datetime
    status: str


class RecurringShiftCreate(BaseModel):
    user_id: uuid.UUID
    weekday: Weekday
    # Range checks happen in the service so the API and workers share them
    start_hour: int
    duration: int
    target_count: int


class RecurringShiftResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    list_variant: str
    user_id: uuid.UUID
    weekday: str
    start_hour: int
    duration: int
    target_count: int


class GenerateShiftsRequest(BaseModel):
    day: date = Field(default_factory=lambda: datetime.now(timezone.utc).date())

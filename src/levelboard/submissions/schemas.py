"""Pydantic schemas for submission and review endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


# --- Intake ---


class SubmissionCreate(BaseModel):
    level_id: uuid.UUID
    video_url: str = Field(..., max_length=2048)
    raw_url: str | None = Field(None, max_length=2048)
    mobile: bool = False
    ldm_id: int | None = Field(None, ge=0)
    mod_menu: str | None = Field(None, max_length=64)
    user_notes: str | None = Field(None, max_length=1000)
    completion_time: int | None = Field(None, ge=0)
    # Set by reviewers submitting on a player's behalf
    submitted_by: uuid.UUID | None = None


class SubmissionPatch(BaseModel):
    video_url: str | None = Field(None, max_length=2048)
    raw_url: str | None = Field(None, max_length=2048)
    mobile: bool | None = None
    ldm_id: int | None = Field(None, ge=0)
    mod_menu: str | None = Field(None, max_length=64)
    user_notes: str | None = Field(None, max_length=1000)
    completion_time: int | None = Field(None, ge=0)


class SubmissionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    list_variant: str
    level_id: uuid.UUID
    submitted_by: uuid.UUID
    mobile: bool
    ldm_id: int | None = None
    video_url: str
    raw_url: str | None = None
    mod_menu: str | None = None
    user_notes: str | None = None
    completion_time: int | None = None
    priority: bool
    status: str
    reviewer_id: uuid.UUID | None = None
    reviewer_notes: str | None = None
    created_at: datetime
    updated_at: datetime


# --- Review ---


class ReviewRequest(BaseModel):
    notes: str | None = Field(None, max_length=1000)


class RecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    list_variant: str
    level_id: uuid.UUID
    submitted_by: uuid.UUID
    mobile: bool
    video_url: str
    raw_url: str | None = None
    reviewer_id: uuid.UUID | None = None
    reviewer_notes: str | None = None
    is_verification: bool
    created_at: datetime
    updated_at: datetime


class HistoryEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    submission_id: uuid.UUID
    record_id: uuid.UUID | None = None
    status: str
    reviewer_notes: str | None = None
    user_notes: str | None = None
    reviewer_id: uuid.UUID | None = None
    timestamp: datetime


# --- Queue ---


class QueuePositionResponse(BaseModel):
    position: int
    total: int


class QueueSummaryResponse(BaseModel):
    pending_count: int
    under_consideration_count: int
    oldest_pending_at: datetime | None = None


# --- Gate ---


class GateStatusResponse(BaseModel):
    enabled: bool


class GateUpdateRequest(BaseModel):
    enabled: bool

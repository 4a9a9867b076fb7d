"""Schemas for user profiles and scheduling preferences."""
from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import Field

from app.api.schemas.task_plan import CamelModel

Weekday = Literal["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


class UserPreferencesPayload(CamelModel):
    max_hours_per_day: int = Field(default=8, ge=1, le=24)
    work_days: List[Weekday] = Field(
        default_factory=lambda: ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]
    )


class UserPreferencesUpdate(CamelModel):
    max_hours_per_day: Optional[int] = Field(default=None, ge=1, le=24)
    work_days: Optional[List[Weekday]] = Field(default=None, min_length=1)


class UserUpdateRequest(CamelModel):
    name: Optional[str] = Field(default=None, max_length=120)
    email: Optional[str] = Field(default=None, max_length=320)
    preferences: Optional[UserPreferencesUpdate] = None


class UserResponse(CamelModel):
    user_id: UUID
    name: Optional[str]
    email: Optional[str]
    preferences: UserPreferencesPayload
    created_at: datetime
    updated_at: datetime
    request_id: str

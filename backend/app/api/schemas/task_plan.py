"""Schemas for task plan generation and tracking."""
from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SubtaskPayload(CamelModel):
    id: str = Field(..., min_length=1, strict=True)
    name: str = Field(..., min_length=1, strict=True)
    duration: str = Field(..., pattern=r"^[0-9]+[hm]$", strict=True)
    priority: Literal["High", "Medium", "Low"]
    done: bool = Field(..., strict=True)


class GeneratedPlanPayload(CamelModel):
    """Plan object as returned by the completion model."""

    subtasks: List[SubtaskPayload] = Field(..., min_length=3, max_length=10)
    schedule: Dict[str, List[StrictStr]]
    total_estimated_time: str = Field(..., pattern=r"^[0-9]+h$", strict=True)
    notes: str = Field(..., min_length=1, strict=True)


class TaskGenerateRequest(CamelModel):
    user_id: UUID
    task_name: str = Field(..., min_length=1, max_length=200)
    time_mode: Literal["days", "hours"]
    amount: int = Field(..., gt=0, le=365, strict=True)

    @field_validator("task_name")
    @classmethod
    def strip_task_name(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("taskName must be a non-empty string")
        return cleaned


class TaskPlanResponse(CamelModel):
    task_id: UUID
    user_id: UUID
    task_name: str
    time_mode: Literal["days", "hours"]
    amount: int
    subtasks: List[SubtaskPayload]
    schedule: Dict[str, List[str]]
    total_estimated_time: str
    notes: str
    source: Literal["ai", "fallback"]
    progress: float = Field(..., ge=0, le=1)
    created_at: datetime
    updated_at: datetime
    request_id: str


class TaskPlanListResponse(CamelModel):
    tasks: List[TaskPlanResponse]
    count: int
    request_id: str


class SubtaskUpdateRequest(CamelModel):
    user_id: UUID
    done: bool = Field(..., strict=True)


class TaskDeleteResponse(CamelModel):
    message: str
    task_id: UUID
    request_id: str

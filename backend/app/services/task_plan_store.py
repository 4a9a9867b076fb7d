"""Persistence helpers for generated task plans."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List
from uuid import UUID

from sqlalchemy.orm import Session

from app.db.models.task_plan import TaskPlan
from app.services.plan_generator import GeneratedPlan


class TaskPlanNotFoundError(LookupError):
    """No task plan exists with the given id."""


class SubtaskNotFoundError(LookupError):
    """The task plan has no subtask with the given id."""


class TaskPlanOwnershipError(PermissionError):
    """The task plan belongs to a different user."""


def create_task_plan(
    db: Session,
    *,
    user_id: UUID,
    task_name: str,
    time_mode: str,
    amount: int,
    generated: GeneratedPlan,
) -> TaskPlan:
    plan = generated.plan
    now = datetime.now(timezone.utc)
    task_plan = TaskPlan(
        user_id=user_id,
        task_name=task_name,
        time_mode=time_mode,
        amount=amount,
        subtasks=[{**subtask, "id": str(subtask["id"])} for subtask in plan["subtasks"]],
        schedule={key: [str(sub_id) for sub_id in ids] for key, ids in plan["schedule"].items()},
        total_estimated_time=plan["totalEstimatedTime"],
        notes=plan.get("notes") or "",
        source=generated.source,
        created_at=now,
        updated_at=now,
    )
    db.add(task_plan)
    db.flush()
    return task_plan


def list_task_plans(db: Session, user_id: UUID) -> List[TaskPlan]:
    """Return a user's task plans, newest first."""
    return (
        db.query(TaskPlan)
        .filter(TaskPlan.user_id == user_id)
        .order_by(TaskPlan.created_at.desc())
        .all()
    )


def get_owned_task_plan(db: Session, task_id: UUID, user_id: UUID) -> TaskPlan:
    task_plan = db.get(TaskPlan, task_id)
    if not task_plan:
        raise TaskPlanNotFoundError(str(task_id))
    if task_plan.user_id != user_id:
        raise TaskPlanOwnershipError(str(task_id))
    return task_plan


def update_subtask(db: Session, task_plan: TaskPlan, sub_id: str, *, done: bool) -> TaskPlan:
    subtasks: List[Dict[str, Any]] = [dict(subtask) for subtask in task_plan.subtasks or []]
    for subtask in subtasks:
        if str(subtask.get("id")) == sub_id:
            subtask["done"] = done
            break
    else:
        raise SubtaskNotFoundError(sub_id)

    # A fresh list is assigned so SQLAlchemy notices the JSON change.
    task_plan.subtasks = subtasks
    task_plan.updated_at = datetime.now(timezone.utc)
    db.add(task_plan)
    db.flush()
    return task_plan


def delete_task_plan(db: Session, task_plan: TaskPlan) -> None:
    db.delete(task_plan)
    db.flush()


def completion_ratio(task_plan: TaskPlan) -> float:
    subtasks = task_plan.subtasks or []
    if not subtasks:
        return 0.0
    return sum(1 for subtask in subtasks if subtask.get("done") is True) / len(subtasks)

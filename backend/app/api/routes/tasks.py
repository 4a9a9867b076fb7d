"""Task plan API routes."""
from __future__ import annotations

from time import perf_counter
from typing import Any, Dict, List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from app.api.deps import get_plan_generator
from app.api.schemas.task_plan import (
    SubtaskPayload,
    SubtaskUpdateRequest,
    TaskDeleteResponse,
    TaskGenerateRequest,
    TaskPlanListResponse,
    TaskPlanResponse,
)
from app.db.deps import get_db
from app.db.models.task_plan import TaskPlan
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.services.plan_generator import PlanGenerator
from app.services.task_plan_store import (
    SubtaskNotFoundError,
    TaskPlanNotFoundError,
    TaskPlanOwnershipError,
    completion_ratio,
    create_task_plan,
    delete_task_plan,
    get_owned_task_plan,
    list_task_plans,
    update_subtask,
)
from app.services.user_service import get_or_create_user, get_user_preferences

router = APIRouter()


@router.post(
    "/tasks/generate",
    response_model=TaskPlanResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["tasks"],
)
def generate_task_plan(
    payload: TaskGenerateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
    generator: PlanGenerator = Depends(get_plan_generator),
) -> TaskPlanResponse:
    """Generate a subtask breakdown and schedule, then store it for the user."""
    request_id = getattr(http_request.state, "request_id", None)
    metadata: Dict[str, Any] = {
        "route": "/tasks/generate",
        "user_id": str(payload.user_id),
        "time_mode": payload.time_mode,
        "amount": payload.amount,
        "request_id": request_id,
    }

    start_time = perf_counter()
    success = False
    source = "unknown"
    try:
        with trace(
            "task.generate",
            metadata=metadata,
            user_id=str(payload.user_id),
            request_id=request_id,
        ) as generate_trace:
            user = get_or_create_user(db, payload.user_id)
            preferences = get_user_preferences(user)
            generated = generator.generate(
                payload.task_name,
                payload.time_mode,
                payload.amount,
                preferences,
                request_id=request_id,
            )
            source = generated.source
            task_plan = create_task_plan(
                db,
                user_id=payload.user_id,
                task_name=payload.task_name,
                time_mode=payload.time_mode,
                amount=payload.amount,
                generated=generated,
            )
            db.commit()
            db.refresh(task_plan)
            if generate_trace:
                generate_trace.update(
                    metadata={
                        "source": generated.source,
                        "failure_reason": generated.failure_reason,
                        "subtasks": len(task_plan.subtasks),
                        "buckets": len(task_plan.schedule),
                        "total_estimated_time": task_plan.total_estimated_time,
                    }
                )
            success = True
    except Exception as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate task plan",
        ) from exc
    finally:
        latency_ms = (perf_counter() - start_time) * 1000
        metric_metadata = {"user_id": str(payload.user_id), "time_mode": payload.time_mode, "source": source}
        log_metric("task.generate.success", 1 if success else 0, metadata=metric_metadata)
        log_metric("task.generate.latency_ms", latency_ms, metadata=metric_metadata)

    return _serialize_task_plan(task_plan, request_id)


@router.get("/tasks", response_model=TaskPlanListResponse, tags=["tasks"])
def list_task_plans_endpoint(
    http_request: Request,
    user_id: UUID = Query(..., description="User ID owning the task plans"),
    db: Session = Depends(get_db),
) -> TaskPlanListResponse:
    """List a user's task plans, newest first."""
    request_id = getattr(http_request.state, "request_id", None)
    with trace(
        "task.list",
        metadata={"route": "/tasks", "user_id": str(user_id)},
        user_id=str(user_id),
        request_id=request_id,
    ):
        task_plans = list_task_plans(db, user_id)

    log_metric("task.list.count", len(task_plans), metadata={"user_id": str(user_id)})
    return TaskPlanListResponse(
        tasks=[_serialize_task_plan(task_plan, request_id) for task_plan in task_plans],
        count=len(task_plans),
        request_id=request_id or "",
    )


@router.get("/tasks/{task_id}", response_model=TaskPlanResponse, tags=["tasks"])
def get_task_plan_endpoint(
    task_id: UUID,
    http_request: Request,
    user_id: UUID = Query(..., description="User ID owning the task plan"),
    db: Session = Depends(get_db),
) -> TaskPlanResponse:
    """Return a single task plan owned by the user."""
    request_id = getattr(http_request.state, "request_id", None)
    task_plan = _load_owned(db, task_id, user_id)
    return _serialize_task_plan(task_plan, request_id)


@router.patch("/tasks/{task_id}/subtasks/{sub_id}", response_model=TaskPlanResponse, tags=["tasks"])
def update_subtask_endpoint(
    task_id: UUID,
    sub_id: str,
    payload: SubtaskUpdateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> TaskPlanResponse:
    """Mark a subtask done or not done."""
    request_id = getattr(http_request.state, "request_id", None)
    task_plan = _load_owned(db, task_id, payload.user_id)

    try:
        with trace(
            "task.subtask.update",
            metadata={
                "route": f"/tasks/{task_id}/subtasks/{sub_id}",
                "task_id": str(task_id),
                "sub_id": sub_id,
                "done": payload.done,
            },
            user_id=str(payload.user_id),
            request_id=request_id,
        ):
            update_subtask(db, task_plan, sub_id, done=payload.done)
            db.commit()
            db.refresh(task_plan)
    except SubtaskNotFoundError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subtask not found") from exc
    except Exception:
        db.rollback()
        raise

    log_metric(
        "task.subtask.progress",
        completion_ratio(task_plan),
        metadata={"user_id": str(payload.user_id), "task_id": str(task_id)},
    )
    return _serialize_task_plan(task_plan, request_id)


@router.delete("/tasks/{task_id}", response_model=TaskDeleteResponse, tags=["tasks"])
def delete_task_plan_endpoint(
    task_id: UUID,
    http_request: Request,
    user_id: UUID = Query(..., description="User ID owning the task plan"),
    db: Session = Depends(get_db),
) -> TaskDeleteResponse:
    """Delete a task plan owned by the user."""
    request_id = getattr(http_request.state, "request_id", None)
    task_plan = _load_owned(db, task_id, user_id)

    try:
        delete_task_plan(db, task_plan)
        db.commit()
    except Exception:
        db.rollback()
        raise

    log_metric("task.delete.success", 1, metadata={"user_id": str(user_id), "task_id": str(task_id)})
    return TaskDeleteResponse(
        message="Task plan deleted successfully",
        task_id=task_id,
        request_id=request_id or "",
    )


def _load_owned(db: Session, task_id: UUID, user_id: UUID) -> TaskPlan:
    try:
        return get_owned_task_plan(db, task_id, user_id)
    except TaskPlanNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task plan not found") from exc
    except TaskPlanOwnershipError as exc:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Task plan does not belong to user",
        ) from exc


def _serialize_task_plan(task_plan: TaskPlan, request_id: str | None) -> TaskPlanResponse:
    subtasks: List[SubtaskPayload] = [SubtaskPayload(**subtask) for subtask in task_plan.subtasks or []]
    return TaskPlanResponse(
        task_id=task_plan.id,
        user_id=task_plan.user_id,
        task_name=task_plan.task_name,
        time_mode=task_plan.time_mode,
        amount=task_plan.amount,
        subtasks=subtasks,
        schedule={key: [str(sub_id) for sub_id in ids] for key, ids in (task_plan.schedule or {}).items()},
        total_estimated_time=task_plan.total_estimated_time,
        notes=task_plan.notes or "",
        source=task_plan.source,
        progress=completion_ratio(task_plan),
        created_at=task_plan.created_at,
        updated_at=task_plan.updated_at,
        request_id=request_id or "",
    )

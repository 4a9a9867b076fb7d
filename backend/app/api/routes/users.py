"""User profile and preference routes."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.api.schemas.user import UserPreferencesPayload, UserResponse, UserUpdateRequest
from app.db.deps import get_db
from app.db.models.user import User
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.services.user_service import UserNotFoundError, get_user, get_user_preferences, update_user

router = APIRouter()


@router.get("/users/{user_id}", response_model=UserResponse, tags=["users"])
def get_user_endpoint(
    user_id: UUID,
    http_request: Request,
    db: Session = Depends(get_db),
) -> UserResponse:
    """Return a user's profile and scheduling preferences."""
    request_id = getattr(http_request.state, "request_id", None)
    try:
        user = get_user(db, user_id)
    except UserNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found") from exc
    return _serialize_user(user, request_id)


@router.patch("/users/{user_id}", response_model=UserResponse, tags=["users"])
def update_user_endpoint(
    user_id: UUID,
    payload: UserUpdateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> UserResponse:
    """Update profile fields and merge preference changes."""
    request_id = getattr(http_request.state, "request_id", None)
    preferences = payload.preferences.model_dump(by_alias=True, exclude_none=True) if payload.preferences else None

    try:
        with trace(
            "user.update",
            metadata={
                "route": f"/users/{user_id}",
                "fields": sorted(payload.model_dump(exclude_none=True)),
            },
            user_id=str(user_id),
            request_id=request_id,
        ):
            user = update_user(
                db,
                user_id,
                name=payload.name,
                email=payload.email,
                preferences=preferences,
            )
    except Exception:
        db.rollback()
        raise

    log_metric("user.update.success", 1, metadata={"user_id": str(user_id)})
    return _serialize_user(user, request_id)


def _serialize_user(user: User, request_id: str | None) -> UserResponse:
    prefs = get_user_preferences(user)
    return UserResponse(
        user_id=user.id,
        name=user.name,
        email=user.email,
        preferences=UserPreferencesPayload(
            max_hours_per_day=prefs.max_hours_per_day,
            work_days=prefs.work_days,
        ),
        created_at=user.created_at,
        updated_at=user.updated_at,
        request_id=request_id or "",
    )

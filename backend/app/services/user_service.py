"""Helpers for working with users and their scheduling preferences."""
from __future__ import annotations

from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db.models.user import User
from app.services.plan_generator import UserPreferences


class UserNotFoundError(LookupError):
    """No user row exists for the given id."""


def get_or_create_user(db: Session, user_id: UUID) -> User:
    """Fetch an existing user or create a new row with default preferences."""
    user = db.get(User, user_id)
    if user:
        return user

    user = User(id=user_id, preferences=UserPreferences().to_dict())
    db.add(user)
    try:
        db.flush()
        return user
    except IntegrityError:
        db.rollback()
        existing = db.get(User, user_id)
        if existing:
            return existing
        raise


def get_user(db: Session, user_id: UUID) -> User:
    user = db.get(User, user_id)
    if not user:
        raise UserNotFoundError(str(user_id))
    return user


def get_user_preferences(user: Optional[User]) -> UserPreferences:
    return UserPreferences.from_mapping(user.preferences if user else None)


def update_user(
    db: Session,
    user_id: UUID,
    *,
    name: Optional[str] = None,
    email: Optional[str] = None,
    preferences: Optional[Dict[str, Any]] = None,
) -> User:
    """Apply profile changes; preference keys are merged over the stored ones."""
    user = get_or_create_user(db, user_id)
    if name is not None:
        user.name = name
    if email is not None:
        user.email = email
    if preferences is not None:
        merged = get_user_preferences(user).to_dict()
        merged.update({key: value for key, value in preferences.items() if value is not None})
        # Reassign so the JSON column is flagged dirty.
        user.preferences = UserPreferences.from_mapping(merged).to_dict()
    db.add(user)
    db.commit()
    db.refresh(user)
    return user

"""Task plan ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base
from app.db.types import JSONBCompat


class TaskPlan(Base):
    __tablename__ = "task_plans"
    __table_args__ = (
        Index("ix_task_plans_user_id", "user_id"),
        Index("ix_task_plans_created_at", "created_at"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    task_name = Column(Text, nullable=False)
    time_mode = Column(String(length=10), nullable=False)
    amount = Column(Integer, nullable=False)
    subtasks = Column(JSONBCompat, nullable=False)
    schedule = Column(JSONBCompat, nullable=False)
    total_estimated_time = Column(String(length=20), nullable=False)
    notes = Column(Text, nullable=False, server_default=sa_text("''"))
    source = Column(String(length=20), nullable=False, server_default=sa_text("'ai'"))
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

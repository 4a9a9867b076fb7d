"""ORM models exposed for metadata discovery."""
from app.db.models.task_plan import TaskPlan
from app.db.models.user import User

__all__ = [
    "TaskPlan",
    "User",
]

from app.db.base import Base
from app.db import models  # noqa: F401  ensure models are loaded


def test_metadata_contains_core_tables() -> None:
    assert {"users", "task_plans"}.issubset(Base.metadata.tables.keys())


def test_task_plans_reference_users() -> None:
    task_plans = Base.metadata.tables["task_plans"]
    targets = {fk.target_fullname for fk in task_plans.foreign_keys}

    assert targets == {"users.id"}

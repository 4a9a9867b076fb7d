"""Tests for plan validation and consistency diagnostics."""
from __future__ import annotations

import copy

import pytest

from app.services.plan_validator import blocking_issues, plan_consistency_issues, validate_plan


def _plan() -> dict:
    return {
        "subtasks": [
            {"id": "1", "name": "Sketch layout", "duration": "2h", "priority": "High", "done": False},
            {"id": "2", "name": "Write copy", "duration": "1h", "priority": "Medium", "done": False},
            {"id": "3", "name": "Publish", "duration": "30m", "priority": "Low", "done": False},
        ],
        "schedule": {"day1": ["1", "2"], "day2": ["3"]},
        "totalEstimatedTime": "4h",
        "notes": "Start with the layout.",
    }


def test_valid_plan_passes() -> None:
    assert validate_plan(_plan()) is True


def test_plan_with_single_subtask_is_rejected() -> None:
    plan = _plan()
    plan["subtasks"] = plan["subtasks"][:1]
    assert validate_plan(plan) is False


def test_plan_with_more_than_ten_subtasks_is_rejected() -> None:
    plan = _plan()
    plan["subtasks"] = [
        {"id": str(n), "name": f"Step {n}", "duration": "1h", "priority": "Low", "done": False} for n in range(1, 12)
    ]
    assert validate_plan(plan) is False


@pytest.mark.parametrize(
    "field,value",
    [
        ("duration", "abc"),
        ("duration", "1.5h"),
        ("duration", 2),
        ("priority", "Urgent"),
        ("done", "true"),
        ("done", 0),
        ("done", None),
        ("name", ""),
        ("id", None),
    ],
)
def test_invalid_subtask_fields_are_rejected(field: str, value) -> None:
    plan = _plan()
    plan["subtasks"][1][field] = value
    assert validate_plan(plan) is False


def test_missing_done_is_rejected() -> None:
    plan = _plan()
    del plan["subtasks"][0]["done"]
    assert validate_plan(plan) is False


@pytest.mark.parametrize("field", ["subtasks", "schedule", "totalEstimatedTime", "notes"])
def test_missing_top_level_field_is_rejected(field: str) -> None:
    plan = _plan()
    del plan[field]
    assert validate_plan(plan) is False


def test_empty_notes_are_rejected() -> None:
    plan = _plan()
    plan["notes"] = ""
    assert validate_plan(plan) is False


@pytest.mark.parametrize("value", [None, [], "plan", 42])
def test_non_mapping_input_is_rejected(value) -> None:
    assert validate_plan(value) is False


def test_validation_is_pure_and_repeatable() -> None:
    plan = _plan()
    snapshot = copy.deepcopy(plan)

    first = validate_plan(plan)
    second = validate_plan(plan)

    assert first is second is True
    assert plan == snapshot


def test_validator_does_not_inspect_schedule() -> None:
    # The looser contract: dangling or missing schedule entries do not fail validate_plan.
    plan = _plan()
    plan["schedule"] = {"day1": ["99"]}
    assert validate_plan(plan) is True
    assert "unknown_subtask:day1:99" in plan_consistency_issues(plan)


def test_consistent_plan_has_no_issues() -> None:
    assert plan_consistency_issues(_plan()) == []


def test_consistency_issues_separate_blocking_from_warnings() -> None:
    plan = _plan()
    plan["schedule"] = {"day1": ["1", "7"]}
    plan["totalEstimatedTime"] = "9h"

    issues = plan_consistency_issues(plan)

    assert "unknown_subtask:day1:7" in issues
    assert "unscheduled_subtask:2" in issues
    assert "unscheduled_subtask:3" in issues
    assert "total_mismatch:9h!=4h" in issues
    assert blocking_issues(issues) == ["total_mismatch:9h!=4h", "unknown_subtask:day1:7"]


def test_zero_duration_and_bad_schedule_shape_are_blocking() -> None:
    plan = _plan()
    plan["subtasks"][0]["duration"] = "0h"
    plan["schedule"] = ["1", "2", "3"]

    blocking = blocking_issues(plan_consistency_issues(plan))

    assert "zero_duration:1" in blocking
    assert "schedule_not_mapping" in blocking


@pytest.mark.parametrize("total", ["banana", "4", "4.5h", ""])
def test_malformed_total_is_blocking(total: str) -> None:
    plan = _plan()
    plan["totalEstimatedTime"] = total

    assert blocking_issues(plan_consistency_issues(plan)) == [f"total_invalid:{total}"]


def test_subtask_created_done_is_blocking() -> None:
    plan = _plan()
    plan["subtasks"][1]["done"] = True

    assert blocking_issues(plan_consistency_issues(plan)) == ["subtask_done:2"]


def test_bucket_keys_must_follow_time_mode_numbering() -> None:
    assert plan_consistency_issues(_plan(), time_mode="days") == []

    wrong_prefix = blocking_issues(plan_consistency_issues(_plan(), time_mode="hours"))
    assert wrong_prefix == ["schedule_bad_key:day1", "schedule_bad_key:day2"]

    plan = _plan()
    plan["schedule"] = {"day1": ["1", "2"], "day3": ["3"]}
    assert blocking_issues(plan_consistency_issues(plan, time_mode="days")) == ["schedule_bad_key:day3"]


def test_empty_bucket_is_blocking() -> None:
    plan = _plan()
    plan["schedule"] = {"day1": ["1", "2", "3"], "day2": []}

    assert blocking_issues(plan_consistency_issues(plan, time_mode="days")) == ["schedule_empty_bucket:day2"]


def test_bucket_over_daily_budget_is_blocking() -> None:
    plan = _plan()

    assert plan_consistency_issues(plan, max_hours_per_day=3) == []
    assert blocking_issues(plan_consistency_issues(plan, max_hours_per_day=2)) == ["over_budget:day1:3h>2h"]


def test_single_oversized_subtask_may_exceed_budget() -> None:
    plan = _plan()
    plan["schedule"] = {"day1": ["1"], "day2": ["2"], "day3": ["3"]}

    assert plan_consistency_issues(plan, time_mode="days", max_hours_per_day=1) == []

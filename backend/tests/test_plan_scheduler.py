"""Tests for duration parsing and the greedy bin-packer."""
from __future__ import annotations

import pytest

from app.services.plan_scheduler import (
    InvalidDurationError,
    bucket_hours,
    bucket_key,
    duration_hours,
    format_total_hours,
    pack_subtasks,
    parse_duration,
)


def _subtasks(*durations: str) -> list[dict]:
    return [{"id": str(index), "duration": duration} for index, duration in enumerate(durations, start=1)]


def test_parse_duration_accepts_hours_and_minutes() -> None:
    assert parse_duration("2h").hours == 2.0
    assert parse_duration("45m").hours == 0.75
    assert str(parse_duration("45m")) == "45m"


@pytest.mark.parametrize("raw", ["abc", "2", "h", "1.5h", "2h30m", "2H", " 2h", "2h\n", "", None, 3])
def test_parse_duration_rejects_malformed_values(raw) -> None:
    with pytest.raises(InvalidDurationError):
        parse_duration(raw)


def test_minutes_are_normalized_to_fractional_hours() -> None:
    assert duration_hours("90m") == 1.5
    # 45 minutes must not count as 45 hours against a daily budget.
    assert pack_subtasks(_subtasks("45m", "45m"), "days", 2) == {"day1": ["1", "2"]}


def test_format_total_hours_rounds_partial_hours_up() -> None:
    assert format_total_hours(9) == "9h"
    assert format_total_hours(2.25) == "3h"
    assert format_total_hours(0.1 + 0.2 + 0.7) == "1h"


def test_bucket_key_vocabulary() -> None:
    assert bucket_key("days", 1) == "day1"
    assert bucket_key("hours", 3) == "session3"
    with pytest.raises(ValueError):
        bucket_key("weeks", 1)
    with pytest.raises(ValueError):
        bucket_key("days", 0)


def test_pack_fills_bucket_up_to_budget_inclusive() -> None:
    schedule = pack_subtasks(_subtasks("2h", "1h", "3h", "2h", "1h"), "days", 8)

    assert schedule == {"day1": ["1", "2", "3", "4"], "day2": ["5"]}


def test_pack_uses_session_keys_for_hours_mode() -> None:
    schedule = pack_subtasks(_subtasks("2h", "1h", "3h", "2h", "1h"), "hours", 3)

    assert schedule == {"session1": ["1", "2"], "session2": ["3"], "session3": ["4", "5"]}


def test_oversized_subtask_gets_its_own_bucket() -> None:
    schedule = pack_subtasks(_subtasks("5h", "1h", "1h", "6h"), "days", 4)

    assert schedule == {"day1": ["1"], "day2": ["2", "3"], "day3": ["4"]}


def test_pack_never_emits_empty_buckets() -> None:
    schedule = pack_subtasks(_subtasks("9h", "9h"), "days", 8)

    assert schedule == {"day1": ["1"], "day2": ["2"]}
    assert pack_subtasks([], "days", 8) == {}


@pytest.mark.parametrize("budget", [1, 2, 3, 4, 5, 8, 12])
def test_pack_respects_budget_and_places_every_subtask(budget: int) -> None:
    subtasks = _subtasks("2h", "1h", "3h", "2h", "1h", "30m", "4h")
    schedule = pack_subtasks(subtasks, "days", budget)

    placed = [sub_id for ids in schedule.values() for sub_id in ids]
    assert placed == [subtask["id"] for subtask in subtasks]
    assert list(schedule) == [f"day{n}" for n in range(1, len(schedule) + 1)]
    for key, hours in bucket_hours(schedule, subtasks).items():
        assert hours <= budget or len(schedule[key]) == 1


def test_pack_rejects_non_positive_budget() -> None:
    with pytest.raises(ValueError):
        pack_subtasks(_subtasks("1h"), "days", 0)

"""Structural checks applied to every generated plan before it is accepted."""
from __future__ import annotations

import re
from typing import Any, Dict, List, Mapping, Optional

from app.services.plan_scheduler import (
    DURATION_PATTERN,
    InvalidDurationError,
    bucket_hours,
    bucket_key,
    format_total_hours,
    parse_duration,
)

REQUIRED_PLAN_FIELDS = ("subtasks", "schedule", "totalEstimatedTime", "notes")
REQUIRED_SUBTASK_FIELDS = ("id", "name", "duration", "priority")
VALID_PRIORITIES = ("High", "Medium", "Low")
MIN_SUBTASKS = 3
MAX_SUBTASKS = 10

# Issues that make a remotely generated plan unusable. Anything else is reported
# but tolerated.
BLOCKING_ISSUE_PREFIXES = (
    "schedule_",
    "unknown_subtask",
    "duplicate_subtask",
    "invalid_duration",
    "zero_duration",
    "subtask_done",
    "total_",
    "over_budget",
)

TOTAL_PATTERN = re.compile(r"([0-9]+)h")


def validate_plan(plan: Any) -> bool:
    """
    Return True when ``plan`` satisfies the plan contract.

    Checks short-circuit in order: top-level fields present, subtask count in
    [3, 10], then per-subtask fields, duration format, priority and a strictly
    boolean ``done``. The schedule is not inspected here; see
    :func:`plan_consistency_issues` for that.
    """
    if not isinstance(plan, Mapping):
        return False

    for field in REQUIRED_PLAN_FIELDS:
        if plan.get(field) is None or plan.get(field) == "":
            return False

    subtasks = plan["subtasks"]
    if not isinstance(subtasks, list):
        return False
    if len(subtasks) < MIN_SUBTASKS or len(subtasks) > MAX_SUBTASKS:
        return False

    for subtask in subtasks:
        if not isinstance(subtask, Mapping):
            return False
        if not all(subtask.get(field) for field in REQUIRED_SUBTASK_FIELDS):
            return False
        duration = subtask["duration"]
        if not isinstance(duration, str) or not DURATION_PATTERN.fullmatch(duration):
            return False
        if subtask["priority"] not in VALID_PRIORITIES:
            return False
        if not isinstance(subtask.get("done"), bool):
            return False

    return True


def plan_consistency_issues(
    plan: Mapping[str, Any],
    time_mode: Optional[str] = None,
    max_hours_per_day: Optional[float] = None,
) -> List[str]:
    """
    List schedule and total-time problems of a plan that passed validate_plan.

    Bucket keys are checked against ``time_mode`` and bucket totals against
    ``max_hours_per_day`` only when those are given. A bucket holding a single
    subtask may exceed the budget.
    """
    issues: List[str] = []
    subtasks = plan.get("subtasks") or []
    seen_ids: Dict[str, int] = {}
    timed_subtasks: List[Mapping[str, Any]] = []
    total = 0.0

    for subtask in subtasks:
        sub_id = str(subtask.get("id"))
        seen_ids[sub_id] = seen_ids.get(sub_id, 0) + 1
        if subtask.get("done") is not False:
            issues.append(f"subtask_done:{sub_id}")
        try:
            duration = parse_duration(subtask.get("duration"))
        except InvalidDurationError:
            issues.append(f"invalid_duration:{sub_id}")
            continue
        if duration.value == 0:
            issues.append(f"zero_duration:{sub_id}")
        total += duration.hours
        timed_subtasks.append(subtask)

    issues.extend(f"duplicate_subtask:{sub_id}" for sub_id, count in seen_ids.items() if count > 1)

    expected_total = format_total_hours(total)
    stated_total = plan.get("totalEstimatedTime")
    if not isinstance(stated_total, str) or not TOTAL_PATTERN.fullmatch(stated_total):
        issues.append(f"total_invalid:{stated_total}")
    elif stated_total != expected_total:
        issues.append(f"total_mismatch:{stated_total}!={expected_total}")

    schedule = plan.get("schedule")
    if not isinstance(schedule, Mapping):
        issues.append("schedule_not_mapping")
        return issues

    if time_mode is not None:
        for index, bucket in enumerate(schedule, start=1):
            if bucket != bucket_key(time_mode, index):
                issues.append(f"schedule_bad_key:{bucket}")

    buckets: Dict[str, List[Any]] = {}
    scheduled: set[str] = set()
    for bucket, ids in schedule.items():
        if not isinstance(ids, list):
            issues.append(f"schedule_bucket_not_list:{bucket}")
            continue
        if not ids:
            issues.append(f"schedule_empty_bucket:{bucket}")
        buckets[bucket] = ids
        for sub_id in ids:
            sub_id = str(sub_id)
            if sub_id not in seen_ids:
                issues.append(f"unknown_subtask:{bucket}:{sub_id}")
            scheduled.add(sub_id)

    issues.extend(f"unscheduled_subtask:{sub_id}" for sub_id in seen_ids if sub_id not in scheduled)

    if max_hours_per_day is not None:
        for bucket, hours in bucket_hours(buckets, timed_subtasks).items():
            if len(buckets[bucket]) > 1 and round(hours, 6) > max_hours_per_day:
                issues.append(f"over_budget:{bucket}:{hours:g}h>{max_hours_per_day}h")

    return issues


def blocking_issues(issues: List[str]) -> List[str]:
    return [issue for issue in issues if issue.startswith(BLOCKING_ISSUE_PREFIXES)]

"""Duration helpers and the greedy day/session bin-packer."""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping

DURATION_PATTERN = re.compile(r"([0-9]+)([hm])")

BUCKET_PREFIXES = {
    "days": "day",
    "hours": "session",
}


class InvalidDurationError(ValueError):
    """Raised when a duration string is not an integer followed by h or m."""


@dataclass(frozen=True)
class Duration:
    value: int
    unit: str

    @property
    def hours(self) -> float:
        if self.unit == "m":
            return self.value / 60
        return float(self.value)

    def __str__(self) -> str:
        return f"{self.value}{self.unit}"


def parse_duration(text: Any) -> Duration:
    if not isinstance(text, str):
        raise InvalidDurationError(f"Duration must be a string, got {type(text).__name__}")
    match = DURATION_PATTERN.fullmatch(text)
    if not match:
        raise InvalidDurationError(f"Invalid duration {text!r}; expected e.g. '2h' or '45m'")
    return Duration(value=int(match.group(1)), unit=match.group(2))


def duration_hours(text: Any) -> float:
    """Return a duration in hours; minutes become fractional hours."""
    return parse_duration(text).hours


def total_hours(subtasks: Iterable[Mapping[str, Any]]) -> float:
    return sum(duration_hours(subtask.get("duration")) for subtask in subtasks)


def format_total_hours(hours: float) -> str:
    """Format a total as whole hours, rounding partial hours up."""
    # Guard against float noise such as 2.0000000000000004 from minute sums.
    whole = math.ceil(round(hours, 6))
    return f"{max(whole, 0)}h"


def bucket_key(time_mode: str, index: int) -> str:
    prefix = BUCKET_PREFIXES.get(time_mode)
    if prefix is None:
        raise ValueError(f"Unsupported time mode {time_mode!r}; expected 'days' or 'hours'")
    if index < 1:
        raise ValueError("Bucket numbering starts at 1")
    return f"{prefix}{index}"


def pack_subtasks(
    subtasks: Iterable[Mapping[str, Any]],
    time_mode: str,
    max_hours_per_day: float,
) -> Dict[str, List[str]]:
    """
    Assign subtasks to ``day{N}``/``session{N}`` buckets in generation order.

    A subtask joins the current bucket while the bucket total stays within
    ``max_hours_per_day``; otherwise the next bucket is opened. A subtask that
    alone exceeds the budget still gets a bucket of its own, so nothing is
    dropped or split and no bucket is ever empty.
    """
    if max_hours_per_day <= 0:
        raise ValueError("max_hours_per_day must be positive")
    bucket_key(time_mode, 1)

    schedule: Dict[str, List[str]] = {}
    index = 0
    current: List[str] = []
    used = 0.0

    for subtask in subtasks:
        hours = duration_hours(subtask.get("duration"))
        if current and used + hours > max_hours_per_day:
            current = []
            used = 0.0
        if not current:
            index += 1
            schedule[bucket_key(time_mode, index)] = current
        current.append(str(subtask["id"]))
        used += hours

    return schedule


def bucket_hours(schedule: Mapping[str, List[str]], subtasks: Iterable[Mapping[str, Any]]) -> Dict[str, float]:
    """Sum the hours scheduled in each bucket."""
    hours_by_id = {str(subtask["id"]): duration_hours(subtask.get("duration")) for subtask in subtasks}
    return {key: sum(hours_by_id.get(str(sub_id), 0.0) for sub_id in ids) for key, ids in schedule.items()}

"""LLM-backed task plan generation with a deterministic fallback."""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from time import perf_counter
from typing import Any, Dict, List, Mapping, Optional

from app.api.schemas.task_plan import GeneratedPlanPayload
from app.core.config import settings
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.services.llm_client import PlanCompletionClient
from app.services.plan_scheduler import BUCKET_PREFIXES, format_total_hours, pack_subtasks, total_hours
from app.services.plan_validator import (
    MAX_SUBTASKS,
    MIN_SUBTASKS,
    VALID_PRIORITIES,
    blocking_issues,
    plan_consistency_issues,
    validate_plan,
)

logger = logging.getLogger(__name__)

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
DEFAULT_WORK_DAYS = WEEKDAYS[:5]
TIME_MODES = tuple(BUCKET_PREFIXES)

FALLBACK_TEMPLATES = (
    {"name": "Research and planning for {task}", "duration": "2h", "priority": "High"},
    {"name": "Initial setup and configuration for {task}", "duration": "1h", "priority": "High"},
    {"name": "Core implementation of {task}", "duration": "3h", "priority": "High"},
    {"name": "Testing and validation of {task}", "duration": "2h", "priority": "Medium"},
    {"name": "Review and wrap-up of {task}", "duration": "1h", "priority": "Medium"},
)

_FENCED_BLOCK = re.compile(r"```[a-zA-Z]*\s*\n?(.*?)\s*```", re.DOTALL)


class PlanRejectedError(ValueError):
    """The remote response parsed but does not describe an acceptable plan."""


class RemoteUnavailableError(RuntimeError):
    """No completion client is configured."""


@dataclass
class UserPreferences:
    max_hours_per_day: int = 8
    work_days: List[str] = field(default_factory=lambda: list(DEFAULT_WORK_DAYS))

    @classmethod
    def from_mapping(cls, raw: Optional[Mapping[str, Any]]) -> "UserPreferences":
        """Build preferences from a stored camelCase dict, filling in defaults."""
        raw = raw or {}
        max_hours = _first_present(raw, "maxHoursPerDay", "max_hours_per_day")
        work_days = _first_present(raw, "workDays", "work_days")
        return cls(
            max_hours_per_day=settings.default_max_hours_per_day if max_hours is None else max_hours,
            work_days=list(DEFAULT_WORK_DAYS) if work_days is None else work_days,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"maxHoursPerDay": self.max_hours_per_day, "workDays": list(self.work_days)}


@dataclass
class GeneratedPlan:
    plan: Dict[str, Any]
    source: str
    failure_reason: Optional[str] = None

    @property
    def used_fallback(self) -> bool:
        return self.source == "fallback"


class PlanGenerator:
    """
    Produce a subtask breakdown and schedule for a task.

    The remote model is asked first; any failure there (no client, transport
    error, unparseable or invalid output) is logged and answered with the
    deterministic fallback plan instead, so ``generate`` only raises for bad
    arguments or preferences, checked before the model is called.
    """

    def __init__(self, client: Optional[PlanCompletionClient] = None) -> None:
        self.client = client

    def generate(
        self,
        task_name: str,
        time_mode: str,
        amount: int,
        preferences: UserPreferences | Mapping[str, Any] | None = None,
        *,
        request_id: Optional[str] = None,
    ) -> GeneratedPlan:
        task_name = _check_arguments(task_name, time_mode, amount)
        prefs = preferences if isinstance(preferences, UserPreferences) else UserPreferences.from_mapping(preferences)
        _check_preferences(prefs)
        trace_metadata = {
            "time_mode": time_mode,
            "amount": amount,
            "max_hours_per_day": prefs.max_hours_per_day,
            "model": getattr(self.client, "model", None),
        }

        start_time = perf_counter()
        try:
            with trace("plan.generate", metadata=trace_metadata, request_id=request_id):
                plan = self._generate_remote(task_name, time_mode, amount, prefs)
        except Exception as exc:
            reason = f"{type(exc).__name__}: {exc}"
            logger.warning("Remote plan generation failed (%s); using fallback plan.", reason)
            log_metric("plan.generate.fallback", 1, {"reason": type(exc).__name__, "time_mode": time_mode})
            return GeneratedPlan(
                plan=build_fallback_plan(task_name, time_mode, amount, prefs),
                source="fallback",
                failure_reason=reason,
            )

        latency_ms = (perf_counter() - start_time) * 1000
        log_metric("plan.generate.ai", 1, {"time_mode": time_mode, "subtasks": len(plan["subtasks"])})
        log_metric("plan.generate.latency_ms", latency_ms, {"time_mode": time_mode})
        return GeneratedPlan(plan=plan, source="ai")

    def _generate_remote(
        self,
        task_name: str,
        time_mode: str,
        amount: int,
        prefs: UserPreferences,
    ) -> Dict[str, Any]:
        if self.client is None:
            raise RemoteUnavailableError("No plan completion client configured")

        system_prompt, user_prompt = build_prompts(task_name, time_mode, amount, prefs)
        content = self.client.complete(system_prompt, user_prompt)
        plan = parse_plan_response(content)

        if not validate_plan(plan):
            raise PlanRejectedError("Plan failed validation")
        issues = plan_consistency_issues(plan, time_mode=time_mode, max_hours_per_day=prefs.max_hours_per_day)
        blocking = blocking_issues(issues)
        if blocking:
            raise PlanRejectedError(f"Inconsistent plan: {', '.join(blocking)}")
        if issues:
            logger.info("Accepted remote plan with warnings: %s", ", ".join(issues))
        return plan


def generate_plan(
    task_name: str,
    time_mode: str,
    amount: int,
    preferences: UserPreferences | Mapping[str, Any] | None = None,
    *,
    client: Optional[PlanCompletionClient] = None,
) -> Dict[str, Any]:
    """Return just the plan dict; see :class:`PlanGenerator`."""
    return PlanGenerator(client).generate(task_name, time_mode, amount, preferences).plan


def build_prompts(
    task_name: str,
    time_mode: str,
    amount: int,
    prefs: UserPreferences,
) -> tuple[str, str]:
    bucket_prefix = BUCKET_PREFIXES[time_mode]
    bucket_label = "day" if time_mode == "days" else "work session"
    example = {
        "subtasks": [
            {"id": "1", "name": "Outline the work", "duration": "2h", "priority": "High", "done": False},
            {"id": "2", "name": "Draft the first part", "duration": "45m", "priority": "Medium", "done": False},
        ],
        "schedule": {f"{bucket_prefix}1": ["1", "2"]},
        "totalEstimatedTime": "3h",
        "notes": "One or two sentences on how to approach the plan.",
    }

    system_prompt = (
        "You are a pragmatic planning assistant. You break a task into concrete, "
        "independently completable subtasks and schedule them realistically. "
        "Reply with a single JSON object and nothing else."
    )
    user_prompt = (
        f"Task: '{task_name}'\n"
        f"Time available: {amount} {time_mode}.\n"
        f"Maximum working hours per {bucket_label}: {prefs.max_hours_per_day}.\n"
        f"Preferred work days: {', '.join(prefs.work_days)}.\n\n"
        "### RULES\n"
        f"- Produce between {MIN_SUBTASKS} and {MAX_SUBTASKS} subtasks with ids \"1\", \"2\", ... in order.\n"
        "- Each subtask has: id (string), name (short, concrete), duration (an integer followed by "
        "'h' or 'm', e.g. '2h' or '45m', never fractional or combined), "
        f"priority (one of {', '.join(VALID_PRIORITIES)}), done (always false).\n"
        f"- schedule maps keys '{bucket_prefix}1', '{bucket_prefix}2', ... (numbered from 1 without gaps) "
        "to lists of subtask ids. Every subtask appears exactly once.\n"
        f"- The subtasks in one {bucket_label} must not add up to more than {prefs.max_hours_per_day} hours; "
        "a single longer subtask gets a bucket of its own.\n"
        "- totalEstimatedTime is the sum of all durations in whole hours, e.g. '9h'.\n"
        "- notes is a short summary with advice for the user.\n\n"
        "### OUTPUT SHAPE\n"
        f"{json.dumps(example, indent=2)}"
    )
    return system_prompt, user_prompt


def extract_json_payload(text: str) -> str:
    """Strip a markdown code fence around the payload, if there is one."""
    stripped = text.strip()
    match = _FENCED_BLOCK.search(stripped)
    if match:
        return match.group(1).strip()
    return stripped


def parse_plan_response(text: Any) -> Dict[str, Any]:
    if not isinstance(text, str) or not text.strip():
        raise PlanRejectedError("Empty response from plan model")
    """Parse the model reply into a plan dict; raises pydantic.ValidationError on bad shape."""
    payload = GeneratedPlanPayload.model_validate_json(extract_json_payload(text))
    return payload.model_dump(by_alias=True)


def build_fallback_plan(
    task_name: str,
    time_mode: str,
    amount: int,
    prefs: Optional[UserPreferences] = None,
) -> Dict[str, Any]:
    """Return the fixed five-step plan, packed under the daily hour budget."""
    prefs = prefs or UserPreferences()
    subtasks = [
        {
            "id": str(index),
            "name": template["name"].format(task=task_name),
            "duration": template["duration"],
            "priority": template["priority"],
            "done": False,
        }
        for index, template in enumerate(FALLBACK_TEMPLATES, start=1)
    ]
    schedule = pack_subtasks(subtasks, time_mode, prefs.max_hours_per_day)
    total = format_total_hours(total_hours(subtasks))
    bucket_label = "day" if time_mode == "days" else "session"
    plan = {
        "subtasks": subtasks,
        "schedule": schedule,
        "totalEstimatedTime": total,
        "notes": (
            f'Fallback plan for "{task_name}" ({amount} {time_mode}): the AI planner was unavailable, '
            f"so a standard {len(subtasks)}-step breakdown totalling {total} was scheduled across "
            f"{len(schedule)} {bucket_label}(s) of at most {prefs.max_hours_per_day} hours. "
            "Adjust it as you make progress."
        ),
    }
    if not validate_plan(plan):  # pragma: no cover - fixed templates
        raise RuntimeError("Fallback plan failed validation")
    return plan


def _check_arguments(task_name: Any, time_mode: Any, amount: Any) -> str:
    if not isinstance(task_name, str) or not task_name.strip():
        raise ValueError("task_name must be a non-empty string")
    if time_mode not in TIME_MODES:
        raise ValueError(f"time_mode must be one of {', '.join(TIME_MODES)}")
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise ValueError("amount must be a positive integer")
    return task_name.strip()


def _check_preferences(prefs: UserPreferences) -> None:
    max_hours = prefs.max_hours_per_day
    if isinstance(max_hours, bool) or not isinstance(max_hours, int) or max_hours <= 0:
        raise ValueError("maxHoursPerDay must be a positive integer")
    if not isinstance(prefs.work_days, list) or not prefs.work_days:
        raise ValueError("workDays must be a non-empty list of weekday names")
    unknown = [day for day in prefs.work_days if day not in WEEKDAYS]
    if unknown:
        raise ValueError(f"Unknown work days: {', '.join(map(str, unknown))}")


def _first_present(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None

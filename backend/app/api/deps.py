"""Shared FastAPI dependencies for API routes."""
from __future__ import annotations

from fastapi import Request

from app.services.plan_generator import PlanGenerator


def get_plan_generator(request: Request) -> PlanGenerator:
    """Wrap the completion client built at startup in a per-request generator."""
    client = getattr(request.app.state, "plan_client", None)
    return PlanGenerator(client)

"""Tests for the OpenAI-backed completion client."""
from __future__ import annotations

from types import SimpleNamespace

import pytest

from app.core.config import Settings
from app.services.llm_client import EmptyCompletionError, OpenAIPlanClient, build_plan_client


class _FakeCompletions:
    def __init__(self, content):
        self.content = content
        self.kwargs: dict = {}

    def create(self, **kwargs):
        self.kwargs = kwargs
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _client(content) -> tuple[OpenAIPlanClient, _FakeCompletions]:
    completions = _FakeCompletions(content)
    raw = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return OpenAIPlanClient(client=raw, model="gpt-test", max_tokens=500, temperature=0.4), completions


def test_complete_sends_bounded_request() -> None:
    client, completions = _client('{"subtasks": []}')

    content = client.complete("system text", "user text")

    assert content == '{"subtasks": []}'
    assert completions.kwargs["model"] == "gpt-test"
    assert completions.kwargs["max_tokens"] == 500
    assert completions.kwargs["temperature"] == 0.4
    assert completions.kwargs["response_format"] == {"type": "json_object"}
    assert [m["role"] for m in completions.kwargs["messages"]] == ["system", "user"]


@pytest.mark.parametrize("content", [None, "", "   "])
def test_empty_content_raises(content) -> None:
    client, _ = _client(content)

    with pytest.raises(EmptyCompletionError):
        client.complete("system", "user")


def test_build_plan_client_requires_api_key() -> None:
    assert build_plan_client(Settings(openai_api_key=None)) is None


def test_build_plan_client_uses_settings() -> None:
    client = build_plan_client(
        Settings(openai_api_key="sk-test", llm_model="gpt-test", llm_max_tokens=123, llm_temperature=0.2)
    )

    assert isinstance(client, OpenAIPlanClient)
    assert client.model == "gpt-test"
    assert client.max_tokens == 123
    assert client.temperature == 0.2

from __future__ import annotations

import json

import httpx
import pytest

from missionrooms.config import BackendMode, Settings
from missionrooms.llm import (
    AnthropicProvider,
    GenerationClient,
    GenerationFailed,
    MockLLMClient,
    OpenAIProvider,
    ProviderError,
    TextProvider,
    extract_json_text,
    get_llm_client,
)
from missionrooms.models import Category, ExamFocus
from missionrooms.prompts import compose_overview_prompt, compose_quiz_prompt
from missionrooms.schemas import OverviewContent, QuizPayload, TabType

QUIZ_JSON = json.dumps(
    {
        "questions": [
            {
                "question": "Who founded the Mughal Empire?",
                "options": ["Babur", "Akbar", "Humayun", "Aurangzeb"],
                "correct_answer": 0,
                "explanation": "Babur won the First Battle of Panipat in 1526.",
                "difficulty": "easy",
                "points": 10,
            }
        ]
    }
)


class ScriptedProvider(TextProvider):
    def __init__(self, name: str, reply: object) -> None:
        self.name = name
        self.reply = reply
        self.calls = 0

    def invoke(self, system_prompt: str, user_prompt: str) -> str:
        self.calls += 1
        if isinstance(self.reply, Exception):
            raise self.reply
        return str(self.reply)


def _anthropic_failing(status: int) -> AnthropicProvider:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json={"type": "error", "error": {"type": "api_error", "message": "down"}})

    return AnthropicProvider(
        "test-key",
        "claude-3-haiku-20240307",
        timeout=5,
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
    )


def _openai_replying(content: str) -> OpenAIProvider:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "id": "chatcmpl-1",
                "object": "chat.completion",
                "created": 1700000000,
                "model": "gpt-4o-mini",
                "choices": [
                    {
                        "index": 0,
                        "message": {"role": "assistant", "content": content},
                        "finish_reason": "stop",
                    }
                ],
            },
        )

    return OpenAIProvider(
        "test-key",
        "gpt-4o-mini",
        timeout=5,
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
    )


def test_extract_json_text_strips_fences() -> None:
    assert extract_json_text('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert extract_json_text('  {"a": 1}  ') == '{"a": 1}'


def test_primary_success_skips_secondary() -> None:
    primary = ScriptedProvider("primary", QUIZ_JSON)
    secondary = ScriptedProvider("secondary", QUIZ_JSON)
    client = GenerationClient(primary, secondary)

    payload = client.generate("system", "user", QuizPayload)

    assert payload.questions[0].options[0] == "Babur"
    assert (primary.calls, secondary.calls) == (1, 0)


def test_http_error_on_primary_falls_back_to_secondary() -> None:
    client = GenerationClient(_anthropic_failing(500), _openai_replying(QUIZ_JSON))

    payload = client.generate("system", "user", QuizPayload)

    assert payload.questions[0].question == "Who founded the Mughal Empire?"


def test_unparseable_primary_falls_back_to_secondary() -> None:
    secondary = ScriptedProvider("secondary", f"```json\n{QUIZ_JSON}\n```")
    client = GenerationClient(ScriptedProvider("primary", "not json"), secondary)

    payload = client.generate("system", "user", QuizPayload)

    assert len(payload.questions) == 1
    assert secondary.calls == 1


def test_both_providers_failing_raises() -> None:
    primary = ScriptedProvider("primary", ProviderError("timeout"))
    secondary = ScriptedProvider("secondary", '{"questions": []}')
    client = GenerationClient(primary, secondary)

    with pytest.raises(GenerationFailed) as excinfo:
        client.generate("system", "user", QuizPayload)

    assert len(excinfo.value.errors) == 2
    assert excinfo.value.errors[0] == "primary: timeout"
    assert (primary.calls, secondary.calls) == (1, 1)


def test_provider_without_key_is_a_provider_error() -> None:
    provider = OpenAIProvider(None, "gpt-4o-mini", timeout=5)
    with pytest.raises(ProviderError):
        provider.invoke("system", "user")


def test_anthropic_status_error_reports_code() -> None:
    with pytest.raises(ProviderError, match="503"):
        _anthropic_failing(503).invoke("system", "user")


def test_mock_client_returns_historical_structure() -> None:
    prompt = compose_overview_prompt("Mughal Empire", Category.historical_period, ExamFocus.upsc)

    overview = MockLLMClient().generate(prompt.system, prompt.user, OverviewContent)

    assert set(overview.tab_types()) == {TabType.rulers, TabType.timeline, TabType.list, TabType.points}
    assert overview.exam_focus == "upsc"


def test_mock_client_answers_room_prompts() -> None:
    prompt = compose_quiz_prompt("Mughal Empire", ExamFocus.upsc)
    payload = MockLLMClient().generate(prompt.system, prompt.user, QuizPayload)
    assert payload.questions[0].correct_answer == 0


def test_mock_client_rejects_prompt_without_structure() -> None:
    with pytest.raises(GenerationFailed):
        MockLLMClient().generate("system", "user", QuizPayload)


def test_live_mode_builds_failover_client() -> None:
    settings = Settings(database_url="sqlite://", backend_mode=BackendMode.live)
    client = get_llm_client(settings, BackendMode.live)
    assert isinstance(client, GenerationClient)
    assert client.primary.name == "anthropic"
    assert client.secondary.name == "openai"


def test_demo_mode_is_refused_in_production() -> None:
    settings = Settings(database_url="sqlite://", environment="production")
    with pytest.raises(RuntimeError):
        get_llm_client(settings, BackendMode.demo)

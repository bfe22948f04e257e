import asyncio
import json
from types import SimpleNamespace

import pytest

import ai_orchestrator
from config import ASSISTANT_FALLBACK_MESSAGE, FACTOR_IDS
from llm_config import SYSTEM_INSTRUCTION, build_context_prompt, get_factor_labels


def _response(text, prompt_tokens=10, completion_tokens=5):
    parts = [SimpleNamespace(text=text)] if text is not None else []
    return SimpleNamespace(
        candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))],
        usage_metadata=SimpleNamespace(prompt_token_count=prompt_tokens, candidates_token_count=completion_tokens),
    )


class FakeModel:
    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.prompts = []

    async def generate_content_async(self, prompt):
        self.prompts.append(prompt)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return _response(outcome)


@pytest.fixture()
def sleeps(monkeypatch):
    delays = []

    async def fake_sleep(delay):
        delays.append(delay)

    monkeypatch.setattr(ai_orchestrator.asyncio, "sleep", fake_sleep)
    return delays


def test_successful_reply_is_parsed():
    reply = "```json\n" + json.dumps({
        "filters": {"weights": [{"id": "crime", "weight": 100}], "selectedGenders": ["male"]},
        "message": "Focusing on safety.",
    }) + "\n```"
    model = FakeModel([reply])

    result = asyncio.run(ai_orchestrator.get_ai_response("safe areas", model=model))

    assert result["fallback"] is False
    assert result["message"] == "Focusing on safety."
    assert result["filters"]["selectedGenders"] == ["male"]
    assert result["filters"]["weights"][0]["id"] == "crime"
    assert result["filters"]["weights"][0]["value"] == 100
    assert result["token_usage"] == {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15}


def test_current_filters_are_sent_with_the_query():
    model = FakeModel(['{"message": "ok"}'])

    asyncio.run(ai_orchestrator.get_ai_response("cheaper rent", current_filters={"rentRange": [40, 90]}, model=model))

    assert "cheaper rent" in model.prompts[0]
    assert '"rentRange"' in model.prompts[0]


def test_retries_with_exponential_backoff(sleeps):
    model = FakeModel([RuntimeError("429"), RuntimeError("503"), '{"message": "third time lucky"}'])

    result = asyncio.run(ai_orchestrator.get_ai_response("busy spots", model=model, max_retries=3, base_delay=1.0))

    assert sleeps == [1.0, 2.0]
    assert result["message"] == "third time lucky"
    assert len(model.prompts) == 3


def test_exhausted_retries_return_fallback(sleeps):
    model = FakeModel([RuntimeError("down")] * 3)

    result = asyncio.run(ai_orchestrator.get_ai_response("anything", model=model, max_retries=3, base_delay=0.5))

    assert sleeps == [0.5, 1.0]
    assert result["fallback"] is True
    assert result["message"] == ASSISTANT_FALLBACK_MESSAGE
    assert result["filters"] == {"reset": False}
    assert result["token_usage"]["total_tokens"] == 0


def test_empty_candidate_returns_fallback():
    result = asyncio.run(ai_orchestrator.get_ai_response("hello", model=FakeModel([None])))

    assert result["fallback"] is True


def test_missing_api_key_raises(monkeypatch):
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    ai_orchestrator.get_model.cache_clear()

    with pytest.raises(ValueError):
        ai_orchestrator.get_model()


def test_prompt_configuration():
    assert build_context_prompt("hi") == "hi"
    assert all(factor_id in SYSTEM_INSTRUCTION for factor_id in FACTOR_IDS)
    assert get_factor_labels()["crime"] == "Safety"

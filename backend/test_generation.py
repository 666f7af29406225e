"""
Tests for the generation retry controller
"""

import asyncio
import json
from functools import partial

import httpx
import pytest

from remix.generation import (
    check_generated_recipe,
    generate_with_retry,
    generate_with_retry_async,
    parse_json,
)
from remix import llm
from remix.llm import APIError
from remix.models import SourceRecipe
from remix.prompts import CORRECTION_TEMPLATE, alternatives_messages, recipe_messages
from remix.validation import validate_alternatives, validate_recipe


SOURCE = SourceRecipe(
    title="Baked Mac and Cheese",
    ingredients=["1 lb elbow macaroni", "2 cups cheddar"],
    instructions=["Boil pasta.", "Bake at 375°F for 20 minutes."]
)


class FakeGenerator:
    """Returns queued outputs in order and records the messages it was sent"""

    def __init__(self, *outputs):
        self.outputs = list(outputs)
        self.calls = []

    def __call__(self, messages):
        self.calls.append(messages)
        output = self.outputs.pop(0) if len(self.outputs) > 1 else self.outputs[0]
        if isinstance(output, Exception):
            raise output
        return output


class AsyncFakeGenerator(FakeGenerator):
    async def __call__(self, messages):
        return super().__call__(messages)


def build_alternatives(history):
    return alternatives_messages(SOURCE, history)


def test_always_invalid_stops_after_two_attempts():
    generate = FakeGenerator("this is not json")

    result = generate_with_retry(build_alternatives, generate, validate_alternatives)

    assert not result.success
    assert len(generate.calls) == 2
    assert result.retry_count == 2
    assert result.error.startswith("JSON parse error")
    assert result.to_dict()["data"] is None


def test_retry_carries_the_failure_back(alternatives_doc):
    bad = json.dumps(alternatives_doc(5, 3))
    good = json.dumps(alternatives_doc(6, 4))
    generate = FakeGenerator(bad, good)

    result = generate_with_retry(build_alternatives, generate, validate_alternatives)

    assert result.success
    assert result.retry_count == 1
    assert len(result.result["alternatives"]) == 10

    first, second = generate.calls
    assert [m["role"] for m in first] == ["system", "user"]
    assert second[:2] == first
    assert second[2] == {"role": "assistant", "content": bad}
    assert second[3] == {
        "role": "user",
        "content": CORRECTION_TEMPLATE.format(error="alternatives: Expected 9 or 10-15 alternatives, got 8")
    }


def test_transport_errors_become_failed_attempts(alternatives_doc):
    generate = FakeGenerator(APIError("Network error: boom"), json.dumps(alternatives_doc(6, 4)))

    result = generate_with_retry(build_alternatives, generate, validate_alternatives)

    assert result.success
    assert result.retry_count == 1
    assert result.attempts[0].error == "Generation failed: Network error: boom"
    assert result.attempts[0].output is None
    # nothing to correct, so the second prompt is the plain one
    assert generate.calls[1] == generate.calls[0]


def test_httpx_errors_are_caught():
    generate = FakeGenerator(httpx.ConnectError("connection refused"))

    result = generate_with_retry(build_alternatives, generate, validate_alternatives)

    assert not result.success
    assert result.error == "Generation failed: connection refused"


@pytest.mark.parametrize("error", [TimeoutError("read timed out"), OSError("broken pipe"), KeyError("choices")])
def test_any_collaborator_error_is_a_failed_attempt(error):
    generate = FakeGenerator(error)

    result = generate_with_retry(build_alternatives, generate, validate_alternatives)

    assert not result.success
    assert len(generate.calls) == 2
    assert result.retry_count == 2
    assert result.error.startswith(f"Generation failed: {type(error).__name__}:")


def test_non_text_output_is_a_parse_error(alternatives_doc):
    generate = FakeGenerator(None, json.dumps(alternatives_doc(6, 4)))

    result = generate_with_retry(build_alternatives, generate, validate_alternatives)

    assert result.success
    assert result.attempts[0].error == "JSON parse error: expected text, got NoneType"


def test_gateway_page_from_the_llm_client_is_a_failed_attempt(monkeypatch):
    """A 200 response whose body is not JSON must not escape the controller"""
    def gateway_page(request):
        return httpx.Response(200, text="<html>gateway</html>")

    real_client = httpx.AsyncClient

    def mock_client(**kwargs):
        return real_client(transport=httpx.MockTransport(gateway_page), **kwargs)

    monkeypatch.setattr(llm, "OPENROUTER_API_KEY", "test-key")
    monkeypatch.setattr(llm.httpx, "AsyncClient", mock_client)

    result = asyncio.run(generate_with_retry_async(build_alternatives, llm.call_llm_async, validate_alternatives))

    assert not result.success
    assert result.retry_count == 2
    assert result.error.startswith("Generation failed: Invalid API response: body is not JSON")


def test_max_attempts_is_configurable():
    generate = FakeGenerator("{}")

    result = generate_with_retry(build_alternatives, generate, validate_alternatives, max_attempts=3)

    assert len(generate.calls) == 3
    assert len(result.attempts) == 3
    assert result.error == "what_is_this: Field required"


def test_code_fences_are_tolerated(alternatives_doc):
    fenced = "```json\n" + json.dumps(alternatives_doc(5, 4)) + "\n```"
    generate = FakeGenerator(fenced)

    result = generate_with_retry(build_alternatives, generate, validate_alternatives)

    assert result.success
    assert result.retry_count == 0
    assert len(generate.calls) == 1


def test_parse_json():
    assert parse_json('  {"a": 1}  ') == {"a": 1}
    assert parse_json('```\n{"a": 1}\n```') == {"a": 1}
    with pytest.raises(ValueError):
        parse_json("{not json")


def test_post_check_failure_triggers_retry(recipe_data):
    broken = json.loads(json.dumps(recipe_data))
    broken["remixes"][1]["patch"]["step_ops"][0]["step_id"] = "step_9"
    generate = FakeGenerator(json.dumps(broken), json.dumps(recipe_data))
    build = partial(recipe_messages, ["onion", "garlic"])

    result = generate_with_retry(build, generate, validate_recipe, post_check=check_generated_recipe)

    assert result.success
    assert result.retry_count == 1
    assert result.attempts[0].error == "remixes[1].patch.step_ops[0]: references unknown step id step_9"
    assert "references unknown step id step_9" in generate.calls[1][-1]["content"]


def test_check_generated_recipe_passes_clean_data(recipe_data):
    assert check_generated_recipe(validate_recipe(recipe_data).data) == []


def test_async_controller(alternatives_doc):
    generate = AsyncFakeGenerator("[]", json.dumps(alternatives_doc(10, 5)))

    result = asyncio.run(generate_with_retry_async(build_alternatives, generate, validate_alternatives))

    assert result.success
    assert result.retry_count == 1
    assert result.attempts[0].error == "$: Expected a JSON object, got list"

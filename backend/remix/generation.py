"""
Generation Retry Controller
Runs bounded, sequential generation attempts against the generation
collaborator, feeding each failure back into the next attempt's prompt.

Parse errors, schema violations, reference failures and transport errors are
all expected outcomes here: they are recorded in the attempt history and
returned as a GenerationResult, never raised.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

import httpx

from config import GENERATION_MAX_ATTEMPTS
from remix.llm import LLMError
from remix.models import Recipe, check_integrity, check_remix_references
from remix.validation import ValidationResult

logger = logging.getLogger(__name__)


CODE_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)

TRANSPORT_ERRORS = (LLMError, httpx.HTTPError)


@dataclass
class Attempt:
    """One generation attempt: what was sent, what came back, what was wrong"""
    messages: list[dict]
    output: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {"messages": self.messages, "output": self.output, "error": self.error}


@dataclass
class GenerationResult:
    success: bool
    result: Optional[dict] = None
    error: Optional[str] = None
    retry_count: int = 0  # failed attempts
    attempts: list[Attempt] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "data": self.result,
            "error": self.error,
            "retry_count": self.retry_count
        }


MessageBuilder = Callable[[list[Attempt]], list[dict]]
Validator = Callable[[Any], ValidationResult]
PostCheck = Callable[[dict], list[str]]


def parse_json(raw: str) -> Any:
    """Decode model output, tolerating a surrounding Markdown code fence"""
    text = raw.strip()
    match = CODE_FENCE_PATTERN.match(text)
    if match:
        text = match.group(1)
    return json.loads(text)


def check_generated_recipe(data: dict) -> list[str]:
    """Post-check for recipe documents: step references and remix patch references"""
    recipe = Recipe.from_dict(data)
    violations = check_integrity(recipe) + check_remix_references(recipe)
    return [str(v) for v in violations]


def _evaluate(raw: str, validate: Validator, post_check: Optional[PostCheck]) -> tuple[Optional[dict], Optional[str]]:
    """Parse, validate and post-check one raw output; returns (data, error)"""
    if not isinstance(raw, str):
        return None, f"JSON parse error: expected text, got {type(raw).__name__}"
    try:
        payload = parse_json(raw)
    except ValueError as e:
        return None, f"JSON parse error: {e}"

    validation = validate(payload)
    if not validation.valid:
        return None, validation.first_error or "Validation failed"

    if post_check:
        problems = post_check(validation.data)
        if problems:
            return None, problems[0]

    return validation.data, None


def _call_failed(error: Exception, attempt_no: int, max_attempts: int) -> str:
    """Any collaborator failure counts as a failed attempt; only unexpected types get a traceback"""
    if isinstance(error, TRANSPORT_ERRORS):
        message = f"Generation failed: {error}"
        logger.warning(f"Attempt {attempt_no}/{max_attempts} failed: {message}")
    else:
        message = f"Generation failed: {type(error).__name__}: {error}"
        logger.exception(f"Attempt {attempt_no}/{max_attempts} failed: {message}")
    return message


def _finish(history: list[Attempt]) -> GenerationResult:
    error = history[-1].error if history else "No generation attempts were made"
    logger.warning(f"Generation failed after {len(history)} attempt(s): {error}")
    return GenerationResult(
        success=False,
        error=error,
        retry_count=len(history),
        attempts=history
    )


def generate_with_retry(
    build_messages: MessageBuilder,
    generate: Callable[[list[dict]], str],
    validate: Validator,
    post_check: Optional[PostCheck] = None,
    max_attempts: int = GENERATION_MAX_ATTEMPTS
) -> GenerationResult:
    """
    Generate, parse and validate, retrying with corrective context.

    build_messages receives the history of failed attempts and returns the
    messages for the next attempt; generate is the collaborator call.
    """
    history: list[Attempt] = []

    for attempt_no in range(1, max_attempts + 1):
        messages = build_messages(history)
        try:
            raw = generate(messages)
        except Exception as e:
            error = _call_failed(e, attempt_no, max_attempts)
            history.append(Attempt(messages=messages, error=error))
            continue

        data, error = _evaluate(raw, validate, post_check)
        if error is None:
            logger.info(f"Generation succeeded on attempt {attempt_no}/{max_attempts}")
            return GenerationResult(
                success=True,
                result=data,
                retry_count=len(history),
                attempts=history + [Attempt(messages=messages, output=raw)]
            )

        logger.warning(f"Attempt {attempt_no}/{max_attempts} failed: {error}")
        history.append(Attempt(messages=messages, output=raw, error=error))

    return _finish(history)


async def generate_with_retry_async(
    build_messages: MessageBuilder,
    generate: Callable[[list[dict]], Awaitable[str]],
    validate: Validator,
    post_check: Optional[PostCheck] = None,
    max_attempts: int = GENERATION_MAX_ATTEMPTS
) -> GenerationResult:
    """Async version of generate_with_retry"""
    history: list[Attempt] = []

    for attempt_no in range(1, max_attempts + 1):
        messages = build_messages(history)
        try:
            raw = await generate(messages)
        except Exception as e:
            error = _call_failed(e, attempt_no, max_attempts)
            history.append(Attempt(messages=messages, error=error))
            continue

        data, error = _evaluate(raw, validate, post_check)
        if error is None:
            logger.info(f"Generation succeeded on attempt {attempt_no}/{max_attempts}")
            return GenerationResult(
                success=True,
                result=data,
                retry_count=len(history),
                attempts=history + [Attempt(messages=messages, output=raw)]
            )

        logger.warning(f"Attempt {attempt_no}/{max_attempts} failed: {error}")
        history.append(Attempt(messages=messages, output=raw, error=error))

    return _finish(history)

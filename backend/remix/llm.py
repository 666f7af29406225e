"""
LLM Integration
Generation collaborator: sends role-tagged messages to the configured model via
the OpenRouter API and returns the raw JSON text it produced
"""

import asyncio
import logging
import time

import httpx

from config import (
    OPENROUTER_API_KEY,
    OPENROUTER_BASE_URL,
    LLM_MODEL,
    LLM_TEMPERATURE,
    LLM_MAX_TOKENS,
    LLM_TIMEOUT,
    LLM_MAX_RETRIES
)

logger = logging.getLogger(__name__)


class LLMError(Exception):
    """Base exception for LLM-related errors"""
    pass


class RateLimitError(LLMError):
    """Raised when API rate limit is hit"""
    pass


class APIError(LLMError):
    """Raised for general API errors"""
    pass


def _build_request(messages: list[dict], model: str, temperature: float, max_tokens: int) -> tuple[dict, dict]:
    if not OPENROUTER_API_KEY:
        raise APIError(
            "OpenRouter API key not found. "
            "Please set OPENROUTER_API_KEY in your .env file."
        )

    headers = {
        "Authorization": f"Bearer {OPENROUTER_API_KEY}",
        "Content-Type": "application/json",
        "HTTP-Referer": "https://recipe-remix.app",
        "X-Title": "Recipe Remix"
    }

    payload = {
        "model": model,
        "messages": messages,
        "temperature": temperature,
        "max_tokens": max_tokens,
        "response_format": {"type": "json_object"}
    }
    return headers, payload


def _read_content(response: httpx.Response) -> str:
    """Pull the message content out of a completed (non-429) response"""
    if response.status_code != 200:
        error_detail = response.text
        try:
            error_json = response.json()
            error_detail = error_json.get("error", {}).get("message", error_detail)
        except (ValueError, AttributeError):
            pass
        raise APIError(f"API error ({response.status_code}): {error_detail}")

    try:
        data = response.json()
    except ValueError:
        raise APIError(f"Invalid API response: body is not JSON ({response.text[:80]!r})")

    if not isinstance(data, dict) or not data.get("choices"):
        raise APIError("Invalid API response: no choices returned")

    try:
        content = (data["choices"][0].get("message") or {}).get("content") or ""
    except (AttributeError, IndexError, KeyError, TypeError):
        raise APIError("Invalid API response: malformed choices")

    if not isinstance(content, str) or not content:
        raise APIError("Empty response from API")

    return content


def _retry_after(response: httpx.Response, attempt: int) -> int:
    try:
        return int(response.headers.get("Retry-After", 2 ** attempt))
    except ValueError:
        return 2 ** attempt


def call_llm(
    messages: list[dict],
    model: str = LLM_MODEL,
    temperature: float = LLM_TEMPERATURE,
    max_tokens: int = LLM_MAX_TOKENS,
    timeout: int = LLM_TIMEOUT
) -> str:
    """Call configured LLM via OpenRouter API"""
    headers, payload = _build_request(messages, model, temperature, max_tokens)

    last_error = None

    for attempt in range(LLM_MAX_RETRIES):
        try:
            with httpx.Client(timeout=timeout) as client:
                response = client.post(
                    OPENROUTER_BASE_URL,
                    headers=headers,
                    json=payload
                )

                if response.status_code == 429:
                    retry_after = _retry_after(response, attempt)
                    if attempt < LLM_MAX_RETRIES - 1:
                        logger.warning(f"Rate limited by OpenRouter, retrying in {retry_after}s")
                        time.sleep(retry_after)
                        continue
                    raise RateLimitError(
                        f"Rate limited by OpenRouter. Please try again in {retry_after} seconds."
                    )

                return _read_content(response)

        except httpx.TimeoutException:
            last_error = APIError(f"Request timed out after {timeout} seconds")
            if attempt < LLM_MAX_RETRIES - 1:
                time.sleep(2 ** attempt)
                continue

        except httpx.RequestError as e:
            last_error = APIError(f"Network error: {str(e)}")
            if attempt < LLM_MAX_RETRIES - 1:
                time.sleep(2 ** attempt)
                continue

    if last_error:
        raise last_error
    raise APIError("Failed to get response after multiple attempts")


async def call_llm_async(
    messages: list[dict],
    model: str = LLM_MODEL,
    temperature: float = LLM_TEMPERATURE,
    max_tokens: int = LLM_MAX_TOKENS,
    timeout: int = LLM_TIMEOUT
) -> str:
    """Async version of call_llm"""
    headers, payload = _build_request(messages, model, temperature, max_tokens)

    last_error = None

    for attempt in range(LLM_MAX_RETRIES):
        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                response = await client.post(
                    OPENROUTER_BASE_URL,
                    headers=headers,
                    json=payload
                )

                if response.status_code == 429:
                    retry_after = _retry_after(response, attempt)
                    if attempt < LLM_MAX_RETRIES - 1:
                        logger.warning(f"Rate limited by OpenRouter, retrying in {retry_after}s")
                        await asyncio.sleep(retry_after)
                        continue
                    raise RateLimitError(
                        f"Rate limited. Please try again in {retry_after} seconds."
                    )

                return _read_content(response)

        except httpx.TimeoutException:
            last_error = APIError(f"Request timed out after {timeout} seconds")
            if attempt < LLM_MAX_RETRIES - 1:
                await asyncio.sleep(2 ** attempt)
                continue

        except httpx.RequestError as e:
            last_error = APIError(f"Network error: {str(e)}")
            if attempt < LLM_MAX_RETRIES - 1:
                await asyncio.sleep(2 ** attempt)
                continue

    if last_error:
        raise last_error
    raise APIError("Failed to get response after multiple attempts")

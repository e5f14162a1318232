"""Text generation over the OpenAI, Anthropic and Gemini HTTP APIs."""

import asyncio
from typing import Awaitable, Callable

import httpx

from app.config import config
from app.logging import get_logger

logger = get_logger(__name__)

OPENAI_API_URL = "https://api.openai.com/v1/chat/completions"
ANTHROPIC_API_URL = "https://api.anthropic.com/v1/messages"
GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
DEFAULT_TIMEOUT = 60.0
MAX_RETRIES = 3
BASE_BACKOFF = 1.0

ProviderCall = Callable[[httpx.AsyncClient, str, str, int, float], Awaitable[str]]


class LLMDisabledError(Exception):
    """Raised when LLM is disabled but generation is attempted."""

    pass


class LLMError(Exception):
    """Base exception for LLM API errors."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class LLMRateLimitError(LLMError):
    """Rate limit exceeded."""

    def __init__(self, retry_after: int | None = None):
        super().__init__("Rate limit exceeded", status_code=429)
        self.retry_after = retry_after


def _parse_retry_after(value: str | None) -> int | None:
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _raise_for_error(response: httpx.Response, provider: str) -> None:
    """Raise the matching LLMError for a non-200 response."""
    if response.status_code == 429:
        raise LLMRateLimitError(
            retry_after=_parse_retry_after(response.headers.get("retry-after"))
        )

    if response.status_code >= 500:
        raise LLMError(
            f"{provider} server error: {response.status_code}",
            status_code=response.status_code,
        )

    try:
        error_data = response.json()
        error_msg = error_data.get("error", {}).get(
            "message", f"HTTP {response.status_code}"
        )
    except (ValueError, AttributeError):
        error_msg = f"HTTP {response.status_code}"

    raise LLMError(error_msg, status_code=response.status_code)


async def _call_openai(
    client: httpx.AsyncClient,
    system_prompt: str,
    user_prompt: str,
    max_tokens: int,
    temperature: float,
) -> str:
    """Call OpenAI-compatible API."""
    headers = {
        "Authorization": f"Bearer {config.openai_api_key}",
        "Content-Type": "application/json",
    }
    payload = {
        "model": config.openai_model,
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        "max_tokens": max_tokens,
        "temperature": temperature,
    }

    response = await client.post(OPENAI_API_URL, headers=headers, json=payload)

    if response.status_code == 200:
        data = response.json()
        choices = data.get("choices", [])
        if choices:
            content = choices[0].get("message", {}).get("content", "")
            logger.debug(
                f"OpenAI tokens: {data.get('usage', {}).get('total_tokens', 'N/A')}"
            )
            return content.strip()
        raise LLMError("Empty response from OpenAI")

    _raise_for_error(response, "OpenAI")


async def _call_anthropic(
    client: httpx.AsyncClient,
    system_prompt: str,
    user_prompt: str,
    max_tokens: int,
    temperature: float,
) -> str:
    """Call Anthropic Messages API."""
    headers = {
        "x-api-key": config.anthropic_api_key,
        "anthropic-version": "2023-06-01",
        "Content-Type": "application/json",
    }
    payload = {
        "model": config.anthropic_model,
        "max_tokens": max_tokens,
        "temperature": temperature,
        "system": system_prompt,
        "messages": [
            {"role": "user", "content": user_prompt},
        ],
    }

    response = await client.post(ANTHROPIC_API_URL, headers=headers, json=payload)

    if response.status_code == 200:
        data = response.json()
        text_parts = [
            block.get("text", "")
            for block in data.get("content", [])
            if block.get("type") == "text"
        ]
        usage = data.get("usage", {})
        logger.debug(
            f"Anthropic tokens: in={usage.get('input_tokens', '?')}, "
            f"out={usage.get('output_tokens', '?')}"
        )
        return "\n".join(text_parts).strip()

    _raise_for_error(response, "Anthropic")


async def _call_gemini(
    client: httpx.AsyncClient,
    system_prompt: str,
    user_prompt: str,
    max_tokens: int,
    temperature: float,
) -> str:
    """Call Gemini generateContent API."""
    url = GEMINI_API_URL.format(model=config.gemini_text_model)
    payload = {
        "systemInstruction": {"parts": [{"text": system_prompt}]},
        "contents": [{"role": "user", "parts": [{"text": user_prompt}]}],
        "generationConfig": {
            "maxOutputTokens": max_tokens,
            "temperature": temperature,
        },
    }

    response = await client.post(
        url,
        params={"key": config.google_ai_api_key},
        headers={"Content-Type": "application/json"},
        json=payload,
    )

    if response.status_code == 200:
        data = response.json()
        candidates = data.get("candidates", [])
        if candidates:
            parts = candidates[0].get("content", {}).get("parts", [])
            return "".join(part.get("text", "") for part in parts).strip()
        raise LLMError("Empty response from Gemini")

    _raise_for_error(response, "Gemini")


def _select_provider() -> tuple[ProviderCall, str]:
    """Pick the call function and a log label for the configured provider.

    Raises:
        LLMDisabledError: If the provider key is missing
    """
    provider = config.llm_provider

    if provider == "anthropic":
        key, call_fn, label = config.anthropic_api_key, _call_anthropic, f"Anthropic/{config.anthropic_model}"
        key_name = "ANTHROPIC_API_KEY"
    elif provider == "google":
        key, call_fn, label = config.google_ai_api_key, _call_gemini, f"Gemini/{config.gemini_text_model}"
        key_name = "GOOGLE_AI_API_KEY"
    else:
        key, call_fn, label = config.openai_api_key, _call_openai, f"OpenAI/{config.openai_model}"
        key_name = "OPENAI_API_KEY"

    if not key:
        raise LLMDisabledError(f"{key_name} is not configured")
    return call_fn, label


def _retry_delay(error: Exception, attempt: int) -> float | None:
    """Seconds to wait before retrying, or None when the error is final."""
    backoff = BASE_BACKOFF * (2 ** attempt)
    if isinstance(error, LLMRateLimitError):
        return float(error.retry_after or backoff)
    if isinstance(error, LLMError):
        return backoff if error.status_code and error.status_code >= 500 else None
    if isinstance(error, httpx.RequestError):
        return backoff
    return None


async def generate_text(
    system_prompt: str,
    user_prompt: str,
    max_tokens: int = 500,
    temperature: float = 0.7,
) -> str:
    """Generate text using configured LLM provider.

    Rate limits, server errors, timeouts and transport errors are retried
    with exponential backoff; other API errors are raised immediately.

    Args:
        system_prompt: System instructions for the model
        user_prompt: User message/request
        max_tokens: Maximum tokens in response
        temperature: Sampling temperature

    Returns:
        Generated text

    Raises:
        LLMDisabledError: If LLM is disabled or the provider key is missing
        LLMError: On API error after retries exhausted
    """
    if not config.llm_enabled:
        raise LLMDisabledError("LLM is disabled in configuration")

    call_fn, provider_label = _select_provider()
    last_error: Exception | None = None

    async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT) as client:
        for attempt in range(MAX_RETRIES):
            try:
                return await call_fn(client, system_prompt, user_prompt, max_tokens, temperature)
            except (LLMError, httpx.RequestError) as e:
                wait_time = _retry_delay(e, attempt)
                if wait_time is None:
                    raise
                last_error = e
                logger.warning(
                    f"{provider_label} call failed ({e}), "
                    f"attempt {attempt + 1}/{MAX_RETRIES}"
                )
                if attempt < MAX_RETRIES - 1:
                    await asyncio.sleep(wait_time)

    raise LLMError(f"Max retries exceeded ({provider_label}): {last_error}")

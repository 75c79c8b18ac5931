"""OpenRouter (OpenAI-compatible) chat completions client."""

import logging
import os
import time
from typing import Any, Dict, List, Optional

import httpx

from ..core.config import settings
from ..core.structured_logging import LoggerFactory, log_external_call
from ..models.exceptions import OpenRouterException

logger = logging.getLogger(__name__)
slog = LoggerFactory.get_logger(__name__)


def _api_key() -> str:
    return os.getenv("OPENROUTER_API_KEY") or settings.openrouter_api_key or ""


def is_configured() -> bool:
    return bool(_api_key())


def _headers() -> Dict[str, str]:
    """Build standard OpenRouter headers (test-friendly)."""
    referer = os.getenv("SERVICE_BASE_URL", "http://localhost:8000")
    return {
        "Authorization": f"Bearer {_api_key()}",
        "Content-Type": "application/json",
        "HTTP-Referer": referer,
        "X-Title": "TokenForge",
    }


def extract_message_text(response: Dict[str, Any]) -> str:
    """Extract text content from an OpenAI-style completion."""
    choices = response.get("choices") or []
    if not choices:
        return ""
    msg = choices[0].get("message") or {}
    content = msg.get("content", "")
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = [p.get("text", "") for p in content if isinstance(p, dict) and "text" in p]
        return "\n".join([p for p in parts if p])
    return ""


async def health_check() -> bool:
    """Check that the completion API accepts our credential."""
    api_key = _api_key()
    if not api_key:
        logger.warning("OpenRouter API key not configured")
        return False
    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.get(f"{settings.openrouter_base_url}/models", headers=_headers())
        return response.status_code == 200
    except httpx.HTTPError as e:
        logger.error(f"OpenRouter health check failed: {e}")
        return False


async def chat_completion(
    task: str,
    messages: List[Dict[str, Any]],
    *,
    model: Optional[str] = None,
    max_tokens: int = 1000,
    temperature: float = 0.7,
) -> Dict[str, Any]:
    """Single chat completion call.

    No retries: a failed call is reported to the caller, which decides what
    the user sees.
    """
    if not _api_key():
        raise OpenRouterException(
            "OPENROUTER_API_KEY environment variable is required",
            model=model,
            details={"task": task},
        )

    model = model or "openai/gpt-4o"
    payload = {
        "model": model,
        "messages": messages,
        "max_tokens": max_tokens,
        "temperature": temperature,
    }

    log_external_call(slog, "openrouter", "chat.completions", task=task, model=model)
    started = time.perf_counter()
    try:
        async with httpx.AsyncClient(timeout=float(settings.openrouter_timeout)) as client:
            response = await client.post(
                f"{settings.openrouter_base_url}/chat/completions",
                headers=_headers(),
                json=payload,
            )
    except httpx.TimeoutException as e:
        raise OpenRouterException("OpenRouter request timed out", model=model, details={"task": task}) from e
    except httpx.HTTPError as e:
        raise OpenRouterException(f"OpenRouter request failed: {e}", model=model, details={"task": task}) from e

    elapsed_ms = int((time.perf_counter() - started) * 1000)
    if response.status_code != 200:
        raise OpenRouterException(
            f"OpenRouter API request failed: {response.status_code}",
            status_code=response.status_code,
            model=model,
            details={"task": task, "body": response.text[:300]},
        )

    try:
        result = response.json()
    except ValueError as e:
        raise OpenRouterException("Invalid JSON response from OpenRouter", model=model, details={"task": task}) from e

    logger.info(f"OpenRouter call successful for {task} using {model} in {elapsed_ms}ms")
    return result

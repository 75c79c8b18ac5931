"""Design token generation from accumulated wizard state."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from pydantic import ValidationError as PydanticValidationError

from ..core.config import settings
from ..core.structured_logging import LoggerFactory, log_business_event
from ..models.exceptions import (
    GuardrailsValidationException,
    OpenRouterException,
    TokenGenerationError,
    TokenParseError,
)
from ..models.schemas import TokenGenerationRequest, TokenSet
from .guardrails import validate_contract
from .llm_json import parse_model_json
from .openrouter import chat_completion, extract_message_text
from .prompts import TOKENS_SYSTEM, TOKENS_USER

logger = logging.getLogger(__name__)
slog = LoggerFactory.get_logger(__name__)


def build_token_messages(request: TokenGenerationRequest) -> List[Dict[str, Any]]:
    text = TOKENS_USER.format(
        brand_name=request.brand_name,
        purpose=request.purpose,
        values=request.values,
        niche=request.niche,
        theme=request.theme,
        warmth=request.warmth,
        brightness=request.brightness,
        typography=request.typography,
    ).strip()

    content: List[Dict[str, Any]] = [{"type": "text", "text": text}]
    if request.moodboard_image_base64:
        content.append({"type": "image_url", "image_url": {"url": request.moodboard_image_base64}})

    return [
        {"role": "system", "content": TOKENS_SYSTEM},
        {"role": "user", "content": content},
    ]


def parse_token_response(raw: str) -> TokenSet:
    parsed = parse_model_json(raw)
    if not parsed.ok:
        raise TokenParseError(parsed.error or "Invalid JSON", raw=raw)
    try:
        validate_contract("design_tokens.json", parsed.value)
        return TokenSet.model_validate(parsed.value)
    except GuardrailsValidationException as e:
        raise TokenParseError("; ".join(e.validation_errors), raw=raw) from e
    except PydanticValidationError as e:
        raise TokenParseError(str(e), raw=raw) from e


async def generate_tokens(request: TokenGenerationRequest) -> TokenSet:
    try:
        response = await chat_completion(
            "tokens",
            build_token_messages(request),
            model=settings.tokens_model,
            max_tokens=settings.tokens_max_tokens,
        )
        raw = extract_message_text(response)
        logger.debug("Token model output", extra={"raw_output": raw[:2000]})
        tokens = parse_token_response(raw)
    except (OpenRouterException, TokenParseError) as e:
        logger.error(f"Token generation failed: {e.message}", extra={"details": e.details}, exc_info=True)
        raise TokenGenerationError(details={"cause": type(e).__name__}) from e

    log_business_event(
        slog,
        "tokens_generated",
        theme=request.theme,
        has_moodboard=bool(request.moodboard_image_base64),
        illustrations=len(tokens.illustrations),
    )
    return tokens

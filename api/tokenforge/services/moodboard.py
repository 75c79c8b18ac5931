"""Moodboard analysis: label the palette's lead color and suggest a style.

The model only names and classifies. The palette in the result is always
the one the caller extracted, whatever the model echoes back.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence

from ..core.config import settings
from ..models.exceptions import (
    AnalysisError,
    AnalysisParseError,
    GuardrailsValidationException,
    OpenRouterException,
)
from ..models.schemas import MoodboardAnalysis
from .guardrails import validate_contract
from .llm_json import parse_model_json
from .openrouter import chat_completion, extract_message_text
from .prompts import MOODBOARD_SYSTEM, MOODBOARD_USER

logger = logging.getLogger(__name__)


def build_moodboard_messages(palette: Sequence[str]) -> List[Dict[str, Any]]:
    return [
        {"role": "system", "content": MOODBOARD_SYSTEM},
        {
            "role": "user",
            "content": [
                {"type": "text", "text": MOODBOARD_USER.format(palette=", ".join(palette))},
            ],
        },
    ]


def parse_moodboard_response(raw: str, palette: Sequence[str]) -> MoodboardAnalysis:
    """Turn raw model text into an analysis carrying the original palette."""
    parsed = parse_model_json(raw)
    if not parsed.ok:
        raise AnalysisParseError(parsed.error or "Invalid JSON", raw=raw)
    try:
        validate_contract("moodboard_analysis.json", parsed.value)
    except GuardrailsValidationException as e:
        raise AnalysisParseError("; ".join(e.validation_errors), raw=raw) from e

    return MoodboardAnalysis(
        main_color=parsed.value["mainColor"],
        style=parsed.value["style"],
        colors=list(palette),
    )


async def analyze_moodboard(image_base64: str, palette: Sequence[str]) -> MoodboardAnalysis:
    palette = list(palette)
    logger.info(
        "Analyzing moodboard",
        extra={"palette": palette, "image_chars": len(image_base64 or "")},
    )
    try:
        response = await chat_completion(
            "moodboard",
            build_moodboard_messages(palette),
            model=settings.moodboard_model,
            max_tokens=settings.moodboard_max_tokens,
        )
        return parse_moodboard_response(extract_message_text(response), palette)
    except (OpenRouterException, AnalysisParseError) as e:
        logger.error(f"Moodboard analysis failed: {e.message}", extra={"details": e.details}, exc_info=True)
        raise AnalysisError(details={"cause": type(e).__name__}) from e

"""Parse JSON out of LLM completions.

Models are told to return raw JSON but regularly wrap it in a markdown code
fence anyway. `parse_model_json` strips one optional fence and parses strictly;
it never raises, the caller inspects the returned `ParseResult`.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Optional

# An empty completion is treated as an empty object, like a missing body.
EMPTY_COMPLETION = "{}"

_OPENING_FENCE = re.compile(r"^```[\w+-]*[ \t]*\r?\n?")
_CLOSING_FENCE = re.compile(r"\r?\n?```\s*$")


@dataclass(frozen=True)
class ParseResult:
    ok: bool
    value: Any = None
    error: Optional[str] = None
    text: str = ""

    @classmethod
    def success(cls, value: Any, text: str) -> "ParseResult":
        return cls(ok=True, value=value, text=text)

    @classmethod
    def failure(cls, error: str, text: str) -> "ParseResult":
        return cls(ok=False, error=error, text=text)


def strip_code_fence(raw: str) -> str:
    """Remove a leading ```[lang] line and a trailing ``` if present."""
    text = raw.strip()
    if not text.startswith("```"):
        return text
    text = _OPENING_FENCE.sub("", text, count=1)
    text = _CLOSING_FENCE.sub("", text, count=1)
    return text.strip()


def parse_model_json(raw: Optional[str]) -> ParseResult:
    text = strip_code_fence(raw or "") or EMPTY_COMPLETION
    try:
        return ParseResult.success(json.loads(text), text)
    except json.JSONDecodeError as e:
        return ParseResult.failure(f"Invalid JSON at line {e.lineno} column {e.colno}: {e.msg}", text)

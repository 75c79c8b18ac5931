"""Token export formats.

- nested JSON: `{category: {key: {"value": v}}}`, the shape design tools import
- CSS: one `--{category}-{key}: {value};` custom property per entry
- raw JSON: the token set as returned, for pasting elsewhere

Illustrations are a list, not a mapping, and only appear in the raw JSON.
"""

from __future__ import annotations

import json
from typing import Dict

from ..models.schemas import SCALAR_CATEGORIES, TokenSet

NestedTokens = Dict[str, Dict[str, Dict[str, str]]]


def to_nested_format(tokens: TokenSet) -> NestedTokens:
    return {
        category: {key: {"value": value} for key, value in tokens.category(category).items()}
        for category in SCALAR_CATEGORIES
    }


def flatten_nested_format(nested: NestedTokens) -> Dict[str, Dict[str, str]]:
    return {
        category: {key: entry["value"] for key, entry in entries.items()}
        for category, entries in nested.items()
    }


def to_stylesheet(tokens: TokenSet) -> str:
    lines = [":root {"]
    for category in SCALAR_CATEGORIES:
        for key, value in tokens.category(category).items():
            lines.append(f"  --{category}-{key}: {value};")
    lines.append("}")
    return "\n".join(lines) + "\n"


def to_raw_json(tokens: TokenSet) -> str:
    return json.dumps(tokens.model_dump(), indent=2, ensure_ascii=False)

"""Wizard state: the fields collected across steps and the store holding them.

`WizardStore` is the only owner of session data. Each step reads and writes
its own keys through `get(step)` / `set(step, fields)`; the token request is
assembled from the stored scalars verbatim.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..models.schemas import TokenGenerationRequest


class WizardStep(str, Enum):
    IDENTITY = "identity"
    STYLE_PREFERENCES = "style_preferences"
    MOODBOARD = "moodboard"
    GENERATING = "generating"
    PREVIEW = "preview"


STEP_ORDER: Tuple[WizardStep, ...] = tuple(WizardStep)

THEMES = ("minimal", "bold", "editorial", "luxury", "playful", "futuristic")
TYPOGRAPHY_STYLES = ("modern", "classic", "techy", "friendly")
NICHES = ("tech", "fashion", "health", "finance", "nonprofit")

DEFAULT_WARMTH = 40
DEFAULT_BRIGHTNESS = 40

# Keys each step owns, and which of them must be set before moving on.
STEP_FIELDS: Dict[WizardStep, Tuple[str, ...]] = {
    WizardStep.IDENTITY: ("brand_name", "purpose", "values", "niche"),
    WizardStep.STYLE_PREFERENCES: ("theme", "warmth", "brightness", "typography"),
    WizardStep.MOODBOARD: ("moodboard_image",),
    WizardStep.GENERATING: (),
    WizardStep.PREVIEW: (),
}

REQUIRED_FIELDS: Dict[WizardStep, Tuple[str, ...]] = {
    WizardStep.IDENTITY: ("brand_name", "purpose", "values"),
    WizardStep.STYLE_PREFERENCES: ("theme", "typography"),
}


@dataclass
class WizardState:
    brand_name: str = ""
    purpose: str = ""
    values: str = ""
    niche: List[str] = field(default_factory=list)
    theme: str = ""
    warmth: int = DEFAULT_WARMTH
    brightness: int = DEFAULT_BRIGHTNESS
    typography: str = ""
    moodboard_image: Optional[str] = None


def _normalize(name: str, value: Any) -> Any:
    if name == "niche":
        if isinstance(value, str):
            value = value.split(",")
        seen: List[str] = []
        for item in value or ():
            item = str(item).strip()
            if item and item not in seen:
                seen.append(item)
        return seen
    if name in ("warmth", "brightness"):
        number = int(value)
        if not 0 <= number <= 100:
            raise ValueError(f"{name} must be between 0 and 100, got {number}")
        return number
    if name == "theme" and value and value not in THEMES:
        raise ValueError(f"Unknown theme '{value}', expected one of {', '.join(THEMES)}")
    if name == "typography" and value and value not in TYPOGRAPHY_STYLES:
        raise ValueError(f"Unknown typography '{value}', expected one of {', '.join(TYPOGRAPHY_STYLES)}")
    if name == "moodboard_image":
        return value or None
    return "" if value is None else str(value).strip()


class WizardStore:
    """Per-session key-value storage for wizard fields."""

    def __init__(self) -> None:
        self._entries: Dict[str, Any] = {}

    def get(self, step: WizardStep) -> Dict[str, Any]:
        defaults = WizardState()
        return {
            name: self._entries.get(name, getattr(defaults, name))
            for name in STEP_FIELDS[step]
        }

    def set(self, step: WizardStep, fields: Dict[str, Any]) -> None:
        owned = STEP_FIELDS[step]
        foreign = [name for name in fields if name not in owned]
        if foreign:
            raise KeyError(f"Fields {foreign} do not belong to step '{step.value}'")
        normalized = {name: _normalize(name, value) for name, value in fields.items()}
        self._entries.update(normalized)

    def reset(self) -> None:
        self._entries.clear()

    def missing_fields(self, step: WizardStep) -> List[str]:
        values = self.get(step)
        return [name for name in REQUIRED_FIELDS.get(step, ()) if not values.get(name)]

    def snapshot(self) -> WizardState:
        state = WizardState()
        for name, value in self._entries.items():
            setattr(state, name, list(value) if isinstance(value, list) else value)
        return state

    def to_request(self) -> TokenGenerationRequest:
        state = self.snapshot()
        return TokenGenerationRequest(
            brand_name=state.brand_name,
            purpose=state.purpose,
            values=state.values,
            niche=", ".join(state.niche),
            theme=state.theme,
            warmth=str(state.warmth),
            brightness=str(state.brightness),
            typography=state.typography,
            moodboard_image_base64=state.moodboard_image,
        )

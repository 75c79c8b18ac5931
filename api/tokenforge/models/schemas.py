"""Pydantic models for API request and response schemas.

Wire names are camelCase to match the browser client; Python attributes are
snake_case and mapped through aliases.
"""

import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

HEX_COLOR = re.compile(r'^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$')

# Token categories holding flat key -> value mappings, in export order.
SCALAR_CATEGORIES = ("color", "font", "spacing", "radius")


def _stringify(value: Any) -> Any:
    """Coerce JSON scalars to str; leave anything else for validation to reject."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return value


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# Moodboard
class MoodboardAnalyzeRequest(WireModel):
    """Moodboard image plus the palette extracted from it."""

    image_base64: str = Field(
        ...,
        alias="imageBase64",
        description="Moodboard image as a data URL or bare base64",
    )
    colors: List[str] = Field(
        ...,
        min_length=1,
        max_length=12,
        description="Palette extracted from the image, most dominant first",
        examples=[["#112233", "#445566", "#778899", "#aabbcc", "#ddeeff"]],
    )

    @field_validator('colors')
    @classmethod
    def validate_hex_colors(cls, v):
        for color in v:
            if not HEX_COLOR.match(color):
                raise ValueError(f'Invalid hex color format: {color}')
        return v


class MainColor(BaseModel):
    name: str
    hex: str


class MoodboardAnalysis(WireModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    main_color: MainColor = Field(..., alias="mainColor")
    style: str = Field(..., description="Overall style label, e.g. Minimal, Luxury, Playful")
    colors: List[str] = Field(..., description="Always the palette that was sent in the request")


class PaletteRequest(WireModel):
    image_base64: str = Field(..., alias="imageBase64")


class PaletteResponse(BaseModel):
    colors: List[str]


# Tokens
class TokenGenerationRequest(WireModel):
    """Accumulated wizard state, all values as strings."""

    brand_name: str = Field(..., alias="brandName", min_length=1)
    purpose: str = Field(..., min_length=1)
    values: str = Field(..., min_length=1)
    niche: str = ""
    theme: str = ""
    warmth: str = ""
    brightness: str = ""
    typography: str = ""
    moodboard_image_base64: Optional[str] = Field(None, alias="moodboardImageBase64")

    @field_validator('niche', 'theme', 'warmth', 'brightness', 'typography', mode='before')
    @classmethod
    def coerce_scalar(cls, v):
        if v is None:
            return ""
        if isinstance(v, list):
            return ", ".join(str(item) for item in v)
        return _stringify(v)

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "brandName": "Acme",
                "purpose": "Sell widgets",
                "values": "Trust",
                "niche": "tech",
                "theme": "minimal",
                "warmth": "50",
                "brightness": "50",
                "typography": "modern",
            }
        },
    )


class TokenSet(BaseModel):
    """Design tokens returned by the model.

    Values are arbitrary strings; nothing checks that a color is a valid hex
    or a spacing a valid CSS length.
    """

    model_config = ConfigDict(frozen=True)

    color: Dict[str, str]
    font: Dict[str, str]
    spacing: Dict[str, str]
    radius: Dict[str, str]
    illustrations: List[str] = Field(default_factory=list)

    @field_validator('color', 'font', 'spacing', 'radius', mode='before')
    @classmethod
    def coerce_mapping(cls, v):
        if isinstance(v, dict):
            return {key: _stringify(value) for key, value in v.items()}
        return v

    @field_validator('illustrations', mode='before')
    @classmethod
    def coerce_illustrations(cls, v):
        if v is None:
            return []
        if isinstance(v, list):
            return [_stringify(item) for item in v]
        return v

    def category(self, name: str) -> Dict[str, str]:
        return getattr(self, name)


class TokenGenerationResponse(BaseModel):
    tokens: TokenSet


class ErrorResponse(BaseModel):
    error: str

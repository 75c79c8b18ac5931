"""Clients for the two service boundaries the wizard talks to."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol, Sequence

import httpx
from pydantic import ValidationError as PydanticValidationError

from ..core.config import settings
from ..models.exceptions import AnalysisError, TokenGenerationError
from ..models.schemas import MoodboardAnalysis, TokenGenerationRequest, TokenSet
from ..services.moodboard import analyze_moodboard
from ..services.token_generator import generate_tokens

logger = logging.getLogger(__name__)

INVALID_BODY = "Server response was not valid JSON"


class Boundary(Protocol):
    async def analyze_moodboard(self, image_base64: str, palette: Sequence[str]) -> MoodboardAnalysis:
        ...

    async def generate_tokens(self, request: TokenGenerationRequest) -> TokenSet:
        ...


class LocalBoundary:
    """Calls the services in-process, no HTTP hop."""

    async def analyze_moodboard(self, image_base64: str, palette: Sequence[str]) -> MoodboardAnalysis:
        return await analyze_moodboard(image_base64, palette)

    async def generate_tokens(self, request: TokenGenerationRequest) -> TokenSet:
        return await generate_tokens(request)


class TokenForgeClient:
    """HTTP client for a running TokenForge service."""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.base_url = (base_url or settings.api_url).rstrip("/")
        self.timeout = timeout or float(settings.client_timeout)
        self._transport = transport

    async def _post(self, path: str, body: Dict[str, Any], error_cls: type) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout,
                                         transport=self._transport) as client:
                response = await client.post(path, json=body)
        except httpx.HTTPError as e:
            logger.warning(f"Request to {path} failed: {e}")
            raise error_cls(f"Could not reach TokenForge service: {e}") from e

        try:
            payload = response.json()
        except ValueError as e:
            raise error_cls(INVALID_BODY) from e

        if response.status_code != 200:
            message = payload.get("error") if isinstance(payload, dict) else None
            raise error_cls(message or f"Request failed with status {response.status_code}")
        if not isinstance(payload, dict):
            raise error_cls(INVALID_BODY)
        return payload

    async def analyze_moodboard(self, image_base64: str, palette: Sequence[str]) -> MoodboardAnalysis:
        payload = await self._post(
            "/analyze-moodboard",
            {"imageBase64": image_base64, "colors": list(palette)},
            AnalysisError,
        )
        # The palette we sent wins over whatever the server echoes back
        try:
            return MoodboardAnalysis.model_validate({**payload, "colors": list(palette)})
        except PydanticValidationError as e:
            raise AnalysisError("Unexpected moodboard analysis response") from e

    async def generate_tokens(self, request: TokenGenerationRequest) -> TokenSet:
        payload = await self._post(
            "/generate-tokens",
            request.model_dump(by_alias=True, exclude_none=True),
            TokenGenerationError,
        )
        try:
            return TokenSet.model_validate(payload.get("tokens"))
        except PydanticValidationError as e:
            raise TokenGenerationError("Unexpected token generation response") from e

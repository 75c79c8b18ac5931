from __future__ import annotations

import os
from dataclasses import dataclass


def getenv(name: str, default: str | None = None) -> str | None:
    v = os.getenv(name, default)
    return v


@dataclass
class Settings:
    # Service
    service_name: str = getenv("SERVICE_NAME", "tokenforge-api") or "tokenforge-api"
    service_env: str = getenv("SERVICE_ENV", "dev") or "dev"
    log_level: str = getenv("LOG_LEVEL", "INFO") or "INFO"
    log_format: str = getenv("LOG_FORMAT", "json") or "json"  # json | text

    # LLM upstream (OpenAI-compatible chat completions)
    openrouter_api_key: str | None = getenv("OPENROUTER_API_KEY")
    openrouter_base_url: str = getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1") or "https://openrouter.ai/api/v1"
    openrouter_timeout: int = int(getenv("OPENROUTER_TIMEOUT", "60") or "60")
    moodboard_model: str = getenv("MOODBOARD_MODEL", "openai/gpt-4o") or "openai/gpt-4o"
    tokens_model: str = getenv("TOKENS_MODEL", "openai/gpt-4o") or "openai/gpt-4o"
    moodboard_max_tokens: int = int(getenv("MOODBOARD_MAX_TOKENS", "300") or "300")
    tokens_max_tokens: int = int(getenv("TOKENS_MAX_TOKENS", "1000") or "1000")

    # Moodboard palette
    palette_size: int = int(getenv("PALETTE_SIZE", "5") or "5")

    # HTTP surface
    cors_allow_origins: str | None = getenv("CORS_ALLOW_ORIGINS")
    max_request_size: int = int(getenv("MAX_REQUEST_SIZE", "10485760") or "10485760")  # 10MB, base64 images

    # Wizard client
    api_url: str = getenv("TOKENFORGE_API_URL", "http://localhost:8000") or "http://localhost:8000"
    client_timeout: int = int(getenv("CLIENT_TIMEOUT", "90") or "90")


settings = Settings()

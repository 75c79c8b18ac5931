"""Pytest configuration and fixtures for the TokenForge API."""

import io
import json
import os
import sys
from pathlib import Path
from typing import Dict, Generator, List, Tuple

import pytest
from fastapi.testclient import TestClient
from PIL import Image

# Add the api directory to Python path
api_dir = Path(__file__).parent
sys.path.insert(0, str(api_dir))

from tokenforge.main import app


ACME_TOKENS = {
    "color": {"primary": "#0044cc", "background": "#ffffff", "text": "#111111"},
    "font": {"family": "Inter", "base": "16px", "h1": "40px"},
    "spacing": {"sm": "8px", "md": "16px", "lg": "32px"},
    "radius": {"md": "8px"},
    "illustrations": [
        "3D rocket made of glossy blue glass",
        "3D stack of widgets on a white plinth",
        "3D handshake rendered in soft clay",
    ],
}


def completion(content: str) -> Dict:
    """OpenAI-style chat completion body wrapping `content`."""
    return {
        "id": "gen-test",
        "model": "openai/gpt-4o",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}],
        "usage": {"prompt_tokens": 100, "completion_tokens": 50, "total_tokens": 150},
    }


def make_png(regions: List[Tuple[Tuple[int, int, int], int]], height: int = 20) -> bytes:
    """PNG of vertical color bands, each `(rgb, width)` wide."""
    width = sum(w for _, w in regions)
    img = Image.new("RGB", (width, height))
    x = 0
    for rgb, w in regions:
        img.paste(rgb, (x, 0, x + w, height))
        x += w
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI app."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def acme_tokens() -> Dict:
    return json.loads(json.dumps(ACME_TOKENS))


@pytest.fixture
def tokens_completion(acme_tokens):
    """Completion whose content is the Acme token set inside a json fence."""
    return completion("```json\n" + json.dumps(acme_tokens) + "\n```")


@pytest.fixture
def moodboard_completion():
    return completion('{"mainColor": {"name": "Navy", "hex": "#112233"}, "style": "Minimal"}')


@pytest.fixture
def fixed_palette() -> List[str]:
    return ["#112233", "#445566", "#778899", "#aabbcc", "#ddeeff"]


@pytest.fixture
def sample_token_request() -> Dict:
    """Sample token generation request body, as the browser sends it."""
    return {
        "brandName": "Acme",
        "purpose": "Sell widgets",
        "values": "Trust",
        "niche": "tech",
        "theme": "minimal",
        "warmth": "50",
        "brightness": "50",
        "typography": "modern",
    }


@pytest.fixture
def png_bytes() -> bytes:
    return make_png([((200, 30, 30), 60), ((30, 30, 200), 30), ((250, 250, 250), 10)])


@pytest.fixture(autouse=True)
def setup_test_env():
    """Set up test environment variables."""
    test_env = {
        "OPENROUTER_API_KEY": "test-key",
        "SERVICE_BASE_URL": "http://localhost:8000",
        "LOG_LEVEL": "DEBUG",
    }

    previous = {key: os.environ.get(key) for key in test_env}
    for key, value in test_env.items():
        os.environ[key] = value

    yield

    for key, value in previous.items():
        if value is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = value

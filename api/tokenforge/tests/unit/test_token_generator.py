"""Unit tests for design token generation."""

import json
from unittest.mock import AsyncMock, patch

import pytest

from conftest import completion
from tokenforge.models.exceptions import OpenRouterException, TokenGenerationError, TokenParseError
from tokenforge.models.schemas import TokenGenerationRequest
from tokenforge.services.token_generator import (
    build_token_messages,
    generate_tokens,
    parse_token_response,
)


@pytest.fixture
def acme_request(sample_token_request):
    return TokenGenerationRequest.model_validate(sample_token_request)


class TestParseTokenResponse:

    def test_fenced_token_set(self, acme_tokens):
        tokens = parse_token_response("```json\n" + json.dumps(acme_tokens) + "\n```")
        assert tokens.color["primary"] == "#0044cc"
        assert len(tokens.illustrations) == 3

    def test_scalars_become_strings(self):
        tokens = parse_token_response(json.dumps({
            "color": {"primary": "#000"},
            "font": {"weight": 700, "scale": 1.25},
            "spacing": {},
            "radius": {"round": True},
        }))
        assert tokens.font == {"weight": "700", "scale": "1.25"}
        assert tokens.radius == {"round": "true"}
        assert tokens.illustrations == []

    def test_illustration_count_not_enforced(self, acme_tokens):
        acme_tokens["illustrations"] = ["only one"]
        assert parse_token_response(json.dumps(acme_tokens)).illustrations == ["only one"]

    @pytest.mark.parametrize("raw", [
        "```json\n{broken\n```",
        "",
        '{"color": {"primary": {"light": "#fff"}}, "font": {}, "spacing": {}, "radius": {}}',
        '{"color": {}, "font": {}, "spacing": {}}',
    ])
    def test_unusable_output(self, raw):
        with pytest.raises(TokenParseError):
            parse_token_response(raw)


class TestBuildMessages:

    def test_text_only_without_moodboard(self, acme_request):
        parts = build_token_messages(acme_request)[1]["content"]
        assert len(parts) == 1
        text = parts[0]["text"]
        assert "Brand Name: Acme" in text
        assert "Niche: tech" in text
        assert "Warmth: 50" in text
        assert "Typography: modern" in text

    def test_moodboard_attached_as_image_part(self, sample_token_request):
        sample_token_request["moodboardImageBase64"] = "data:image/png;base64,AAAA"
        request = TokenGenerationRequest.model_validate(sample_token_request)
        parts = build_token_messages(request)[1]["content"]
        assert parts[1] == {"type": "image_url", "image_url": {"url": "data:image/png;base64,AAAA"}}


class TestGenerateTokens:

    @patch("tokenforge.services.token_generator.chat_completion", new_callable=AsyncMock)
    async def test_acme_scenario(self, mock_chat, acme_request, tokens_completion):
        mock_chat.return_value = tokens_completion
        tokens = await generate_tokens(acme_request)
        assert len(tokens.illustrations) == 3
        assert tokens.spacing["md"] == "16px"
        mock_chat.assert_awaited_once()
        assert mock_chat.call_args.args[0] == "tokens"

    @patch("tokenforge.services.token_generator.chat_completion", new_callable=AsyncMock)
    async def test_upstream_failure(self, mock_chat, acme_request):
        mock_chat.side_effect = OpenRouterException("timeout")
        with pytest.raises(TokenGenerationError) as exc_info:
            await generate_tokens(acme_request)
        assert exc_info.value.message == "Token generation error"
        assert mock_chat.await_count == 1

    @patch("tokenforge.services.token_generator.chat_completion", new_callable=AsyncMock)
    async def test_malformed_output(self, mock_chat, acme_request):
        mock_chat.return_value = completion("Here you go: {color: primary}")
        with pytest.raises(TokenGenerationError) as exc_info:
            await generate_tokens(acme_request)
        assert exc_info.value.details == {"cause": "TokenParseError"}


class TestTokenGenerationRequest:

    def test_integers_and_lists_become_strings(self):
        request = TokenGenerationRequest.model_validate({
            "brandName": "Acme",
            "purpose": "Sell widgets",
            "values": "Trust",
            "niche": ["tech", "finance"],
            "warmth": 50,
            "brightness": 0,
        })
        assert request.niche == "tech, finance"
        assert request.warmth == "50"
        assert request.brightness == "0"
        assert request.theme == ""

    def test_snake_case_names_accepted(self):
        request = TokenGenerationRequest(brand_name="Acme", purpose="p", values="v")
        assert request.model_dump(by_alias=True)["brandName"] == "Acme"

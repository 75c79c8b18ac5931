from __future__ import annotations

from fastapi import APIRouter, Body

from ..models.schemas import TokenGenerationRequest, TokenGenerationResponse
from ..services.token_generator import generate_tokens

router = APIRouter()


@router.post("/generate-tokens", response_model=TokenGenerationResponse)
async def generate(request: TokenGenerationRequest = Body(...)):
    """
    Generate a design token set from the accumulated wizard answers.

    One upstream call, no retry. When a moodboard image is included it is
    attached to the prompt as an image part.
    """
    tokens = await generate_tokens(request)
    return TokenGenerationResponse(tokens=tokens)

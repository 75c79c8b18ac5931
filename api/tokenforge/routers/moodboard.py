from __future__ import annotations

from fastapi import APIRouter, Body

from ..models.schemas import MoodboardAnalysis, MoodboardAnalyzeRequest
from ..services.moodboard import analyze_moodboard

router = APIRouter()


@router.post("/analyze-moodboard", response_model=MoodboardAnalysis)
async def analyze(request: MoodboardAnalyzeRequest = Body(...)):
    """
    Describe a moodboard from its extracted palette.

    The returned `colors` are always the palette from the request. Any
    upstream or parse failure becomes a single 500 `{error}` body.
    """
    return await analyze_moodboard(request.image_base64, request.colors)

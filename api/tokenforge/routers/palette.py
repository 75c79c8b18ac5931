from __future__ import annotations

import asyncio

from fastapi import APIRouter, Body

from ..models.schemas import PaletteRequest, PaletteResponse
from ..services.palette import extract_palette

router = APIRouter()


@router.post("/extract-palette", response_model=PaletteResponse)
async def palette(request: PaletteRequest = Body(...)):
    """Dominant colors of an uploaded image, most dominant first."""
    colors = await asyncio.to_thread(extract_palette, request.image_base64)
    return PaletteResponse(colors=colors)

"""Dominant-color palette extraction for moodboard images."""

from __future__ import annotations

import base64
import binascii
import io
from typing import List, Optional, Union

from PIL import Image, UnidentifiedImageError

from ..core.config import settings
from ..models.exceptions import ExtractionFailed

ImageInput = Union[bytes, str, Image.Image]

# Sampling size; dominance ordering is stable well below full resolution.
SAMPLE_EDGE = 256


def decode_image_payload(payload: str) -> bytes:
    """Decode a `data:<mime>;base64,...` URL or a bare base64 string."""
    data = payload.strip()
    if data.startswith("data:"):
        header, _, data = data.partition(",")
        if ";base64" not in header:
            raise ExtractionFailed("data URL is not base64 encoded")
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ExtractionFailed("invalid base64 image payload") from e


def to_data_url(content: bytes, mime: str = "image/png") -> str:
    return f"data:{mime};base64,{base64.b64encode(content).decode('ascii')}"


def load_image(image: ImageInput) -> Image.Image:
    """Open any supported input as an RGB image."""
    if isinstance(image, Image.Image):
        img = image
    else:
        raw = decode_image_payload(image) if isinstance(image, str) else image
        try:
            img = Image.open(io.BytesIO(raw))
            img.load()
        except (UnidentifiedImageError, OSError, ValueError) as e:
            raise ExtractionFailed(f"unreadable image: {e}") from e

    if "A" in img.getbands():
        # Transparent regions count as white, not black
        background = Image.new("RGB", img.size, (255, 255, 255))
        background.paste(img.convert("RGBA"), mask=img.convert("RGBA").split()[-1])
        return background
    return img.convert("RGB")


def extract_palette(image: ImageInput, count: Optional[int] = None) -> List[str]:
    """Return exactly `count` hex colors, most dominant first.

    Images with fewer distinct colors than `count` repeat their palette in
    dominance order until the list is full.
    """
    count = count or settings.palette_size
    img = load_image(image).copy()
    if img.width == 0 or img.height == 0:
        raise ExtractionFailed("image has no pixels")
    img.thumbnail((SAMPLE_EDGE, SAMPLE_EDGE))

    quantized = img.quantize(colors=count, method=Image.Quantize.MEDIANCUT)
    flat_palette = quantized.getpalette() or []
    usage = sorted(quantized.getcolors() or [], key=lambda c: -c[0])

    hex_colors: List[str] = []
    for _, index in usage:
        rgb = tuple(flat_palette[index * 3:index * 3 + 3])
        if len(rgb) != 3:
            continue
        color = '#%02x%02x%02x' % rgb
        if color not in hex_colors:
            hex_colors.append(color)

    if not hex_colors:
        raise ExtractionFailed("no colors found in image")

    distinct = len(hex_colors)
    while len(hex_colors) < count:
        hex_colors.append(hex_colors[len(hex_colors) % distinct])
    return hex_colors[:count]

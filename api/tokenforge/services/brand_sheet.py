"""
brand_sheet.py: one-page PDF brand sheet from a generated token set.

Uses fpdf2 core fonts, so text is limited to latin-1; anything else is
replaced rather than failing the export.
"""

from __future__ import annotations

from typing import Tuple

from fpdf import FPDF, XPos, YPos

from ..models.schemas import TokenSet

NEUTRAL = (200, 200, 200)


def _pdf_text(text: str) -> str:
    return str(text).encode("latin-1", "replace").decode("latin-1")


def parse_hex(value: str) -> Tuple[int, int, int]:
    """`#rgb` / `#rrggbb` to an RGB tuple; anything else renders neutral grey."""
    hex_val = str(value).strip().lstrip("#")
    if len(hex_val) == 3:
        hex_val = "".join(ch * 2 for ch in hex_val)
    if len(hex_val) != 6:
        return NEUTRAL
    try:
        return int(hex_val[0:2], 16), int(hex_val[2:4], 16), int(hex_val[4:6], 16)
    except ValueError:
        return NEUTRAL


def _section_title(pdf: FPDF, title: str) -> None:
    pdf.set_font("Helvetica", "B", 14)
    pdf.set_text_color(35, 39, 47)
    pdf.cell(0, 9, title, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(1)


def render_brand_sheet(tokens: TokenSet, brand_name: str = "") -> bytes:
    pdf = FPDF(format="A4")
    pdf.set_auto_page_break(auto=True, margin=20)
    pdf.set_margins(15, 15, 15)
    pdf.add_page()

    # ── Title ────────────────────────────────────────────────────────────────
    pdf.set_font("Helvetica", "B", 24)
    pdf.set_text_color(20, 20, 20)
    title = f"{brand_name or 'Your Brand'} Brand Sheet"
    pdf.cell(0, 14, _pdf_text(title), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(4)

    # ── Colors ───────────────────────────────────────────────────────────────
    _section_title(pdf, "Color Palette")
    swatch = 18
    x = pdf.l_margin
    y = pdf.get_y()
    for name, value in tokens.color.items():
        pdf.set_fill_color(*parse_hex(value))
        pdf.set_draw_color(238, 238, 238)
        pdf.rect(x, y, swatch, swatch, "DF")
        pdf.set_font("Helvetica", "", 7)
        pdf.set_text_color(80, 80, 80)
        pdf.set_xy(x - 4, y + swatch + 1)
        pdf.cell(swatch + 8, 4, _pdf_text(name), align="C")
        pdf.set_xy(x - 4, y + swatch + 5)
        pdf.cell(swatch + 8, 4, _pdf_text(value), align="C")
        x += swatch + 12
        if x > pdf.w - pdf.r_margin - swatch:
            x = pdf.l_margin
            y += swatch + 14
    pdf.set_xy(pdf.l_margin, y + swatch + 12)

    # ── Typography ───────────────────────────────────────────────────────────
    _section_title(pdf, "Typography")
    pdf.set_font("Helvetica", "", 11)
    pdf.set_text_color(60, 60, 60)
    for key, value in tokens.font.items():
        pdf.cell(0, 6, _pdf_text(f"{key}: {value}"), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(3)

    # ── Buttons ──────────────────────────────────────────────────────────────
    _section_title(pdf, "Buttons")
    y = pdf.get_y()
    primary = tokens.color.get("primary")
    pdf.set_fill_color(*(parse_hex(primary) if primary else NEUTRAL))
    pdf.rect(pdf.l_margin, y, 40, 10, "F")
    pdf.set_font("Helvetica", "B", 10)
    pdf.set_text_color(255, 255, 255)
    pdf.set_xy(pdf.l_margin, y)
    pdf.cell(40, 10, "Primary Button", align="C")
    pdf.set_draw_color(204, 204, 204)
    pdf.rect(pdf.l_margin + 46, y, 40, 10, "D")
    pdf.set_text_color(35, 39, 47)
    pdf.set_xy(pdf.l_margin + 46, y)
    pdf.cell(40, 10, "Secondary Button", align="C")
    pdf.set_xy(pdf.l_margin, y + 16)

    # ── Spacing & radius ─────────────────────────────────────────────────────
    _section_title(pdf, "Spacing & Radius")
    pdf.set_font("Helvetica", "", 11)
    pdf.set_text_color(60, 60, 60)
    for category in ("spacing", "radius"):
        for key, value in tokens.category(category).items():
            pdf.cell(0, 6, _pdf_text(f"{category}-{key}: {value}"), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(3)

    # ── Illustrations ────────────────────────────────────────────────────────
    if tokens.illustrations:
        _section_title(pdf, "3D Illustrations")
        pdf.set_font("Helvetica", "", 9)
        pdf.set_text_color(60, 60, 60)
        for i, prompt in enumerate(tokens.illustrations, start=1):
            pdf.multi_cell(0, 5, _pdf_text(f"{i}. {prompt}"), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
            pdf.ln(1)

    return bytes(pdf.output())

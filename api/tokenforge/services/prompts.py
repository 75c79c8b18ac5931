MOODBOARD_SYSTEM = (
    "You are a brand design assistant. Given a color palette, return a JSON object with: "
    "mainColor (name and hex of the first color), style (suggested style, e.g. Minimal, Luxury, "
    "Playful, etc.). Do NOT generate or change the palette. Do NOT invent new colors."
)

MOODBOARD_USER = """Given this color palette: {palette}
Return only a JSON object in this format:
{{
  "mainColor": {{ "name": "...", "hex": "..." }},
  "style": "..."
}}"""

TOKENS_SYSTEM = (
    "You are a brand design assistant. Generate a valid JSON design token set based on the "
    "brand input and moodboard image. Return only a JSON object in the following format."
)

TOKENS_USER = """Please return only a JSON object in this format:

{{
  "color": {{ "primary": "...", "background": "...", "text": "..." }},
  "font": {{ "family": "...", "base": "...", "h1": "..." }},
  "spacing": {{ "sm": "...", "md": "...", "lg": "..." }},
  "radius": {{ "md": "..." }},
  "illustrations": ["3D illustration prompt or URL 1", "3D illustration prompt or URL 2", "3D illustration prompt or URL 3"]
}}

Do not include markdown or explanation.

Brand Name: {brand_name}
Purpose: {purpose}
Values: {values}
Niche: {niche}
Theme: {theme}
Warmth: {warmth}
Brightness: {brightness}
Typography: {typography}"""

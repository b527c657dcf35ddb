# src/prompts/templates.py — v1
"""Deterministic template prompts, the last tier of prompt building.

Every clause is fixed text; attributes only select which clauses appear, so
the output is always non-empty and never echoes free text other than short
attribute values.
"""

from __future__ import annotations

from profilegen.core.models import GenerationRequest

# (keyword, background clause) pairs, first match wins
SPECIALIZATION_BACKGROUNDS: list[tuple[str, str]] = [
    ("painting", "There are elegant framed paintings visible in the background."),
    ("sculpture", "There are small sculptures visible on shelves in the background."),
    ("modern", "The background features modern art pieces and a contemporary office setting."),
    ("antique", "The background shows antique furniture and classical art elements."),
    ("jewel", "A glass display case with fine jewelry is softly lit in the background."),
    ("furniture", "Period furniture pieces are arranged in the background."),
    ("photograph", "Framed fine-art photographs hang on the wall behind them."),
]
GENERIC_APPRAISER_BACKGROUND = "The background shows a professional office with art pieces."

LOCATION_SETTINGS: list[tuple[str, str]] = [
    ("gallery", "A bright art gallery interior with white walls and curated artworks on display."),
    ("auction", "An elegant auction house salon with rows of chairs facing a podium."),
    ("museum", "A refined museum hall with artworks displayed under gallery lighting."),
    ("studio", "A creative artist studio with easels, canvases and natural daylight."),
    ("office", "A tasteful appraisal office with a wooden desk and framed artworks."),
]
GENERIC_LOCATION_SETTING = "A welcoming, professionally designed art space with artworks on display."

APPRAISER_QUALITY = (
    "The person is wearing professional business attire appropriate for an art expert. "
    "High quality portrait, photorealistic, professional lighting, sharp focus, 4K, detailed. "
    "This is for a professional website profile. The image should look professionally "
    "photographed but not of any real person."
)
LOCATION_QUALITY = (
    "Wide-angle architectural photograph, photorealistic, soft natural lighting, "
    "sharp focus, 4K, detailed. No people, no text, no signage, no logos."
)

_MAX_VALUE_LEN = 60


def build_template_prompt(request: GenerationRequest) -> str:
    """Assemble the fixed-clause prompt for a request."""
    if request.entity_kind == "location":
        return _location_prompt(request)
    return _appraiser_prompt(request)


def _appraiser_prompt(request: GenerationRequest) -> str:
    parts = ["Professional portrait photograph of an art appraiser in a professional setting."]

    gender = _short(request.attribute("gender"))
    if gender:
        parts.append(f"The person is {gender}.")

    age = _short(request.attribute("age"))
    if age:
        parts.append(f"They appear to be approximately {age} years old.")

    specialization = _short(request.attribute("specialization"))
    if specialization:
        parts.append(f"They specialize in {specialization} art.")
        background = _match_clause(specialization, SPECIALIZATION_BACKGROUNDS)
        if background:
            parts.append(background)
    else:
        parts.append(GENERIC_APPRAISER_BACKGROUND)

    parts.append(APPRAISER_QUALITY)
    return " ".join(parts)


def _location_prompt(request: GenerationRequest) -> str:
    location_type = _short(request.attribute("type"))
    parts = [_match_clause(location_type or "", LOCATION_SETTINGS) or GENERIC_LOCATION_SETTING]

    city = _short(request.attribute("city"))
    if city:
        parts.append(f"The architecture suggests a location in {city}.")

    features = request.attribute("features")
    if isinstance(features, (list, tuple)):
        names = [_short(f) for f in features[:4]]
        names = [n for n in names if n]
        if names:
            parts.append(f"Notable features: {', '.join(names)}.")

    parts.append(LOCATION_QUALITY)
    return " ".join(parts)


def _match_clause(value: str, table: list[tuple[str, str]]) -> str | None:
    lowered = value.lower()
    for keyword, clause in table:
        if keyword in lowered:
            return clause
    return None


def _short(value: object) -> str | None:
    """Render an attribute as a short single-line string, or None."""
    if value is None:
        return None
    text = " ".join(str(value).split())
    if not text:
        return None
    return text[:_MAX_VALUE_LEN]

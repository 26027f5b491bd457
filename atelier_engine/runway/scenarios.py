"""Built-in production scenarios."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Scenario:
    id: str
    label: str
    prompt: str


SCENARIOS: tuple[Scenario, ...] = (
    Scenario(
        "paris",
        "Paris Fashion Week",
        "Paris fashion week runway, flash photography, audience in background, elegant lighting",
    ),
    Scenario(
        "neon",
        "Cyberpunk Neon",
        "futuristic neon city street at night, rain reflections, cyberpunk aesthetic, dramatic blue and pink lighting",
    ),
    Scenario(
        "studio",
        "Minimalist Studio",
        "clean white infinity cove studio, softbox lighting, high fashion editorial style",
    ),
    Scenario(
        "desert",
        "Sahara Dune",
        "golden hour in the desert dunes, wind blowing fabric, cinematic sunlight, nature background",
    ),
    Scenario(
        "urban",
        "NYC Street Style",
        "busy New York City street, daytime, yellow taxis in blur background, urban chic vibe",
    ),
)

_BY_ID = {scenario.id: scenario for scenario in SCENARIOS}
CUSTOM_LABEL = "Custom"
DEFAULT_PROMPT = "fashion runway"


def resolve_scenario(value: str | None) -> Scenario:
    """Catalogue ids map to their scenario; any other text is a custom prompt."""
    text = (value or "").strip()
    known = _BY_ID.get(text.lower())
    if known is not None:
        return known
    return Scenario("custom", CUSTOM_LABEL, text or DEFAULT_PROMPT)

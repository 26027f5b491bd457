"""Tool declarations exposed to the studio agent and argument parsing."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from ..providers.base import ToolCall, ToolSpec
from ..utils import safe_str

GENERATE_CONCEPTS = "generate_concepts"
VIEW_ASSETS = "view_assets"

DEFAULT_CONCEPT_NAMES = ("Concept Alpha", "Concept Beta")
DEFAULT_DESCRIPTION = "Awaiting description..."

GENERATE_CONCEPTS_TOOL = ToolSpec(
    name=GENERATE_CONCEPTS,
    description="Generates two distinct fashion design concepts from detailed visual descriptions.",
    parameters={
        "type": "OBJECT",
        "properties": {
            "concept1_name": {"type": "STRING", "description": "Creative name for concept 1"},
            "concept1_description": {"type": "STRING", "description": "Visual prompt for concept 1"},
            "concept2_name": {"type": "STRING", "description": "Creative name for concept 2"},
            "concept2_description": {"type": "STRING", "description": "Visual prompt for concept 2"},
        },
        "required": ["concept1_name", "concept1_description", "concept2_name", "concept2_description"],
    },
)

VIEW_ASSETS_TOOL = ToolSpec(
    name=VIEW_ASSETS,
    description="Loads the content of inspiration assets the user referenced but has not shared.",
    parameters={
        "type": "OBJECT",
        "properties": {
            "asset_ids": {
                "type": "ARRAY",
                "items": {"type": "STRING"},
                "description": "Ids (or names) of the assets to load",
            }
        },
        "required": ["asset_ids"],
    },
)


@dataclass(frozen=True)
class ConceptSeed:
    name: str
    description: str


@dataclass(frozen=True)
class ConceptRequest:
    first: ConceptSeed
    second: ConceptSeed

    @property
    def seeds(self) -> tuple[ConceptSeed, ConceptSeed]:
        return self.first, self.second

    @classmethod
    def from_args(cls, args: Mapping[str, Any] | None) -> "ConceptRequest":
        """Build a request from untrusted tool arguments; blanks get placeholders."""
        data = args if isinstance(args, Mapping) else {}
        seeds = []
        for index, default_name in enumerate(DEFAULT_CONCEPT_NAMES, start=1):
            seeds.append(
                ConceptSeed(
                    name=safe_str(data.get(f"concept{index}_name"), default_name),
                    description=safe_str(data.get(f"concept{index}_description"), DEFAULT_DESCRIPTION),
                )
            )
        return cls(first=seeds[0], second=seeds[1])


def requested_asset_refs(call: ToolCall) -> list[str]:
    raw = call.args.get("asset_ids") if isinstance(call.args, Mapping) else None
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, (list, tuple)):
        return []
    return [str(item).strip() for item in raw if str(item or "").strip()]

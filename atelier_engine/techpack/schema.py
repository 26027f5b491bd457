"""Tech-pack response schema and defensive assembly.

The structured-output schema is a request, not a guarantee: every field is
read defensively and anything missing, null or of the wrong type falls back
to an empty or zero value.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from ..studio.state import BOMItem, Measurement, SourcingResult, TechPack
from ..utils import safe_float, safe_str

SOURCING_RESULT_CAP = 5
MAIN_FABRIC_KEYS = ("body", "main")

TECH_PACK_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "style_number": {"type": "STRING"},
        "season": {"type": "STRING"},
        "bom": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "location": {"type": "STRING"},
                    "item": {"type": "STRING"},
                    "description": {"type": "STRING"},
                    "quantity": {"type": "STRING"},
                    "cost_estimate": {"type": "NUMBER"},
                },
                "required": ["location", "item", "description", "quantity", "cost_estimate"],
            },
        },
        "measurements": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "point_of_measure": {"type": "STRING"},
                    "value": {"type": "NUMBER"},
                    "unit": {"type": "STRING"},
                    "tolerance": {"type": "STRING"},
                },
                "required": ["point_of_measure", "value", "unit", "tolerance"],
            },
        },
        "construction_notes": {"type": "ARRAY", "items": {"type": "STRING"}},
        "total_cost_estimate": {"type": "NUMBER"},
        "currency": {"type": "STRING"},
    },
    "required": ["style_number", "season", "bom", "measurements", "construction_notes", "total_cost_estimate"],
}


def _records(value: Any) -> list[Mapping[str, Any]]:
    if not isinstance(value, (list, tuple)):
        return []
    return [entry for entry in value if isinstance(entry, Mapping)]


def _bom_item(entry: Mapping[str, Any]) -> BOMItem:
    return BOMItem(
        location=safe_str(entry.get("location")),
        item=safe_str(entry.get("item")),
        description=safe_str(entry.get("description")),
        quantity=safe_str(entry.get("quantity")),
        cost_estimate=safe_float(entry.get("cost_estimate")),
    )


def _measurement(entry: Mapping[str, Any]) -> Measurement:
    return Measurement(
        point_of_measure=safe_str(entry.get("point_of_measure")),
        value=safe_float(entry.get("value")),
        unit=safe_str(entry.get("unit")),
        tolerance=safe_str(entry.get("tolerance")),
    )


def assemble_tech_pack(raw: Any, source_revision: int | None = None) -> TechPack:
    data: Mapping[str, Any] = raw if isinstance(raw, Mapping) else {}
    notes = data.get("construction_notes")
    if isinstance(notes, str):
        notes = [notes]
    return TechPack(
        style_number=safe_str(data.get("style_number")),
        season=safe_str(data.get("season")),
        bom=tuple(_bom_item(entry) for entry in _records(data.get("bom"))),
        measurements=tuple(_measurement(entry) for entry in _records(data.get("measurements"))),
        construction_notes=tuple(
            safe_str(note) for note in (notes if isinstance(notes, (list, tuple)) else []) if safe_str(note)
        ),
        total_cost_estimate=safe_float(data.get("total_cost_estimate")),
        currency=safe_str(data.get("currency"), "USD"),
        source_revision=source_revision,
    )


def main_fabric(bom: Iterable[BOMItem]) -> BOMItem | None:
    """First entry whose location mentions the body or main fabric."""
    for entry in bom:
        location = entry.location.lower()
        if any(key in location for key in MAIN_FABRIC_KEYS):
            return entry
    return None


def sourcing_query(entry: BOMItem) -> str:
    return " ".join(part for part in (entry.item, entry.description, "wholesale fabric") if part)


def merge_sourcing(existing: Iterable[SourcingResult], found: Iterable[SourcingResult]) -> tuple[SourcingResult, ...]:
    merged = list(existing)
    seen = {result.url for result in merged}
    added = 0
    for result in found:
        if added >= SOURCING_RESULT_CAP:
            break
        if not result.url or result.url in seen:
            continue
        seen.add(result.url)
        merged.append(result)
        added += 1
    return tuple(merged)

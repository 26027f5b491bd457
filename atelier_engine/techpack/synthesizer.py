"""Tech-pack synthesis from a concept's imagery."""

from __future__ import annotations

from dataclasses import replace

from ..chat.prompts import TECH_PACK_SYSTEM, TECH_PACK_USER_PROMPT
from ..pipeline.derivatives import DerivativeRenderer, is_current
from ..providers.base import CapabilityProvider, ContextPart
from ..runs.events import EventWriter
from ..studio.state import DesignConcept, ImageRole, TechPack
from ..studio.store import StateStore
from .schema import TECH_PACK_SCHEMA, assemble_tech_pack, main_fabric, sourcing_query


def needs_tech_pack(concept: DesignConcept | None) -> bool:
    return bool(concept and concept.finalized and concept.primary is not None and concept.tech_pack is None)


class TechPackSynthesizer:
    def __init__(
        self,
        provider: CapabilityProvider,
        store: StateStore,
        events: EventWriter,
        derivatives: DerivativeRenderer,
    ) -> None:
        self.provider = provider
        self.store = store
        self.events = events
        self.derivatives = derivatives

    def ensure_technical(self, concept_id: str) -> DesignConcept | None:
        concept = self.store.state.concept(concept_id)
        if concept is None or concept.primary is None:
            return concept
        if is_current(concept.images.technical, concept):
            return concept
        if concept.is_pending(ImageRole.TECHNICAL):
            # An edit already queued this revision's render.
            self.events.emit(
                "technical_render_in_flight",
                concept_id=concept_id,
                source_revision=concept.primary_revision,
            )
            return concept
        self.derivatives.regenerate(concept_id, ImageRole.TECHNICAL, concept.primary_revision)
        return self.store.state.concept(concept_id)

    def synthesize(self, concept_id: str, force: bool = False) -> TechPack | None:
        """Build and store a tech pack; a concept that already has one is left alone unless forced."""
        concept = self.store.state.concept(concept_id)
        if concept is None or concept.primary is None:
            return None
        if concept.tech_pack is not None and not force:
            return concept.tech_pack

        concept = self.ensure_technical(concept_id) or concept
        revision = concept.primary_revision
        parts: list[ContextPart] = [concept.primary.media]
        if is_current(concept.images.technical, concept):
            parts.append(concept.images.technical.media)
        parts.append(TECH_PACK_USER_PROMPT.format(name=concept.name, description=concept.description))
        self.events.emit("techpack_started", concept_id=concept_id, revision=revision, forced=force)
        try:
            raw = self.provider.complete_structured(TECH_PACK_SYSTEM, parts, TECH_PACK_SCHEMA)
        except Exception as exc:
            self.events.emit("techpack_failed", concept_id=concept_id, error=str(exc))
            return None

        pack = assemble_tech_pack(raw, source_revision=revision)
        fabric = main_fabric(pack.bom)
        if fabric is not None:
            pack = replace(pack, sourcing_query=sourcing_query(fabric))
        self.store.update_concept(concept_id, lambda c: replace(c, tech_pack=pack))
        self.events.emit(
            "techpack_created",
            concept_id=concept_id,
            style_number=pack.style_number,
            bom_items=len(pack.bom),
            measurements=len(pack.measurements),
            sourcing_query=pack.sourcing_query,
        )
        return pack

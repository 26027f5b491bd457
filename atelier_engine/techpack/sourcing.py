"""Grounded supplier lookup for a tech pack's main fabric."""

from __future__ import annotations

from dataclasses import replace

from ..providers.base import CapabilityProvider
from ..runs.events import EventWriter
from ..studio.state import DesignConcept, SourcingResult, TechPack
from ..studio.store import StateStore
from .schema import SOURCING_RESULT_CAP, merge_sourcing


class SourcingLookup:
    def __init__(self, provider: CapabilityProvider, store: StateStore, events: EventWriter) -> None:
        self.provider = provider
        self.store = store
        self.events = events

    def run(self, concept_id: str, pack: TechPack) -> int:
        """Search for ``pack.sourcing_query`` and append results; returns how many were added."""
        query = pack.sourcing_query
        if not query:
            return 0
        self.events.emit("sourcing_started", concept_id=concept_id, query=query)
        try:
            found = self.provider.grounded_search(query)
        except Exception as exc:
            self.events.emit("sourcing_failed", concept_id=concept_id, query=query, error=str(exc))
            return 0
        results = [SourcingResult(title=item.title, url=item.url) for item in found][:SOURCING_RESULT_CAP]
        added: list[int] = []

        def _append(concept: DesignConcept) -> DesignConcept | None:
            # A refreshed pack replaced this one while the search ran.
            if concept.tech_pack is not pack:
                return None
            merged = merge_sourcing(pack.sourcing_results, results)
            added.append(len(merged) - len(pack.sourcing_results))
            return replace(concept, tech_pack=replace(pack, sourcing_results=merged))

        self.store.update_concept(concept_id, _append)
        count = added[0] if added else 0
        self.events.emit("sourcing_completed", concept_id=concept_id, query=query, results=count)
        return count

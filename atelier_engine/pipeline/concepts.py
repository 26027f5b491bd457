"""Concept pair generation."""

from __future__ import annotations

from concurrent.futures import Executor, wait
from dataclasses import replace

from ..chat.prompts import PRIMARY_IMAGE_PROMPT
from ..chat.tools import ConceptRequest, ConceptSeed
from ..providers.base import CapabilityProvider
from ..runs.events import EventWriter
from ..studio.state import DesignConcept, ImageRole, StudioState
from ..studio.store import StateStore
from ..utils import new_id
from .derivatives import DerivativeRenderer, commit_primary


class ConceptPipeline:
    """Allocates a concept pair and fills it in.

    Each concept runs primary then artistic in one worker; the two concepts
    run side by side. A new pair replaces the previous concepts and clears the
    selection. ``run`` returns once both branches have settled.
    """

    def __init__(
        self,
        provider: CapabilityProvider,
        store: StateStore,
        executor: Executor,
        events: EventWriter,
        derivatives: DerivativeRenderer,
    ) -> None:
        self.provider = provider
        self.store = store
        self.executor = executor
        self.events = events
        self.derivatives = derivatives

    def allocate(self, request: ConceptRequest) -> tuple[DesignConcept, DesignConcept]:
        pair = tuple(
            DesignConcept(
                id=new_id("concept"),
                name=seed.name,
                description=seed.description,
                pending=frozenset({ImageRole.PRIMARY, ImageRole.ARTISTIC}),
            )
            for seed in request.seeds
        )

        def _replace(state: StudioState) -> StudioState:
            return replace(state, concepts=pair, active_concept_id=None)

        self.store.update(_replace)
        self.events.emit(
            "concepts_allocated",
            concept_ids=[concept.id for concept in pair],
            names=[concept.name for concept in pair],
        )
        return pair[0], pair[1]

    def run(self, request: ConceptRequest) -> list[DesignConcept]:
        pair = self.allocate(request)
        futures = [
            self.executor.submit(self._branch, concept.id, seed)
            for concept, seed in zip(pair, request.seeds)
        ]
        wait(futures)
        state = self.store.state
        settled = [state.concept(concept.id) for concept in pair]
        self.events.emit(
            "concepts_settled",
            concept_ids=[concept.id for concept in pair],
            primaries=sum(1 for concept in settled if concept is not None and concept.primary is not None),
        )
        return [concept for concept in settled if concept is not None]

    def _branch(self, concept_id: str, seed: ConceptSeed) -> None:
        prompt = PRIMARY_IMAGE_PROMPT.format(description=seed.description)
        try:
            media = self.provider.generate_image([prompt])
        except Exception as exc:
            self.store.update_concept(
                concept_id,
                lambda c: replace(c, pending=c.pending - {ImageRole.PRIMARY, ImageRole.ARTISTIC}),
            )
            self.events.emit("primary_failed", concept_id=concept_id, error=str(exc))
            return
        committed = self.store.update_concept(concept_id, lambda c: commit_primary(c, media))
        if committed is None or committed.primary is None:
            return
        self.events.emit("primary_committed", concept_id=concept_id, revision=committed.primary_revision)
        self.derivatives.regenerate(concept_id, ImageRole.ARTISTIC, committed.primary_revision)

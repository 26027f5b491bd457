"""Derivative images (artistic, technical) rendered from a concept's primary.

A derivative is only committed when the primary revision it was rendered
from is still the current one. Anything else is dropped, so the last primary
write always wins each slot.
"""

from __future__ import annotations

from dataclasses import replace

from ..chat.prompts import ARTISTIC_IMAGE_PROMPT, TECHNICAL_IMAGE_PROMPT
from ..media import MediaBlob
from ..providers.base import CapabilityProvider
from ..runs.events import EventWriter
from ..studio.state import DERIVATIVE_ROLES, DesignConcept, DesignImage, ImageRole
from ..studio.store import StateStore
from ..utils import new_id

DERIVATIVE_PROMPTS = {
    ImageRole.ARTISTIC: ARTISTIC_IMAGE_PROMPT,
    ImageRole.TECHNICAL: TECHNICAL_IMAGE_PROMPT,
}


def commit_primary(concept: DesignConcept, media: MediaBlob) -> DesignConcept:
    """Write a new primary; existing derivatives turn stale and pending."""
    current = concept.primary
    if current is None:
        primary = DesignImage(id=new_id("img"), role=ImageRole.PRIMARY, concept_id=concept.id, media=media)
        return replace(
            concept,
            images=concept.images.with_image(ImageRole.PRIMARY, primary),
            pending=concept.pending - {ImageRole.PRIMARY},
        )
    primary = replace(current, media=media, revision=current.revision + 1)
    images = concept.images.with_image(ImageRole.PRIMARY, primary)
    for role in DERIVATIVE_ROLES:
        existing = images.get(role)
        if existing is not None:
            images = images.with_image(role, replace(existing, stale=True))
    return replace(concept, images=images, pending=concept.pending | set(DERIVATIVE_ROLES))


def commit_derivative(
    concept: DesignConcept,
    role: ImageRole,
    media: MediaBlob,
    source_revision: int,
) -> DesignConcept | None:
    if concept.primary is None or concept.primary_revision != source_revision:
        return None
    existing = concept.images.get(role)
    image = DesignImage(
        id=existing.id if existing else new_id("img"),
        role=role,
        concept_id=concept.id,
        media=media,
        revision=existing.revision + 1 if existing else 1,
        source_revision=source_revision,
    )
    return replace(concept, images=concept.images.with_image(role, image), pending=concept.pending - {role})


def clear_derivative(concept: DesignConcept, role: ImageRole, source_revision: int) -> DesignConcept | None:
    if concept.primary_revision != source_revision:
        return None
    return replace(concept, images=concept.images.with_image(role, None), pending=concept.pending - {role})


def mark_pending(concept: DesignConcept, role: ImageRole) -> DesignConcept | None:
    if concept.is_pending(role):
        return None
    return replace(concept, pending=concept.pending | {role})


def is_current(image: DesignImage | None, concept: DesignConcept) -> bool:
    if image is None or image.stale:
        return False
    return image.source_revision == concept.primary_revision


class DerivativeRenderer:
    def __init__(self, provider: CapabilityProvider, store: StateStore, events: EventWriter) -> None:
        self.provider = provider
        self.store = store
        self.events = events

    def render(self, primary: DesignImage, role: ImageRole) -> MediaBlob:
        return self.provider.generate_image([primary.media, DERIVATIVE_PROMPTS[role]])

    def regenerate(self, concept_id: str, role: ImageRole, source_revision: int) -> bool:
        """Render ``role`` from the primary at ``source_revision``; True when committed."""
        def _mark(current: DesignConcept) -> DesignConcept | None:
            if current.primary_revision != source_revision:
                return None
            return mark_pending(current, role)

        self.store.update_concept(concept_id, _mark)
        concept = self.store.state.concept(concept_id)
        if concept is None or concept.primary is None or concept.primary_revision != source_revision:
            self.events.emit("derivative_skipped", concept_id=concept_id, role=role, source_revision=source_revision)
            return False
        self.events.emit("derivative_started", concept_id=concept_id, role=role, source_revision=source_revision)
        try:
            media = self.render(concept.primary, role)
        except Exception as exc:
            self.store.update_concept(concept_id, lambda c: clear_derivative(c, role, source_revision))
            self.events.emit(
                "derivative_failed",
                concept_id=concept_id,
                role=role,
                source_revision=source_revision,
                error=str(exc),
            )
            return False
        committed = self.store.update_concept(
            concept_id, lambda c: commit_derivative(c, role, media, source_revision)
        )
        if committed is None:
            self.events.emit("derivative_discarded", concept_id=concept_id, role=role, source_revision=source_revision)
            return False
        self.events.emit("derivative_committed", concept_id=concept_id, role=role, source_revision=source_revision)
        return True

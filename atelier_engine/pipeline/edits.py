"""Masked primary edits and propagation to derivatives."""

from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass
from typing import Callable

from ..chat.prompts import EDIT_INSTRUCTION_PROMPT
from ..media import MediaBlob, composite_mask
from ..providers.base import CapabilityProvider
from ..runs.events import EventWriter
from ..studio.state import DERIVATIVE_ROLES, DesignConcept, ImageRole
from ..studio.store import StateStore
from .derivatives import DerivativeRenderer, commit_primary

Submit = Callable[..., Future]

EMPTY_INSTRUCTION = "Describe the change you want before applying an edit."
DERIVATIVE_TARGET = (
    "The {role} view is generated from the primary render and cannot be edited directly. "
    "Edit the primary image instead; this view will follow."
)
UNKNOWN_TARGET = "That image is not part of the selected concept."
NO_CREDENTIALS = "Editing is unavailable without provider credentials; the design was left unchanged."
EDIT_FAILED = "The edit could not be applied; the design was left unchanged."


@dataclass(frozen=True)
class EditOutcome:
    applied: bool
    message: str
    revision: int | None = None


class EditPropagation:
    def __init__(
        self,
        provider: CapabilityProvider,
        store: StateStore,
        events: EventWriter,
        derivatives: DerivativeRenderer,
        submit: Submit,
    ) -> None:
        self.provider = provider
        self.store = store
        self.events = events
        self.derivatives = derivatives
        self._submit = submit

    def validate(self, concept_id: str, image_id: str, instruction: str) -> EditOutcome | None:
        """Return a rejection outcome, or None when the edit may proceed."""
        if not (instruction or "").strip():
            return EditOutcome(applied=False, message=EMPTY_INSTRUCTION)
        concept = self.store.state.concept(concept_id)
        image = concept.find_image(image_id) if concept else None
        if image is None:
            return EditOutcome(applied=False, message=UNKNOWN_TARGET)
        if image.role is not ImageRole.PRIMARY:
            return EditOutcome(applied=False, message=DERIVATIVE_TARGET.format(role=image.role.value))
        return None

    def apply(
        self,
        concept_id: str,
        image_id: str,
        mask_overlay: MediaBlob | None,
        instruction: str,
    ) -> EditOutcome:
        rejection = self.validate(concept_id, image_id, instruction)
        if rejection is not None:
            return rejection
        ready, reason = self.provider.ready()
        if not ready:
            self.events.emit("edit_skipped", concept_id=concept_id, reason=reason)
            return EditOutcome(applied=False, message=NO_CREDENTIALS)

        concept = self.store.state.concept(concept_id)
        primary = concept.primary
        base_revision = primary.revision
        self.events.emit(
            "edit_started",
            concept_id=concept_id,
            image_id=image_id,
            instruction=instruction,
            masked=mask_overlay is not None,
            revision=base_revision,
        )
        try:
            source = composite_mask(primary.media, mask_overlay) if mask_overlay is not None else primary.media
            edited = self.provider.edit_image(source, EDIT_INSTRUCTION_PROMPT.format(instruction=instruction.strip()))
        except Exception as exc:
            self.events.emit("edit_failed", concept_id=concept_id, image_id=image_id, error=str(exc))
            return EditOutcome(applied=False, message=EDIT_FAILED)

        def _commit(current: DesignConcept) -> DesignConcept | None:
            if current.primary is None or current.primary.id != image_id:
                return None
            if current.primary_revision != base_revision:
                return None
            return commit_primary(current, edited)

        committed = self.store.update_concept(concept_id, _commit)
        if committed is None:
            self.events.emit("edit_discarded", concept_id=concept_id, image_id=image_id)
            return EditOutcome(applied=False, message=EDIT_FAILED)
        revision = committed.primary_revision
        self.events.emit("edit_committed", concept_id=concept_id, image_id=image_id, revision=revision)
        self.propagate(concept_id, revision)
        return EditOutcome(applied=True, message="Edit applied; refreshing derived views.", revision=revision)

    def propagate(self, concept_id: str, revision: int) -> list[Future]:
        return [
            self._submit(self.derivatives.regenerate, concept_id, role, revision)
            for role in DERIVATIVE_ROLES
        ]

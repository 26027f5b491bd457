"""Copy-on-write state store."""

from __future__ import annotations

import threading
from typing import Callable

from .state import DesignConcept, StudioState

Listener = Callable[[StudioState], None]


class StateStore:
    def __init__(self, initial: StudioState) -> None:
        self._lock = threading.RLock()
        self._state = initial
        self._listeners: list[Listener] = []

    @property
    def state(self) -> StudioState:
        with self._lock:
            return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def update(self, mutate: Callable[[StudioState], StudioState]) -> StudioState:
        with self._lock:
            previous = self._state
            updated = mutate(previous)
            if updated is previous:
                return previous
            self._state = updated
            listeners = list(self._listeners)
        for listener in listeners:
            listener(updated)
        return updated

    def update_concept(
        self,
        concept_id: str,
        mutate: Callable[[DesignConcept], DesignConcept | None],
    ) -> DesignConcept | None:
        """Replace one concept; ``mutate`` returning None (or the same record) is a no-op."""
        result: list[DesignConcept] = []

        def _apply(state: StudioState) -> StudioState:
            concept = state.concept(concept_id)
            if concept is None:
                return state
            updated = mutate(concept)
            if updated is None or updated is concept:
                return state
            result.append(updated)
            return state.with_concept(updated)

        self.update(_apply)
        return result[0] if result else None

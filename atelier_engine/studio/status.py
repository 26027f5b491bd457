"""Process-wide agent status gate."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from enum import Enum
from typing import Callable, Iterator


class AgentStatus(str, Enum):
    IDLE = "idle"
    THINKING = "thinking"
    GENERATING = "generating"
    EDITING = "editing"
    ANALYZING = "analyzing"
    PRODUCING = "producing"


class InvalidTransition(RuntimeError):
    pass


TRANSITIONS: dict[AgentStatus, frozenset[AgentStatus]] = {
    AgentStatus.IDLE: frozenset(
        {
            AgentStatus.THINKING,
            AgentStatus.GENERATING,
            AgentStatus.EDITING,
            AgentStatus.ANALYZING,
            AgentStatus.PRODUCING,
        }
    ),
    AgentStatus.THINKING: frozenset({AgentStatus.IDLE, AgentStatus.GENERATING}),
    AgentStatus.GENERATING: frozenset({AgentStatus.IDLE}),
    AgentStatus.EDITING: frozenset({AgentStatus.IDLE}),
    AgentStatus.ANALYZING: frozenset({AgentStatus.IDLE}),
    AgentStatus.PRODUCING: frozenset({AgentStatus.IDLE}),
}


class StatusGate:
    """The single mutual-exclusion point for user-initiated work.

    Only one gated operation may own the status at a time. Acquisition only
    succeeds from ``idle``; every other change must follow ``TRANSITIONS``.
    """

    def __init__(self, on_change: Callable[[AgentStatus], None] | None = None) -> None:
        self._lock = threading.Lock()
        self._status = AgentStatus.IDLE
        self._on_change = on_change

    @property
    def status(self) -> AgentStatus:
        with self._lock:
            return self._status

    @property
    def is_idle(self) -> bool:
        return self.status is AgentStatus.IDLE

    def try_acquire(self, target: AgentStatus) -> bool:
        if target is AgentStatus.IDLE:
            raise InvalidTransition("Cannot acquire the gate into idle.")
        with self._lock:
            if self._status is not AgentStatus.IDLE:
                return False
            self._status = target
        self._notify(target)
        return True

    def advance(self, target: AgentStatus) -> None:
        with self._lock:
            current = self._status
            if target not in TRANSITIONS[current]:
                raise InvalidTransition(f"Illegal status transition {current.value} -> {target.value}.")
            self._status = target
        self._notify(target)

    def release(self) -> None:
        with self._lock:
            if self._status is AgentStatus.IDLE:
                return
            self._status = AgentStatus.IDLE
        self._notify(AgentStatus.IDLE)

    @contextmanager
    def hold(self, target: AgentStatus) -> Iterator[bool]:
        acquired = self.try_acquire(target)
        try:
            yield acquired
        finally:
            if acquired:
                self.release()

    def _notify(self, status: AgentStatus) -> None:
        if self._on_change is not None:
            self._on_change(status)

"""Studio engine: the command surface over the studio state."""

from __future__ import annotations

import threading
import uuid
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable

from .chat.context import ContextTracker
from .chat.controller import AgentReply, ConversationController
from .media import MediaBlob, guess_mime
from .pipeline.concepts import ConceptPipeline
from .pipeline.derivatives import DerivativeRenderer
from .pipeline.edits import EditOutcome, EditPropagation
from .providers import default_provider
from .providers.base import CapabilityProvider
from .providers.dryrun import DryRunProvider
from .runs.events import EventWriter
from .runs.export import export_studio
from .runway.producer import (
    DEFAULT_POLL_INTERVAL,
    DEFAULT_POLL_TIMEOUT,
    ProductionError,
    ProductionRenderer,
)
from .runway.scenarios import resolve_scenario
from .studio.registry import AssetRegistry
from .studio.state import ChatMessage, InspirationAsset, MessageRole, RunwayAsset, RunwayKind, StudioState, TechPack
from .studio.status import AgentStatus, StatusGate
from .studio.store import StateStore
from .techpack.sourcing import SourcingLookup
from .techpack.synthesizer import TechPackSynthesizer, needs_tech_pack
from .utils import getenv_float, getenv_int

DEFAULT_MAX_WORKERS = 6
DEFAULT_HISTORY_TOKENS = 8192
PLACEHOLDER_LABEL = "placeholder"


class StudioEngine:
    def __init__(
        self,
        run_dir: Path,
        events_path: Path | None = None,
        provider: CapabilityProvider | None = None,
        max_workers: int | None = None,
        poll_interval: float | None = None,
        poll_timeout: float | None = None,
        history_tokens: int | None = None,
    ) -> None:
        self.run_dir = run_dir
        self.run_dir.mkdir(parents=True, exist_ok=True)
        self.session_id = run_dir.name or str(uuid.uuid4())
        self.events = EventWriter(events_path or run_dir / "events.jsonl", self.session_id)
        self.provider = provider or default_provider()
        ready, reason = self.provider.ready()
        self.credentials_ready = ready
        # Without credentials, concept slots are filled with labeled local placeholders.
        self.image_provider: CapabilityProvider = self.provider if ready else DryRunProvider(label=PLACEHOLDER_LABEL)

        self.store = StateStore(StudioState(registry=AssetRegistry(), status=AgentStatus.IDLE))
        self.gate = StatusGate(on_change=self._on_status)
        workers = max_workers or getenv_int("ATELIER_MAX_WORKERS", DEFAULT_MAX_WORKERS)
        self.executor = ThreadPoolExecutor(max_workers=max(2, workers), thread_name_prefix="atelier")
        self._background: set[Future] = set()
        self._background_lock = threading.Lock()
        self._cancel = threading.Event()
        self._closed = False

        tracker = ContextTracker(max_tokens=history_tokens or getenv_int("ATELIER_HISTORY_TOKENS", DEFAULT_HISTORY_TOKENS))
        self.controller = ConversationController(
            self.provider,
            events=self.events,
            tracker=tracker,
            fallback=None if ready else self.image_provider,
        )
        self.derivatives = DerivativeRenderer(self.image_provider, self.store, self.events)
        self.concepts = ConceptPipeline(self.image_provider, self.store, self.executor, self.events, self.derivatives)
        self.edits = EditPropagation(self.provider, self.store, self.events, self.derivatives, self._submit)
        self.synthesizer = TechPackSynthesizer(self.provider, self.store, self.events, self.derivatives)
        self.sourcing = SourcingLookup(self.provider, self.store, self.events)
        self.renderer = ProductionRenderer(
            self.image_provider,
            self.events,
            poll_interval=poll_interval
            if poll_interval is not None
            else getenv_float("ATELIER_VIDEO_POLL_INTERVAL", DEFAULT_POLL_INTERVAL),
            poll_timeout=poll_timeout
            if poll_timeout is not None
            else getenv_float("ATELIER_VIDEO_POLL_TIMEOUT", DEFAULT_POLL_TIMEOUT),
        )
        self.events.emit(
            "session_started",
            out_dir=str(self.run_dir),
            provider=getattr(self.provider, "name", "unknown"),
            credentials_ready=ready,
            reason=reason,
        )

    # Observation

    @property
    def status(self) -> AgentStatus:
        return self.gate.status

    def snapshot(self) -> StudioState:
        return self.store.state

    def subscribe(self, listener: Callable[[StudioState], None]) -> Callable[[], None]:
        return self.store.subscribe(listener)

    # Conversation

    def send_message(self, text: str) -> AgentReply | None:
        """Run one agent turn; returns None when the studio is busy or the text is blank."""
        message = (text or "").strip()
        if not message:
            return None
        with self.gate.hold(AgentStatus.THINKING) as acquired:
            if not acquired:
                self.events.emit("message_rejected", status=self.gate.status)
                return None
            state = self.store.state
            history = state.chat_history
            self._append_message(ChatMessage.create(MessageRole.USER, message))
            reply = self.controller.converse(history, message, state.registry, state.selected_asset_ids)
            self._append_message(ChatMessage.create(MessageRole.AGENT, reply.text, reply.reasoning_note))
            if reply.invocations:
                self.gate.advance(AgentStatus.GENERATING)
                for request in reply.invocations:
                    settled = self.concepts.run(request)
                    missing = [concept.name for concept in settled if concept.primary is None]
                    if missing:
                        self._system_message(f"Could not render: {', '.join(missing)}.")
                if not self.credentials_ready:
                    self._system_message("Concepts use placeholder images until credentials are configured.")
            return reply

    # Assets

    def upload_asset(self, payload: bytes | str, mime_type: str, name: str) -> InspirationAsset:
        created: list[InspirationAsset] = []

        def _add(state: StudioState) -> StudioState:
            registry, asset = state.registry.create(payload, mime_type, name)
            created.append(asset)
            return replace(state, registry=registry)

        self.store.update(_add)
        asset = created[0]
        self.events.emit(
            "asset_uploaded",
            asset_id=asset.id,
            name=asset.display_name,
            kind=asset.kind,
            mime_type=asset.mime_type,
            size=len(asset.payload),
        )
        return asset

    def upload_file(self, path: Path, name: str | None = None) -> InspirationAsset:
        return self.upload_asset(path.read_bytes(), guess_mime(path), name or path.name)

    def toggle_asset_disclosure(self, asset_id: str) -> bool:
        """Flip whether an asset is shared with the agent; returns the new value."""
        if asset_id not in self.store.state.registry:
            raise ValueError(f"Unknown asset: {asset_id}")
        shared: list[bool] = []

        def _toggle(state: StudioState) -> StudioState:
            selected = set(state.selected_asset_ids)
            if asset_id in selected:
                selected.discard(asset_id)
                shared.append(False)
            else:
                selected.add(asset_id)
                shared.append(True)
            return replace(state, selected_asset_ids=frozenset(selected))

        self.store.update(_toggle)
        self.events.emit("asset_disclosure_changed", asset_id=asset_id, shared=shared[0])
        return shared[0]

    # Concepts and tech packs

    def select_concept(self, concept_id: str | None) -> TechPack | None:
        if concept_id is not None and self.store.state.concept(concept_id) is None:
            raise ValueError(f"Unknown concept: {concept_id}")
        self.store.update(lambda state: replace(state, active_concept_id=concept_id))
        self.events.emit("concept_selected", concept_id=concept_id)
        if concept_id is None:
            return None
        return self._maybe_synthesize(concept_id)

    def finalize_concept(self, concept_id: str) -> TechPack | None:
        concept = self.store.state.concept(concept_id)
        if concept is None:
            raise ValueError(f"Unknown concept: {concept_id}")
        self.store.update_concept(concept_id, lambda c: None if c.finalized else replace(c, finalized=True))
        self.store.update(lambda state: replace(state, active_concept_id=concept_id))
        self.events.emit("concept_finalized", concept_id=concept_id)
        return self._maybe_synthesize(concept_id)

    def refresh_tech_pack(self, concept_id: str) -> TechPack | None:
        concept = self.store.state.concept(concept_id)
        if concept is None:
            raise ValueError(f"Unknown concept: {concept_id}")
        if concept.primary is None:
            return None
        return self._synthesize(concept_id, force=True)

    def _maybe_synthesize(self, concept_id: str) -> TechPack | None:
        concept = self.store.state.concept(concept_id)
        if concept is not None and concept.tech_pack is not None:
            return concept.tech_pack
        if not needs_tech_pack(concept):
            return None
        return self._synthesize(concept_id, force=False)

    def _synthesize(self, concept_id: str, force: bool) -> TechPack | None:
        if not self.credentials_ready:
            self.events.emit("techpack_skipped", concept_id=concept_id, reason="missing credentials")
            self._system_message("Tech pack generation needs provider credentials; skipped.")
            return None
        with self.gate.hold(AgentStatus.ANALYZING) as acquired:
            if not acquired:
                self.events.emit("techpack_deferred", concept_id=concept_id, status=self.gate.status)
                return None
            pack = self.synthesizer.synthesize(concept_id, force=force)
        if pack is None:
            self._system_message("Tech pack generation failed; try again.")
            return None
        if pack.sourcing_query and not pack.sourcing_results:
            self._submit(self.sourcing.run, concept_id, pack)
        return pack

    def synthesize_pending(self) -> list[TechPack]:
        """Synthesize tech packs for finalized concepts that are still waiting on one."""
        packs = []
        for concept in self.store.state.concepts:
            if needs_tech_pack(concept):
                pack = self._synthesize(concept.id, force=False)
                if pack is not None:
                    packs.append(pack)
        return packs

    # Edits

    def apply_edit(
        self,
        concept_id: str,
        image_id: str,
        mask_overlay: MediaBlob | None,
        instruction: str,
    ) -> EditOutcome | None:
        """Edit a concept's primary; returns None (and changes nothing) when the studio is busy."""
        with self.gate.hold(AgentStatus.EDITING) as acquired:
            if not acquired:
                self.events.emit("edit_rejected", concept_id=concept_id, status=self.gate.status)
                return None
            outcome = self.edits.validate(concept_id, image_id, instruction)
            if outcome is None:
                outcome = self.edits.apply(concept_id, image_id, mask_overlay, instruction)
        if not outcome.applied:
            self._system_message(outcome.message)
        return outcome

    # Production

    def produce(self, concept_id: str, scenario: str, mode: RunwayKind | str = RunwayKind.PHOTO) -> RunwayAsset:
        """Render a runway photo or video; without credentials this yields a labeled placeholder photo."""
        kind = RunwayKind(mode)
        concept = self.store.state.concept(concept_id)
        if concept is None:
            raise ProductionError(f"Unknown concept: {concept_id}")
        if concept.primary is None:
            raise ProductionError(f"Concept '{concept.name}' has no primary image yet.")
        placeholder = not self.credentials_ready
        if placeholder:
            self.events.emit("production_placeholder", concept_id=concept_id, requested=kind)
            kind = RunwayKind.PHOTO
        resolved = resolve_scenario(scenario)
        with self.gate.hold(AgentStatus.PRODUCING) as acquired:
            if not acquired:
                raise ProductionError(f"Studio is busy ({self.gate.status.value}).")
            self._cancel.clear()
            self.events.emit("production_started", concept_id=concept_id, kind=kind, scenario=resolved.label)
            try:
                asset = self.renderer.produce(concept, resolved, kind, cancel=self._cancel)
            except ProductionError as exc:
                self.events.emit("production_failed", concept_id=concept_id, kind=kind, error=str(exc))
                self._system_message(str(exc))
                raise
        if placeholder:
            asset = replace(asset, scenario_label=f"{asset.scenario_label} ({PLACEHOLDER_LABEL})")
            self._system_message("Runway output is a placeholder photo until credentials are configured.")
        self.store.update(lambda state: replace(state, gallery=(asset,) + state.gallery))
        self.events.emit(
            "production_completed",
            concept_id=concept_id,
            asset_id=asset.id,
            kind=kind,
            scenario=asset.scenario_label,
        )
        return asset

    def cancel_production(self) -> bool:
        if self.gate.status is not AgentStatus.PRODUCING:
            return False
        self._cancel.set()
        self.events.emit("production_cancel_requested")
        return True

    # Lifecycle

    def export(self, out_dir: Path | None = None) -> Path:
        target = out_dir or self.run_dir / "export"
        index = export_studio(self.store.state, target)
        self.events.emit("studio_exported", path=str(index))
        return index

    def wait_for_background(self, timeout: float | None = None) -> bool:
        """Block until background work settles; False when ``timeout`` expired first."""
        while True:
            with self._background_lock:
                pending = set(self._background)
            if not pending:
                return True
            done, not_done = wait(pending, timeout=timeout)
            if not_done:
                return False

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._cancel.set()
        self.wait_for_background()
        self.executor.shutdown(wait=True)
        self.events.emit("session_closed", concepts=len(self.store.state.concepts))

    def __enter__(self) -> "StudioEngine":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    # Internals

    def _submit(self, fn: Callable[..., Any], *args: Any) -> Future:
        future = self.executor.submit(fn, *args)
        with self._background_lock:
            self._background.add(future)
        future.add_done_callback(self._background_done)
        return future

    def _background_done(self, future: Future) -> None:
        with self._background_lock:
            self._background.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            self.events.emit("background_failed", error=str(exc))

    def _on_status(self, status: AgentStatus) -> None:
        # Read the gate again so out-of-order notifications settle on the current value.
        current = self.gate.status
        self.store.update(lambda state: state if state.status is current else replace(state, status=current))
        self.events.emit("status_changed", status=status)

    def _append_message(self, message: ChatMessage) -> None:
        self.store.update(lambda state: state.with_message(message))

    def _system_message(self, text: str) -> None:
        self._append_message(ChatMessage.create(MessageRole.SYSTEM, text))

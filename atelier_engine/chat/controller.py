"""Conversation/tool controller for the studio agent.

One user turn is at most two provider calls. The first call sees the asset
manifest (names only), the content of shared assets and both tools. When the
agent asks to view assets, their content is attached and a single follow-up is
issued with only ``generate_concepts`` registered, so a turn can never loop on
disclosure requests.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from ..providers.base import CapabilityProvider, CompletionRequest, Completion, ContextPart, ToolCall
from ..runs.events import EventWriter
from ..studio.registry import AssetRegistry
from ..studio.state import AssetKind, ChatMessage, InspirationAsset, WELCOME_MESSAGE
from .context import ContextTracker
from .prompts import (
    REQUESTED_ASSETS_NOTE,
    STUDIO_AGENT_SYSTEM,
    history_line,
    inline_text_asset,
    manifest_line,
    requested_asset_label,
    shared_asset_label,
)
from .tools import (
    GENERATE_CONCEPTS,
    GENERATE_CONCEPTS_TOOL,
    VIEW_ASSETS,
    VIEW_ASSETS_TOOL,
    ConceptRequest,
    requested_asset_refs,
)

UNAVAILABLE_REPLY = (
    "The design agent is offline: {reason} "
    "Add credentials to your environment (or .env) and try again."
)
FAILURE_REPLY = (
    "Sorry, I ran into a problem processing that. Please try again, and check that shared "
    "images or videos are within size limits."
)
GENERATING_REPLY = "Drafting two concepts from your direction now."
EMPTY_REPLY = "I'm here. Tell me more about the look you have in mind."


@dataclass(frozen=True)
class AgentReply:
    text: str
    reasoning_note: str | None = None
    invocations: tuple[ConceptRequest, ...] = ()
    disclosed_ids: tuple[str, ...] = ()
    calls: int = 0
    failed: bool = False


class ConversationController:
    def __init__(
        self,
        provider: CapabilityProvider,
        events: EventWriter | None = None,
        tracker: ContextTracker | None = None,
        fallback: CapabilityProvider | None = None,
    ) -> None:
        self.provider = provider
        self.events = events
        self.tracker = tracker or ContextTracker()
        # Answers turns while the main provider is not ready.
        self.fallback = fallback

    def converse(
        self,
        history: Sequence[ChatMessage],
        new_user_text: str,
        registry: AssetRegistry,
        disclosure_ids: Iterable[str] = (),
    ) -> AgentReply:
        provider = self.provider
        notice: str | None = None
        ready, reason = provider.ready()
        if not ready:
            self._emit("agent_unavailable", reason=reason, fallback=self.fallback is not None)
            notice = UNAVAILABLE_REPLY.format(reason=reason or "provider not ready.")
            if self.fallback is None:
                return AgentReply(text=notice)
            provider = self.fallback

        wanted = set(disclosure_ids)
        shared = [asset for asset in registry if asset.id in wanted]
        parts: list[ContextPart] = []
        history_text = self._history_block(history)
        if history_text:
            parts.append(f"PREVIOUS CONVERSATION:\n{history_text}")
        parts.append(self._manifest_block(registry, wanted))
        for asset in shared:
            parts.extend(_asset_parts(asset, shared_asset_label(asset.display_name, asset.id)))
        parts.append(new_user_text)

        calls = 0
        disclosed = [asset.id for asset in shared]
        self._emit(
            "agent_request",
            stage="initial",
            tools=[GENERATE_CONCEPTS, VIEW_ASSETS],
            disclosed_ids=disclosed,
            manifest_size=len(registry),
        )
        try:
            first = provider.complete(
                CompletionRequest(
                    system=STUDIO_AGENT_SYSTEM,
                    parts=list(parts),
                    tools=(GENERATE_CONCEPTS_TOOL, VIEW_ASSETS_TOOL),
                )
            )
            calls += 1
            final = first
            invocations = _concept_requests(first.tool_calls)
            refs = [ref for call in first.tool_calls if call.name == VIEW_ASSETS for ref in requested_asset_refs(call)]
            if any(call.name == VIEW_ASSETS for call in first.tool_calls):
                requested = [asset for asset in registry.resolve(refs) if asset.id not in disclosed]
                self._emit(
                    "assets_requested",
                    references=refs,
                    resolved_ids=[asset.id for asset in requested],
                )
                follow_parts = list(parts)
                for asset in requested:
                    follow_parts.extend(_asset_parts(asset, requested_asset_label(asset.display_name, asset.id)))
                    disclosed.append(asset.id)
                follow_parts.append(REQUESTED_ASSETS_NOTE)
                self._emit("agent_request", stage="follow_up", tools=[GENERATE_CONCEPTS], disclosed_ids=disclosed)
                final = provider.complete(
                    CompletionRequest(
                        system=STUDIO_AGENT_SYSTEM,
                        parts=follow_parts,
                        tools=(GENERATE_CONCEPTS_TOOL,),
                    )
                )
                calls += 1
                ignored = [call.name for call in final.tool_calls if call.name != GENERATE_CONCEPTS]
                if ignored:
                    self._emit("agent_tool_ignored", tools=ignored)
                invocations.extend(_concept_requests(final.tool_calls))
        except Exception as exc:
            self._emit("agent_failed", error=str(exc), calls=calls)
            return AgentReply(text=FAILURE_REPLY, disclosed_ids=tuple(disclosed), calls=calls, failed=True)

        text = _reply_text(final, first, bool(invocations))
        if notice:
            text = f"{notice}\n{text}"
        self._track(parts, text)
        self._emit(
            "agent_response",
            calls=calls,
            invocations=len(invocations),
            disclosed_ids=disclosed,
        )
        return AgentReply(
            text=text,
            reasoning_note=final.thoughts or first.thoughts,
            invocations=tuple(invocations),
            disclosed_ids=tuple(disclosed),
            calls=calls,
        )

    def _history_block(self, history: Sequence[ChatMessage]) -> str:
        # Reasoning notes and the welcome message are never replayed.
        lines = [
            history_line(message.role.value, message.text)
            for message in history
            if message.id != WELCOME_MESSAGE.id and message.text.strip()
        ]
        if not lines:
            return ""
        window = self.tracker.window(lines)
        if window.dropped:
            self._emit("history_windowed", kept=len(window.lines), dropped=window.dropped, tokens=window.tokens)
        return window.render()

    def _manifest_block(self, registry: AssetRegistry, shared_ids: set[str]) -> str:
        entries = registry.manifest()
        if not entries:
            return "AVAILABLE ASSETS: none uploaded."
        lines = [
            manifest_line(entry.id, entry.name, entry.kind.value, entry.id in shared_ids)
            for entry in entries
        ]
        return "AVAILABLE ASSETS:\n" + "\n".join(lines)

    def _track(self, parts: Sequence[ContextPart], reply: str) -> None:
        text_in = "\n".join(part for part in parts if isinstance(part, str))
        usage = self.tracker.record_call(text_in, reply)
        self._emit(
            "context_window_update",
            used_tokens=usage.used_tokens,
            max_tokens=usage.max_tokens,
            pct=usage.pct,
            alert_level=usage.alert_level,
        )

    def _emit(self, event_type: str, **payload) -> None:
        if self.events is not None:
            self.events.emit(event_type, **payload)


def _asset_parts(asset: InspirationAsset, label: str) -> list[ContextPart]:
    if asset.kind is AssetKind.TEXT:
        return [inline_text_asset(label, asset.text)]
    return [label, asset.as_blob()]


def _concept_requests(calls: Sequence[ToolCall]) -> list[ConceptRequest]:
    return [ConceptRequest.from_args(call.args) for call in calls if call.name == GENERATE_CONCEPTS]


def _reply_text(final: Completion, first: Completion, generating: bool) -> str:
    text = (final.text or "").strip() or (first.text or "").strip()
    if text:
        return text
    return GENERATING_REPLY if generating else EMPTY_REPLY

"""Context window tracking and history windowing."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import tiktoken

SUMMARY_CHARS = 500
# Gemini ships no local tokenizer; cl100k_base is close enough for windowing.
DEFAULT_ENCODING = "cl100k_base"


@dataclass
class ContextUsage:
    used_tokens: int
    max_tokens: int
    pct: float
    alert_level: str


@dataclass(frozen=True)
class HistoryWindow:
    lines: tuple[str, ...]
    summary: str | None
    dropped: int
    tokens: int

    def render(self) -> str:
        parts = []
        if self.summary:
            parts.append(f"(Earlier conversation, summarized: {self.summary})")
        parts.extend(self.lines)
        return "\n".join(parts)


def estimate_tokens(text: str, model: str | None = None) -> int:
    if model:
        try:
            enc = tiktoken.encoding_for_model(model)
        except KeyError:
            enc = tiktoken.get_encoding(DEFAULT_ENCODING)
    else:
        enc = tiktoken.get_encoding(DEFAULT_ENCODING)
    return max(1, len(enc.encode(text)))


class ContextTracker:
    def __init__(self, max_tokens: int = 8192, model: str | None = None) -> None:
        self.max_tokens = max_tokens
        self.model = model
        self.used_tokens = 0

    def record_call(self, text_in: str, text_out: str) -> ContextUsage:
        self.used_tokens += estimate_tokens(text_in, self.model) + estimate_tokens(text_out, self.model)
        pct = min(self.used_tokens / max(self.max_tokens, 1), 1.0)
        alert = "none"
        if pct >= 0.95:
            alert = "95"
        elif pct >= 0.85:
            alert = "85"
        elif pct >= 0.70:
            alert = "70"
        return ContextUsage(used_tokens=self.used_tokens, max_tokens=self.max_tokens, pct=pct, alert_level=alert)

    def window(self, lines: Sequence[str], budget: int | None = None) -> HistoryWindow:
        """Keep the most recent lines that fit the budget; collapse the rest."""
        limit = self.max_tokens if budget is None else budget
        kept: list[str] = []
        total = 0
        for line in reversed(list(lines)):
            cost = estimate_tokens(line, self.model)
            if kept and total + cost > limit:
                break
            kept.append(line)
            total += cost
        kept.reverse()
        older = list(lines)[: len(lines) - len(kept)]
        summary = _clip(" ".join(older)) if older else None
        return HistoryWindow(lines=tuple(kept), summary=summary, dropped=len(older), tokens=total)


def _clip(text: str) -> str:
    return text[:SUMMARY_CHARS] + ("..." if len(text) > SUMMARY_CHARS else "")

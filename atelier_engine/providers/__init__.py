"""Capability provider selection."""

from __future__ import annotations

import os

from .base import CapabilityProvider
from .dryrun import DryRunProvider
from .gemini import GeminiProvider

PROVIDERS = ("gemini", "dryrun")


def default_provider(name: str | None = None) -> CapabilityProvider:
    selected = (name or os.getenv("ATELIER_PROVIDER") or "gemini").strip().lower()
    if selected == "dryrun":
        return DryRunProvider()
    if selected == "gemini":
        return GeminiProvider()
    raise RuntimeError(f"Unknown provider '{selected}'. Expected one of: {', '.join(PROVIDERS)}.")

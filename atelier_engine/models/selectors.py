"""Per-capability model selection with environment overrides."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .registry import CAPABILITIES, ModelRegistry, ModelSpec


def env_var_for(capability: str) -> str:
    return f"ATELIER_{capability.upper()}_MODEL"


@dataclass(frozen=True)
class ModelSelection:
    model: ModelSpec
    requested: str | None
    fallback_reason: str | None = None


class ModelSelector:
    """Pick a model for a capability, restricted to one provider when given.

    A requested model that is unknown, lacks the capability or belongs to
    another provider falls back to the first registered candidate.
    """

    def __init__(self, registry: ModelRegistry | None = None, provider: str | None = None) -> None:
        self.registry = registry or ModelRegistry()
        self.provider = provider

    def _allowed(self, model: ModelSpec | None) -> bool:
        return model is not None and (self.provider is None or model.provider == self.provider)

    def select(self, requested: str | None, capability: str) -> ModelSelection:
        if requested:
            model = self.registry.ensure(requested, capability)
            if self._allowed(model):
                return ModelSelection(model=model, requested=requested)
            fallback_reason = f"Requested model '{requested}' unavailable for capability '{capability}'."
        else:
            fallback_reason = "No model specified; using default."

        candidates = self.registry.by_capability(capability, self.provider)
        if not candidates:
            raise RuntimeError(f"No models available for capability '{capability}'.")
        return ModelSelection(model=candidates[0], requested=requested, fallback_reason=fallback_reason)

    def select_from_env(self, capability: str) -> ModelSelection:
        if capability not in CAPABILITIES:
            raise ValueError(f"Unknown capability '{capability}'.")
        requested = (os.getenv(env_var_for(capability)) or "").strip()
        return self.select(requested or None, capability)

"""Model registry for Atelier."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping


@dataclass(frozen=True)
class ModelSpec:
    name: str
    provider: str
    capabilities: tuple[str, ...]
    context_window: int | None = None

    def supports(self, capability: str) -> bool:
        return capability in self.capabilities


# Capability names map one-to-one onto the provider calls that consume them.
CAPABILITIES = ("orchestration", "reasoning", "image", "edit", "video", "search")

_DEFAULT_MODELS: dict[str, ModelSpec] = {
    "gemini-3-flash-preview": ModelSpec(
        name="gemini-3-flash-preview",
        provider="gemini",
        capabilities=("orchestration", "search", "vision"),
        context_window=1_048_576,
    ),
    "gemini-3-pro-preview": ModelSpec(
        name="gemini-3-pro-preview",
        provider="gemini",
        capabilities=("reasoning", "orchestration", "search", "vision"),
        context_window=1_048_576,
    ),
    "gemini-3-pro-image-preview": ModelSpec(
        name="gemini-3-pro-image-preview",
        provider="gemini",
        capabilities=("image",),
    ),
    "gemini-2.5-flash-image": ModelSpec(
        name="gemini-2.5-flash-image",
        provider="gemini",
        capabilities=("edit", "image"),
    ),
    "veo-3.1-fast-generate-preview": ModelSpec(
        name="veo-3.1-fast-generate-preview",
        provider="gemini",
        capabilities=("video",),
    ),
    "veo-3.1-generate-preview": ModelSpec(
        name="veo-3.1-generate-preview",
        provider="gemini",
        capabilities=("video",),
    ),
    "dryrun-text-1": ModelSpec(
        name="dryrun-text-1",
        provider="dryrun",
        capabilities=("orchestration", "reasoning", "search"),
        context_window=8192,
    ),
    "dryrun-image-1": ModelSpec(
        name="dryrun-image-1",
        provider="dryrun",
        capabilities=("image", "edit", "video"),
    ),
}


class ModelRegistry:
    def __init__(self, models: Mapping[str, ModelSpec] | None = None) -> None:
        self._models = dict(models) if models else dict(_DEFAULT_MODELS)

    def get(self, name: str) -> ModelSpec | None:
        return self._models.get(name)

    def list(self) -> Iterable[ModelSpec]:
        return self._models.values()

    def by_capability(self, capability: str, provider: str | None = None) -> list[ModelSpec]:
        return [
            model
            for model in self._models.values()
            if model.supports(capability) and (provider is None or model.provider == provider)
        ]

    def ensure(self, name: str, capability: str) -> ModelSpec | None:
        model = self.get(name)
        if model and model.supports(capability):
            return model
        return None

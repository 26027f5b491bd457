from __future__ import annotations

import pytest

from atelier_engine.models.registry import ModelRegistry, ModelSpec
from atelier_engine.models.selectors import ModelSelector


def _video_model(name: str, provider: str = "gemini") -> ModelSpec:
    return ModelSpec(name=name, provider=provider, capabilities=("video",))


def test_model_selector_falls_back_when_requested_model_unavailable() -> None:
    registry = ModelRegistry({"veo-fallback": _video_model("veo-fallback")})
    selection = ModelSelector(registry).select("missing", "video")

    assert selection.model.name == "veo-fallback"
    assert selection.requested == "missing"
    assert selection.fallback_reason == "Requested model 'missing' unavailable for capability 'video'."


def test_model_selector_no_request_uses_default_with_explanation() -> None:
    registry = ModelRegistry({"veo-default": _video_model("veo-default")})
    selection = ModelSelector(registry).select(None, "video")

    assert selection.model.name == "veo-default"
    assert selection.fallback_reason == "No model specified; using default."


def test_model_selector_raises_when_no_models_for_capability() -> None:
    registry = ModelRegistry({"text-only": ModelSpec(name="text-only", provider="gemini", capabilities=("search",))})
    selector = ModelSelector(registry)
    with pytest.raises(RuntimeError, match="No models available for capability 'video'."):
        selector.select("veo-3.1-generate-preview", "video")


def test_model_selector_ignores_other_providers_models() -> None:
    registry = ModelRegistry(
        {
            "dry-video": _video_model("dry-video", provider="dryrun"),
            "veo-real": _video_model("veo-real"),
        }
    )
    selection = ModelSelector(registry, provider="gemini").select("dry-video", "video")

    assert selection.model.name == "veo-real"
    assert selection.fallback_reason is not None


def test_select_from_env_override(monkeypatch) -> None:
    monkeypatch.setenv("ATELIER_EDIT_MODEL", "gemini-2.5-flash-image")
    selection = ModelSelector(provider="gemini").select_from_env("edit")

    assert selection.model.name == "gemini-2.5-flash-image"
    assert selection.fallback_reason is None

    monkeypatch.delenv("ATELIER_EDIT_MODEL")
    monkeypatch.delenv("ATELIER_ORCHESTRATION_MODEL", raising=False)
    assert ModelSelector(provider="gemini").select_from_env("orchestration").model.name == "gemini-3-flash-preview"
    with pytest.raises(ValueError, match="Unknown capability"):
        ModelSelector().select_from_env("vision")

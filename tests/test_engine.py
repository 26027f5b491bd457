from __future__ import annotations

import json
from pathlib import Path

import pytest
from _fakes import ScriptedProvider, concepts_call

from atelier_engine.engine import StudioEngine
from atelier_engine.providers.base import Completion
from atelier_engine.runway.producer import ProductionError
from atelier_engine.studio.state import MessageRole, RunwayKind
from atelier_engine.studio.status import AgentStatus


def _engine(tmp_path: Path, provider: ScriptedProvider) -> StudioEngine:
    return StudioEngine(tmp_path / "run", provider=provider, max_workers=4, poll_interval=0)


def test_send_message_generates_a_concept_pair(tmp_path: Path) -> None:
    provider = ScriptedProvider([Completion(text="Two directions coming up.", tool_calls=[concepts_call()])])
    engine = _engine(tmp_path, provider)
    seen_statuses: list[AgentStatus] = []
    engine.subscribe(lambda state: seen_statuses.append(state.status))

    reply = engine.send_message("design an evening look")
    engine.wait_for_background()

    state = engine.snapshot()
    assert reply is not None and len(reply.invocations) == 1
    assert [concept.name for concept in state.concepts] == ["Night Bloom", "Iron Lace"]
    for concept in state.concepts:
        assert concept.primary is not None
        assert concept.images.artistic is not None
        assert concept.images.artistic.source_revision == concept.primary_revision
        assert concept.images.technical is None
        assert concept.pending == frozenset()
    assert state.active_concept_id is None
    assert state.status is AgentStatus.IDLE
    assert AgentStatus.THINKING in seen_statuses
    assert AgentStatus.GENERATING in seen_statuses
    roles = [message.role for message in state.chat_history]
    assert roles[:3] == [MessageRole.SYSTEM, MessageRole.USER, MessageRole.AGENT]
    engine.close()


def test_artistic_derivative_is_rendered_from_primary_content(tmp_path: Path) -> None:
    provider = ScriptedProvider([Completion(text="", tool_calls=[concepts_call()])])
    engine = _engine(tmp_path, provider)

    engine.send_message("go")

    derivative_calls = [call for call in provider.image_calls if not isinstance(call[0], str)]
    primaries = {concept.primary.media for concept in engine.snapshot().concepts}
    assert len(derivative_calls) == 2
    assert {call[0] for call in derivative_calls} == primaries
    engine.close()


def test_second_generation_replaces_concepts_and_clears_selection(tmp_path: Path) -> None:
    provider = ScriptedProvider(
        [
            Completion(text="", tool_calls=[concepts_call()]),
            Completion(text="", tool_calls=[concepts_call(concept1_name="Tide", concept2_name="Ash")]),
        ]
    )
    engine = _engine(tmp_path, provider)
    engine.send_message("first")
    engine.select_concept(engine.snapshot().concepts[0].id)

    engine.send_message("again")

    state = engine.snapshot()
    assert [concept.name for concept in state.concepts] == ["Tide", "Ash"]
    assert state.active_concept_id is None
    engine.close()


def test_one_failed_branch_does_not_block_its_sibling(tmp_path: Path) -> None:
    provider = ScriptedProvider([Completion(text="", tool_calls=[concepts_call()])])
    provider.fail_image_when = lambda parts: any("velvet" in part for part in parts if isinstance(part, str))
    engine = _engine(tmp_path, provider)

    engine.send_message("go")

    failed, ok = engine.snapshot().concepts
    assert failed.primary is None
    assert failed.images.artistic is None
    assert failed.pending == frozenset()
    assert ok.primary is not None and ok.images.artistic is not None
    assert engine.status is AgentStatus.IDLE
    assert any("Could not render: Night Bloom" in message.text for message in engine.snapshot().chat_history)
    engine.close()


def test_status_gate_rejects_messages_and_edits_while_busy(tmp_path: Path) -> None:
    provider = ScriptedProvider([Completion(text="", tool_calls=[concepts_call()])])
    engine = _engine(tmp_path, provider)
    engine.send_message("go")
    concept = engine.snapshot().concepts[0]
    requests_before = len(provider.requests)
    before = engine.snapshot()

    assert engine.gate.try_acquire(AgentStatus.PRODUCING)
    assert engine.send_message("another idea") is None
    assert engine.apply_edit(concept.id, concept.primary.id, None, "make it red") is None
    # Requests that would be rejected on an idle studio still leave no trace while busy.
    assert engine.apply_edit(concept.id, concept.images.artistic.id, None, "make it red") is None
    assert engine.apply_edit(concept.id, concept.primary.id, None, "   ") is None

    assert len(provider.requests) == requests_before
    assert provider.edit_calls == []
    assert engine.snapshot().chat_history == before.chat_history
    assert engine.snapshot().concepts == before.concepts
    engine.gate.release()
    engine.close()


def test_blank_message_is_ignored(tmp_path: Path) -> None:
    provider = ScriptedProvider()
    engine = _engine(tmp_path, provider)

    assert engine.send_message("   ") is None
    assert provider.requests == []
    engine.close()


def test_upload_and_disclosure_toggle(tmp_path: Path) -> None:
    engine = _engine(tmp_path, ScriptedProvider())
    image = tmp_path / "ref.png"
    image.write_bytes(b"png")

    asset = engine.upload_file(image)
    assert asset.display_name == "ref.png"
    assert engine.toggle_asset_disclosure(asset.id) is True
    assert engine.snapshot().selected_asset_ids == frozenset({asset.id})
    assert engine.toggle_asset_disclosure(asset.id) is False
    assert engine.snapshot().selected_asset_ids == frozenset()
    with pytest.raises(ValueError):
        engine.upload_asset(b"\x00", "application/zip", "archive.zip")
    with pytest.raises(ValueError):
        engine.toggle_asset_disclosure("asset-missing")
    engine.close()


def test_missing_credentials_degrade_to_labeled_placeholders(tmp_path: Path) -> None:
    provider = ScriptedProvider(ready=(False, "Missing GEMINI_API_KEY (or GOOGLE_API_KEY)."))
    engine = _engine(tmp_path, provider)

    reply = engine.send_message("design a coat")
    assert reply is not None and "Missing GEMINI_API_KEY" in reply.text
    assert len(reply.invocations) == 1
    assert provider.requests == []

    state = engine.snapshot()
    assert len(state.concepts) == 2
    concept = state.concepts[0]
    assert concept.primary is not None
    assert concept.primary.media.mime_type == "image/png"
    assert provider.image_calls == []
    assert any("placeholder images" in message.text for message in state.chat_history)

    outcome = engine.apply_edit(concept.id, concept.primary.id, None, "add a hood")
    assert outcome is not None and outcome.applied is False
    assert provider.edit_calls == []

    assert engine.finalize_concept(concept.id) is None
    assert provider.structured_calls == []

    asset = engine.produce(concept.id, "paris", "video")
    assert asset.kind is RunwayKind.PHOTO
    assert asset.scenario_label == "Paris Fashion Week (placeholder)"
    assert asset.media.mime_type == "image/png"
    assert provider.video_prompts == []
    assert engine.snapshot().gallery == (asset,)
    assert engine.status is AgentStatus.IDLE
    engine.close()


def test_produce_rejects_unknown_concept_and_busy_studio(tmp_path: Path) -> None:
    provider = ScriptedProvider([Completion(text="", tool_calls=[concepts_call()])])
    engine = _engine(tmp_path, provider)
    engine.send_message("go")
    concept = engine.snapshot().concepts[0]

    with pytest.raises(ProductionError, match="Unknown concept"):
        engine.produce("concept-missing", "paris")
    assert engine.gate.try_acquire(AgentStatus.EDITING)
    with pytest.raises(ProductionError, match="busy"):
        engine.produce(concept.id, "paris")
    assert engine.status is AgentStatus.EDITING
    engine.gate.release()
    assert engine.snapshot().gallery == ()
    engine.close()


def test_events_are_written_to_run_directory(tmp_path: Path) -> None:
    provider = ScriptedProvider([Completion(text="", tool_calls=[concepts_call()])])
    engine = _engine(tmp_path, provider)
    engine.send_message("go")
    engine.close()

    lines = (tmp_path / "run" / "events.jsonl").read_text(encoding="utf-8").splitlines()
    types = [json.loads(line)["type"] for line in lines]
    assert types[0] == "session_started"
    assert "concepts_allocated" in types
    assert "primary_committed" in types
    assert "status_changed" in types
    assert types[-1] == "session_closed"
    assert all("image_bytes" not in line for line in lines)


def test_export_writes_concepts_and_gallery(tmp_path: Path) -> None:
    provider = ScriptedProvider([Completion(text="", tool_calls=[concepts_call()])])
    engine = _engine(tmp_path, provider)
    engine.send_message("go")
    concept = engine.snapshot().concepts[0]
    engine.produce(concept.id, "studio", "photo")

    index = engine.export(tmp_path / "export")

    manifest = json.loads((tmp_path / "export" / "studio.json").read_text(encoding="utf-8"))
    assert index.exists()
    assert len(manifest["concepts"]) == 2
    assert manifest["concepts"][0]["images"]["primary"].endswith("primary.png")
    assert manifest["gallery"][0]["scenario"] == "Minimalist Studio"
    assert (tmp_path / "export" / manifest["gallery"][0]["path"]).exists()
    engine.close()

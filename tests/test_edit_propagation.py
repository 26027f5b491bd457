from __future__ import annotations

from io import BytesIO
from pathlib import Path

from PIL import Image
from _fakes import ScriptedProvider, concepts_call, derived_from

from atelier_engine.engine import StudioEngine
from atelier_engine.media import MediaBlob
from atelier_engine.providers.base import Completion
from atelier_engine.studio.state import ImageRole
from atelier_engine.studio.status import AgentStatus


def _engine_with_concepts(tmp_path: Path) -> tuple[StudioEngine, ScriptedProvider]:
    provider = ScriptedProvider([Completion(text="", tool_calls=[concepts_call()])])
    engine = StudioEngine(tmp_path / "run", provider=provider, max_workers=6, poll_interval=0)
    engine.send_message("design two looks")
    return engine, provider


def _mask(size: tuple[int, int]) -> MediaBlob:
    overlay = Image.new("RGBA", size, (0, 0, 0, 0))
    for x in range(4, 12):
        overlay.putpixel((x, 8), (255, 0, 0, 128))
    buf = BytesIO()
    overlay.save(buf, format="PNG")
    return MediaBlob(data=buf.getvalue(), mime_type="image/png")


def test_lace_sleeve_edit_marks_derivatives_pending_then_refreshes(tmp_path: Path) -> None:
    engine, provider = _engine_with_concepts(tmp_path)
    concept = engine.snapshot().concepts[0]
    primary_id = concept.primary.id
    provider.hold_edits = {1}

    outcome = engine.apply_edit(concept.id, primary_id, _mask((24, 32)), "change sleeves to lace")

    assert outcome is not None and outcome.applied is True
    assert engine.status is AgentStatus.IDLE
    interim = engine.snapshot().concept(concept.id)
    assert interim.primary.id == primary_id
    assert interim.primary_revision == 2
    assert interim.pending == frozenset({ImageRole.ARTISTIC, ImageRole.TECHNICAL})
    assert interim.images.artistic is not None and interim.images.artistic.stale is True

    provider.release.set()
    assert engine.wait_for_background(timeout=5)

    final = engine.snapshot().concept(concept.id)
    assert final.pending == frozenset()
    for role in (ImageRole.ARTISTIC, ImageRole.TECHNICAL):
        image = final.images.get(role)
        assert image is not None
        assert image.stale is False
        assert image.source_revision == 2
        assert image.media.data == derived_from(final.primary.media)
    edited_source, instruction = provider.edit_calls[0]
    assert "change sleeves to lace" in instruction
    assert "Remove all mask markings" in instruction
    assert edited_source != concept.primary.media
    engine.close()


def test_double_edit_leaves_derivatives_matching_final_primary(tmp_path: Path) -> None:
    engine, provider = _engine_with_concepts(tmp_path)
    concept = engine.snapshot().concepts[1]
    provider.hold_edits = {1}

    first = engine.apply_edit(concept.id, concept.primary.id, None, "shorten the hem")
    second = engine.apply_edit(concept.id, concept.primary.id, None, "add a cape")
    assert first is not None and first.applied
    assert second is not None and second.applied
    assert second.revision == 3

    provider.release.set()
    assert engine.wait_for_background(timeout=5)

    final = engine.snapshot().concept(concept.id)
    assert final.primary_revision == 3
    for role in (ImageRole.ARTISTIC, ImageRole.TECHNICAL):
        image = final.images.get(role)
        assert image.source_revision == 3
        assert image.media.data == derived_from(final.primary.media)
    engine.close()


def test_edit_targeting_a_derivative_is_redirected(tmp_path: Path) -> None:
    engine, provider = _engine_with_concepts(tmp_path)
    concept = engine.snapshot().concepts[0]

    outcome = engine.apply_edit(concept.id, concept.images.artistic.id, None, "add pockets")

    assert outcome is not None and outcome.applied is False
    assert "primary" in outcome.message
    assert provider.edit_calls == []
    assert engine.snapshot().concept(concept.id) == concept
    engine.close()


def test_empty_instruction_is_rejected(tmp_path: Path) -> None:
    engine, provider = _engine_with_concepts(tmp_path)
    concept = engine.snapshot().concepts[0]

    outcome = engine.apply_edit(concept.id, concept.primary.id, None, "   ")

    assert outcome is not None and outcome.applied is False
    assert provider.edit_calls == []
    engine.close()


def test_failed_edit_leaves_primary_untouched(tmp_path: Path) -> None:
    engine, provider = _engine_with_concepts(tmp_path)
    concept = engine.snapshot().concepts[0]
    provider.fail_edit = True

    outcome = engine.apply_edit(concept.id, concept.primary.id, None, "make it red")

    assert outcome is not None and outcome.applied is False
    assert engine.snapshot().concept(concept.id) == concept
    assert engine.status is AgentStatus.IDLE
    assert engine.events.recent("edit_failed")
    engine.close()


def test_failed_regeneration_clears_the_slot(tmp_path: Path) -> None:
    engine, provider = _engine_with_concepts(tmp_path)
    concept = engine.snapshot().concepts[0]
    provider.fail_image_when = lambda parts: any("technical flat" in part for part in parts if isinstance(part, str))

    engine.apply_edit(concept.id, concept.primary.id, None, "swap buttons for toggles")
    engine.wait_for_background(timeout=5)

    final = engine.snapshot().concept(concept.id)
    assert final.images.technical is None
    assert final.images.artistic is not None and final.images.artistic.source_revision == 2
    assert final.pending == frozenset()
    engine.close()

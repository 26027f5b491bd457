from __future__ import annotations

import pytest

from atelier_engine.chat.tools import GENERATE_CONCEPTS_TOOL, ConceptRequest
from atelier_engine.media import placeholder_image
from atelier_engine.providers import default_provider
from atelier_engine.providers.base import CompletionRequest, VideoConfig
from atelier_engine.providers.dryrun import DryRunProvider
from atelier_engine.providers.gemini import GeminiProvider
from atelier_engine.techpack.schema import assemble_tech_pack, main_fabric


def test_dryrun_completion_emits_concepts_when_asked_to_design() -> None:
    provider = DryRunProvider()
    request = CompletionRequest(system="", parts=["please design a raincoat"], tools=(GENERATE_CONCEPTS_TOOL,))

    completion = provider.complete(request)

    assert completion.tool_calls[0].name == "generate_concepts"
    concept = ConceptRequest.from_args(completion.tool_calls[0].args)
    assert "raincoat" in concept.first.description


def test_dryrun_completion_without_tools_is_plain_text() -> None:
    completion = DryRunProvider().complete(CompletionRequest(system="", parts=["hello there"]))

    assert completion.tool_calls == ()
    assert "hello there" in completion.text


def test_dryrun_images_are_real_pngs() -> None:
    provider = DryRunProvider(label="placeholder")

    primary = provider.generate_image(["velvet gown"])
    derived = provider.generate_image([primary, "illustrate"])
    edited = provider.edit_image(primary, "add lace")

    assert primary.mime_type == "image/png"
    assert derived.mime_type == "image/png"
    assert derived.data != primary.data
    assert edited.data != primary.data


def test_dryrun_video_job_counts_down() -> None:
    provider = DryRunProvider(video_polls=2)
    job = provider.start_video_job(placeholder_image("x", size=(8, 8)), "walk", VideoConfig())

    statuses = [provider.poll_job(job) for _ in range(3)]

    assert [status.done for status in statuses] == [False, False, True]
    assert provider.fetch_result(statuses[-1].result_ref).mime_type == "video/mp4"


def test_dryrun_tech_pack_has_main_fabric() -> None:
    pack = assemble_tech_pack(DryRunProvider().complete_structured("", [], {}))

    assert main_fabric(pack.bom) is not None
    assert DryRunProvider().grounded_search("anything") == []


def test_default_provider_selection(monkeypatch) -> None:
    monkeypatch.setenv("ATELIER_PROVIDER", "dryrun")
    assert isinstance(default_provider(), DryRunProvider)
    assert isinstance(default_provider("gemini"), GeminiProvider)
    monkeypatch.setenv("ATELIER_PROVIDER", "nope")
    with pytest.raises(RuntimeError, match="Unknown provider 'nope'"):
        default_provider()

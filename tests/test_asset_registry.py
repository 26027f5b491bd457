from __future__ import annotations

import pytest

from atelier_engine.studio.registry import AssetRegistry, kind_for_mime
from atelier_engine.studio.state import AssetKind


def test_kind_for_mime() -> None:
    assert kind_for_mime("image/png") is AssetKind.IMAGE
    assert kind_for_mime("video/mp4") is AssetKind.VIDEO
    assert kind_for_mime("audio/mpeg") is AssetKind.AUDIO
    assert kind_for_mime("text/markdown") is AssetKind.TEXT
    assert kind_for_mime("application/json") is AssetKind.TEXT
    with pytest.raises(ValueError):
        kind_for_mime("application/pdf")


def test_create_returns_new_registry_and_leaves_original() -> None:
    empty = AssetRegistry()

    registry, asset = empty.create(b"png", "image/png", "ref.png")

    assert len(empty) == 0
    assert len(registry) == 1
    assert registry.get(asset.id) is asset
    assert asset.kind is AssetKind.IMAGE
    assert asset.as_blob().data == b"png"


def test_text_payloads_are_stored_as_utf8() -> None:
    registry, asset = AssetRegistry().create("drapey, asymmetric", "text/plain", "brief")

    assert asset.payload == b"drapey, asymmetric"
    assert asset.text == "drapey, asymmetric"


def test_manifest_carries_metadata_only() -> None:
    registry, image = AssetRegistry().create(b"png", "image/png", "ref.png")
    registry, clip = registry.create(b"mp4", "video/mp4", "walk.mp4")

    manifest = registry.manifest()

    assert [(entry.id, entry.name, entry.kind) for entry in manifest] == [
        (image.id, "ref.png", AssetKind.IMAGE),
        (clip.id, "walk.mp4", AssetKind.VIDEO),
    ]
    assert not hasattr(manifest[0], "payload")


def test_resolve_by_id_or_name_and_dedupes() -> None:
    registry, image = AssetRegistry().create(b"png", "image/png", "Ref.PNG")
    registry, clip = registry.create(b"mp4", "video/mp4", "walk.mp4")

    resolved = registry.resolve(["ref.png", image.id, "missing", "", clip.id])

    assert resolved == [image, clip]

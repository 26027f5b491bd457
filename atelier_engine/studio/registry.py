"""Inspiration asset registry."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator

from ..utils import new_id
from .state import AssetKind, InspirationAsset

_TEXT_MIME_TYPES = {"application/json", "application/xml", "application/x-yaml"}


def kind_for_mime(mime_type: str) -> AssetKind:
    lowered = (mime_type or "").strip().lower()
    major = lowered.split("/", 1)[0]
    if major == "image":
        return AssetKind.IMAGE
    if major == "video":
        return AssetKind.VIDEO
    if major == "audio":
        return AssetKind.AUDIO
    if major == "text" or lowered in _TEXT_MIME_TYPES:
        return AssetKind.TEXT
    raise ValueError(f"Unsupported inspiration mime type: {mime_type!r}")


@dataclass(frozen=True)
class ManifestEntry:
    id: str
    name: str
    kind: AssetKind


class AssetRegistry:
    """Immutable, ordered collection of uploaded assets.

    ``add`` returns a new registry; the studio swaps it into state as a whole.
    """

    def __init__(self, assets: Iterable[InspirationAsset] = ()) -> None:
        self._assets: dict[str, InspirationAsset] = {asset.id: asset for asset in assets}

    def __len__(self) -> int:
        return len(self._assets)

    def __iter__(self) -> Iterator[InspirationAsset]:
        return iter(self._assets.values())

    def __contains__(self, asset_id: object) -> bool:
        return asset_id in self._assets

    def get(self, asset_id: str) -> InspirationAsset | None:
        return self._assets.get(asset_id)

    def add(self, asset: InspirationAsset) -> "AssetRegistry":
        if asset.id in self._assets:
            raise ValueError(f"Asset id already registered: {asset.id}")
        return AssetRegistry([*self._assets.values(), asset])

    def create(self, payload: bytes | str, mime_type: str, name: str) -> tuple["AssetRegistry", InspirationAsset]:
        kind = kind_for_mime(mime_type)
        data = payload.encode("utf-8") if isinstance(payload, str) else bytes(payload)
        asset = InspirationAsset(
            id=new_id("asset"),
            kind=kind,
            mime_type=mime_type,
            payload=data,
            display_name=name.strip() or "untitled",
        )
        return self.add(asset), asset

    def manifest(self) -> list[ManifestEntry]:
        return [ManifestEntry(id=asset.id, name=asset.display_name, kind=asset.kind) for asset in self]

    def resolve(self, references: Iterable[str]) -> list[InspirationAsset]:
        """Map ids (or display names, case-insensitive) to assets, dropping unknowns."""
        by_name = {asset.display_name.lower(): asset for asset in self}
        resolved: list[InspirationAsset] = []
        seen: set[str] = set()
        for reference in references:
            key = str(reference or "").strip()
            if not key:
                continue
            asset = self._assets.get(key) or by_name.get(key.lower())
            if asset is None or asset.id in seen:
                continue
            seen.add(asset.id)
            resolved.append(asset)
        return resolved

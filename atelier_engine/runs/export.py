"""Export the studio's concepts and gallery to a directory."""

from __future__ import annotations

import html
from pathlib import Path
from typing import Any

from ..media import extension_for
from ..studio.state import StudioState
from ..utils import serialize, write_json


def export_studio(state: StudioState, out_dir: Path) -> Path:
    """Write concept images, tech packs and gallery media; returns the HTML index path."""
    out_dir.mkdir(parents=True, exist_ok=True)
    manifest: dict[str, Any] = {"concepts": [], "gallery": []}
    cards: list[str] = []

    for concept in state.concepts:
        concept_dir = out_dir / concept.id
        images: dict[str, str] = {}
        for image in concept.images.all():
            path = concept_dir / f"{image.role.value}{extension_for(image.media.mime_type)}"
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(image.media.data)
            images[image.role.value] = str(path.relative_to(out_dir))
        tech_pack_path = None
        if concept.tech_pack is not None:
            tech_pack_file = concept_dir / "tech_pack.json"
            write_json(tech_pack_file, serialize(concept.tech_pack))
            tech_pack_path = str(tech_pack_file.relative_to(out_dir))
        manifest["concepts"].append(
            {
                "id": concept.id,
                "name": concept.name,
                "description": concept.description,
                "finalized": concept.finalized,
                "images": images,
                "tech_pack": tech_pack_path,
                "tech_pack_stale": concept.tech_pack_stale,
            }
        )
        thumb = images.get("primary", "")
        cards.append(
            f"<div class='card'>"
            f"<div class='thumb'><img src='{html.escape(thumb)}' alt='primary'></div>"
            f"<div class='meta'><div class='name'>{html.escape(concept.name)}</div>"
            f"<div class='desc'>{html.escape(concept.description)}</div></div>"
            f"</div>"
        )

    gallery_dir = out_dir / "gallery"
    for asset in state.gallery:
        path = gallery_dir / f"{asset.id}{extension_for(asset.media.mime_type)}"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(asset.media.data)
        manifest["gallery"].append(
            {
                "id": asset.id,
                "kind": asset.kind.value,
                "source_concept_id": asset.source_concept_id,
                "scenario": asset.scenario_label,
                "created_at": asset.created_at,
                "path": str(path.relative_to(out_dir)),
            }
        )

    write_json(out_dir / "studio.json", manifest)
    html_doc = f"""<!doctype html>
<html>
<head>
  <meta charset='utf-8'>
  <title>Atelier Export</title>
  <style>
    body {{ font-family: Arial, sans-serif; background: #f6f6f6; margin: 0; padding: 20px; }}
    .grid {{ display: grid; grid-template-columns: repeat(auto-fill, minmax(240px, 1fr)); gap: 16px; }}
    .card {{ background: white; border-radius: 10px; overflow: hidden; box-shadow: 0 2px 8px rgba(0,0,0,0.08); }}
    .thumb {{ width: 100%; height: 320px; background: #eee; display: flex; align-items: center; justify-content: center; }}
    .thumb img {{ max-width: 100%; max-height: 100%; }}
    .meta {{ padding: 10px; }}
    .name {{ font-weight: bold; font-size: 14px; color: #222; }}
    .desc {{ font-size: 13px; margin: 8px 0; color: #555; }}
  </style>
</head>
<body>
  <h1>Atelier Concepts</h1>
  <div class='grid'>
    {''.join(cards)}
  </div>
</body>
</html>
"""
    index_path = out_dir / "index.html"
    index_path.write_text(html_doc, encoding="utf-8")
    return index_path

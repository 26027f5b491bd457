"""Media payloads, mask compositing and offline placeholders."""

from __future__ import annotations

import base64
import hashlib
import mimetypes
import textwrap
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path

from PIL import Image, ImageDraw, ImageFont


@dataclass(frozen=True)
class MediaBlob:
    """Self-describing binary payload (bytes plus mime type)."""

    data: bytes
    mime_type: str

    @property
    def kind(self) -> str:
        return self.mime_type.split("/", 1)[0].lower()

    def to_data_url(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"

    def __repr__(self) -> str:
        return f"MediaBlob(mime_type={self.mime_type!r}, bytes={len(self.data)})"


PLACEHOLDER_SIZE = (768, 1024)

_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/webp": ".webp",
    "video/mp4": ".mp4",
    "audio/mpeg": ".mp3",
    "audio/wav": ".wav",
    "text/plain": ".txt",
}


def guess_mime(path: Path) -> str:
    suffix = path.suffix.lower()
    if suffix in {".jpg", ".jpeg"}:
        return "image/jpeg"
    if suffix == ".webp":
        return "image/webp"
    if suffix == ".png":
        return "image/png"
    guessed, _ = mimetypes.guess_type(path.name)
    return guessed or "application/octet-stream"


def extension_for(mime_type: str) -> str:
    if mime_type in _EXTENSIONS:
        return _EXTENSIONS[mime_type]
    guessed = mimetypes.guess_extension(mime_type)
    return guessed or ".bin"


def _encode_png(image: Image.Image) -> MediaBlob:
    buf = BytesIO()
    image.save(buf, format="PNG")
    return MediaBlob(data=buf.getvalue(), mime_type="image/png")


def composite_mask(base: MediaBlob, overlay: MediaBlob) -> MediaBlob:
    """Flatten semi-transparent mask strokes onto the base image.

    The overlay is stretched to the base size when the painting surface was a
    different resolution than the source image.
    """
    with Image.open(BytesIO(base.data)) as base_image:
        rgba = base_image.convert("RGBA")
    with Image.open(BytesIO(overlay.data)) as overlay_image:
        strokes = overlay_image.convert("RGBA")
    if strokes.size != rgba.size:
        strokes = strokes.resize(rgba.size)
    rgba.alpha_composite(strokes)
    return _encode_png(rgba)


def placeholder_image(label: str, detail: str = "", size: tuple[int, int] = PLACEHOLDER_SIZE) -> MediaBlob:
    """Render a labeled stand-in image for offline or credential-less runs."""
    width, height = size
    image = Image.new("RGB", (width, height), _color_from_text(f"{label}:{detail}"))
    draw = ImageDraw.Draw(image)
    font = ImageFont.load_default()
    lines = [label.upper()]
    if detail:
        lines.extend(textwrap.wrap(detail, width=48)[:8])
    draw.multiline_text((24, 24), "\n".join(lines), fill=(255, 255, 255), font=font, spacing=6)
    return _encode_png(image)


def annotate_image(source: MediaBlob, caption: str) -> MediaBlob:
    with Image.open(BytesIO(source.data)) as opened:
        image = opened.convert("RGB")
    draw = ImageDraw.Draw(image)
    font = ImageFont.load_default()
    draw.rectangle((0, image.height - 40, image.width, image.height), fill=(0, 0, 0))
    draw.text((12, image.height - 30), caption[:90], fill=(255, 255, 255), font=font)
    return _encode_png(image)


def _color_from_text(text: str) -> tuple[int, int, int]:
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    # Keep placeholders dark enough for white text.
    return digest[0] // 2, digest[1] // 2, digest[2] // 2

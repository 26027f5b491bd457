"""Shared helpers: ids, clocks, JSON-safe payloads, env and dotenv."""

from __future__ import annotations

import json
import os
import time
import uuid
from dataclasses import fields, is_dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Mapping, TypeVar

_T = TypeVar("_T")

# Event payload keys that may carry media; never written to the event log.
MEDIA_KEYS = frozenset({"image", "image_bytes", "media", "mask", "data", "payload", "url"})


def now_utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def now_ms() -> int:
    return int(time.time() * 1000)


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def _is_media(value: Any) -> bool:
    return isinstance(getattr(value, "data", None), bytes) and isinstance(getattr(value, "mime_type", None), str)


def serialize(value: Any) -> Any:
    """Convert records into JSON-ready values; binary media collapses to a size marker."""
    if isinstance(value, Enum):
        return value.value
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}>"
    if _is_media(value):
        return f"<{value.mime_type}:{len(value.data)} bytes>"
    if is_dataclass(value) and not isinstance(value, type):
        return {item.name: serialize(getattr(value, item.name)) for item in fields(value)}
    if isinstance(value, Mapping):
        return {str(k): serialize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [serialize(item) for item in value]
    return str(value)


def sanitize_payload(payload: Any) -> Any:
    if isinstance(payload, Mapping):
        return {
            str(key): "<omitted>" if str(key).lower() in MEDIA_KEYS else sanitize_payload(value)
            for key, value in payload.items()
        }
    if isinstance(payload, (list, tuple, set, frozenset)):
        return [sanitize_payload(item) for item in payload]
    return serialize(payload)


def write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


def _getenv_as(key: str, default: _T, cast: Callable[[str], _T]) -> _T:
    raw = (os.getenv(key) or "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError:
        return default


def getenv_float(key: str, default: float) -> float:
    return _getenv_as(key, default, float)


def getenv_int(key: str, default: int) -> int:
    return _getenv_as(key, default, int)


def load_dotenv(path: Path | None = None, override: bool = False) -> bool:
    """Load KEY=VALUE lines from ``.env`` into the environment.

    Existing variables win unless ``override`` is set; returns False when no
    file was found.
    """
    env_path = path or _default_env_path()
    if not env_path.exists():
        return False
    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if line.startswith("export "):
            line = line[len("export ") :].lstrip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key:
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]
        if override or key not in os.environ:
            os.environ[key] = value
    return True


def _default_env_path() -> Path:
    cwd = Path.cwd()
    for current in (cwd, *cwd.parents):
        # The checkout root holds the package directory next to the .env file.
        if (current / "atelier_engine").is_dir() and (current / ".env").exists():
            return current / ".env"
    return cwd / ".env"


def safe_float(value: Any, default: float = 0.0) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def safe_str(value: Any, default: str = "") -> str:
    if value is None:
        return default
    text = str(value).strip()
    return text or default

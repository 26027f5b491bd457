"""Parse chat input into structured intents."""

from __future__ import annotations

import re
import shlex

from .commands import COMMAND_MAP, Intent

_SLASH_PATTERN = re.compile(r"^/(\w+)(?:\s+(.*))?$", re.DOTALL)
_MODES = {"photo", "video"}


def _split_args(arg: str) -> list[str]:
    """Split on whitespace, honoring quotes so paths with spaces work."""
    if not arg:
        return []
    try:
        parts = shlex.split(arg)
    except ValueError:
        parts = arg.split()
    return [part for part in parts if part]


def _parse_single_path_arg(arg: str) -> str:
    parts = _split_args(arg)
    if not parts:
        return ""
    if len(parts) == 1:
        return parts[0]
    # Unquoted path with spaces.
    return " ".join(parts)


def _parse_edit_args(arg: str) -> dict[str, object]:
    parts = _split_args(arg)
    concept_id = parts[0] if parts else ""
    image_id = parts[1] if len(parts) > 1 else ""
    rest = parts[2:]
    mask: str | None = None
    words: list[str] = []
    index = 0
    while index < len(rest):
        token = rest[index]
        if token == "--mask" and index + 1 < len(rest):
            mask = rest[index + 1]
            index += 2
            continue
        words.append(token)
        index += 1
    return {
        "concept_id": concept_id,
        "image_id": image_id,
        "mask": mask,
        "instruction": " ".join(words),
    }


def _parse_produce_args(arg: str) -> dict[str, object]:
    parts = _split_args(arg)
    concept_id = parts[0] if parts else ""
    rest = parts[1:]
    mode = "photo"
    if rest and rest[-1].lower() in _MODES:
        mode = rest.pop().lower()
    return {"concept_id": concept_id, "scenario": " ".join(rest), "mode": mode}


def parse_intent(text: str) -> Intent:
    raw = text.strip()
    if not raw:
        return Intent(action="noop", raw=text)
    match = _SLASH_PATTERN.match(raw)
    if not match:
        return Intent(action="message", raw=text, prompt=raw)
    command = match.group(1).lower()
    arg = (match.group(2) or "").strip()
    spec = COMMAND_MAP.get(command)
    if spec is None:
        return Intent(action="unknown", raw=text, command_args={"command": command, "arg": arg})
    if spec.arg_kind == "single_path":
        return Intent(action=spec.action, raw=text, command_args={"path": _parse_single_path_arg(arg)})
    if spec.arg_kind == "optional_path":
        path = _parse_single_path_arg(arg)
        return Intent(action=spec.action, raw=text, command_args={"path": path or None})
    if spec.arg_kind == "id":
        parts = _split_args(arg)
        return Intent(action=spec.action, raw=text, command_args={"id": parts[0] if parts else ""})
    if spec.arg_kind == "edit":
        return Intent(action=spec.action, raw=text, command_args=_parse_edit_args(arg))
    if spec.arg_kind == "produce":
        return Intent(action=spec.action, raw=text, command_args=_parse_produce_args(arg))
    return Intent(action=spec.action, raw=text, command_args={})

"""Slash command registry and parsed intent."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class CommandSpec:
    command: str
    action: str
    arg_kind: str
    help: str


COMMANDS: tuple[CommandSpec, ...] = (
    CommandSpec("upload", "upload", "single_path", "Upload an inspiration file: /upload PATH"),
    CommandSpec("share", "toggle_share", "id", "Share or unshare an asset with the agent: /share ASSET_ID"),
    CommandSpec("assets", "list_assets", "none", "List uploaded assets"),
    CommandSpec("select", "select", "id", "Select a concept (or 'none'): /select CONCEPT_ID"),
    CommandSpec("finalize", "finalize", "id", "Finalize a concept and build its tech pack: /finalize CONCEPT_ID"),
    CommandSpec("techpack", "refresh_techpack", "id", "Rebuild a concept's tech pack: /techpack CONCEPT_ID"),
    CommandSpec("edit", "edit", "edit", "Edit a primary: /edit CONCEPT_ID IMAGE_ID [--mask PATH] INSTRUCTION"),
    CommandSpec("produce", "produce", "produce", "Render a runway asset: /produce CONCEPT_ID SCENARIO [photo|video]"),
    CommandSpec("cancel", "cancel", "none", "Cancel the running production"),
    CommandSpec("status", "status", "none", "Show status and concepts"),
    CommandSpec("export", "export", "optional_path", "Export concepts and gallery: /export [DIR]"),
    CommandSpec("help", "help", "none", "Show help"),
)

COMMAND_MAP = {spec.command: spec for spec in COMMANDS}


@dataclass
class Intent:
    action: str
    raw: str
    prompt: str | None = None
    command_args: dict[str, Any] = field(default_factory=dict)

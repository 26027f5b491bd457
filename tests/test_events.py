from __future__ import annotations

import json
from pathlib import Path

from atelier_engine.runs.events import EventWriter
from atelier_engine.studio.status import AgentStatus


def test_event_writer(tmp_path: Path) -> None:
    path = tmp_path / "events.jsonl"
    writer = EventWriter(path, "session-123")
    writer.emit("status_changed", status=AgentStatus.THINKING, out_dir="/tmp/run")
    lines = path.read_text(encoding="utf-8").strip().splitlines()
    assert len(lines) == 1
    payload = json.loads(lines[0])
    assert payload["type"] == "status_changed"
    assert payload["session_id"] == "session-123"
    assert "ts" in payload
    assert payload["status"] == "thinking"
    assert payload["out_dir"] == "/tmp/run"


def test_event_writer_omits_binary_payloads(tmp_path: Path) -> None:
    writer = EventWriter(tmp_path / "events.jsonl", "s")
    event = writer.emit("derivative_committed", detail={"image": b"\x89PNG", "role": "artistic"}, raw=b"abc")

    assert event["detail"] == {"image": "<omitted>", "role": "artistic"}
    assert event["raw"] == "<bytes:3>"


def test_recent_filters_by_type_and_keeps_tail() -> None:
    writer = EventWriter(None, "s", tail_size=2)
    writer.emit("a")
    writer.emit("b")
    writer.emit("a", n=2)

    assert [event["type"] for event in writer.recent()] == ["b", "a"]
    assert writer.recent("a") == [writer.recent()[-1]]

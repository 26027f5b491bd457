from __future__ import annotations

import hashlib
import threading
from typing import Any, Callable, Mapping, Sequence

from atelier_engine.media import MediaBlob, placeholder_image
from atelier_engine.providers.base import (
    Completion,
    CompletionRequest,
    ContextPart,
    JobStatus,
    SearchResult,
    ToolCall,
    VideoConfig,
    VideoJob,
)


def concepts_call(**overrides: Any) -> ToolCall:
    args = {
        "concept1_name": "Night Bloom",
        "concept1_description": "Black velvet gown with bioluminescent embroidery",
        "concept2_name": "Iron Lace",
        "concept2_description": "Structured corset jacket with laser-cut leather lace",
    }
    args.update(overrides)
    return ToolCall(name="generate_concepts", args=args)


def derived_from(blob: MediaBlob) -> bytes:
    return b"from:" + hashlib.sha1(blob.data).hexdigest().encode("ascii")


class ScriptedProvider:
    """Capability provider that replays scripted answers and records every call."""

    name = "fake"

    def __init__(
        self,
        completions: Sequence[Completion | Exception] = (),
        ready: tuple[bool, str | None] = (True, None),
        structured: Any = None,
        search_results: Sequence[SearchResult] = (),
        polls_before_done: int = 0,
    ) -> None:
        self._completions = list(completions)
        self._ready = ready
        self.structured = structured
        self.search_results = list(search_results)
        self.polls_before_done = polls_before_done
        self.requests: list[CompletionRequest] = []
        self.structured_calls: list[Sequence[ContextPart]] = []
        self.image_calls: list[Sequence[ContextPart]] = []
        self.edit_calls: list[tuple[MediaBlob, str]] = []
        self.search_queries: list[str] = []
        self.poll_count = 0
        self.fetch_count = 0
        self.video_prompts: list[str] = []
        self.fail_image_when: Callable[[Sequence[ContextPart]], bool] | None = None
        self.fail_edit = False
        self.on_poll: Callable[[int], None] | None = None
        self.hold_edits: set[int] = set()
        self.edit_outputs: list[bytes] = []
        self.release = threading.Event()
        self._lock = threading.Lock()
        self._edits = 0

    def ready(self) -> tuple[bool, str | None]:
        return self._ready

    def complete(self, request: CompletionRequest) -> Completion:
        self.requests.append(request)
        if not self._completions:
            return Completion(text="Tell me more.")
        answer = self._completions.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return answer

    def complete_structured(self, system: str, parts: Sequence[ContextPart], schema: Mapping[str, Any]) -> Any:
        self.structured_calls.append(list(parts))
        if isinstance(self.structured, Exception):
            raise self.structured
        return self.structured

    def generate_image(self, parts: Sequence[ContextPart]) -> MediaBlob:
        with self._lock:
            self.image_calls.append(list(parts))
        if self.fail_image_when is not None and self.fail_image_when(parts):
            raise RuntimeError("image backend down")
        source = next((part for part in parts if isinstance(part, MediaBlob)), None)
        if source is None:
            prompt = " ".join(part for part in parts if isinstance(part, str))
            return placeholder_image("primary", prompt, size=(48, 64))
        with self._lock:
            held = {self.edit_outputs[index - 1] for index in self.hold_edits if index <= len(self.edit_outputs)}
        if source.data in held:
            self.release.wait(5)
        return MediaBlob(data=derived_from(source), mime_type="image/png")

    def edit_image(self, image: MediaBlob, instruction: str) -> MediaBlob:
        with self._lock:
            self.edit_calls.append((image, instruction))
            self._edits += 1
            count = self._edits
        if self.fail_edit:
            raise RuntimeError("edit backend down")
        edited = placeholder_image(f"edit-{count}", instruction, size=(48, 64))
        with self._lock:
            self.edit_outputs.append(edited.data)
        return edited

    def start_video_job(self, image: MediaBlob, prompt: str, config: VideoConfig) -> VideoJob:
        self.video_prompts.append(prompt)
        return VideoJob(job_id="job-1")

    def poll_job(self, job: VideoJob) -> JobStatus:
        self.poll_count += 1
        if self.on_poll is not None:
            self.on_poll(self.poll_count)
        if self.poll_count <= self.polls_before_done:
            return JobStatus(done=False, job=job)
        return JobStatus(done=True, result_ref="video-ref", job=job)

    def fetch_result(self, result_ref: Any) -> MediaBlob:
        self.fetch_count += 1
        return MediaBlob(data=b"mp4-bytes", mime_type="video/mp4")

    def grounded_search(self, query: str) -> list[SearchResult]:
        self.search_queries.append(query)
        return list(self.search_results)

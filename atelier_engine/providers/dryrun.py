"""Dry-run capability provider (offline)."""

from __future__ import annotations

import re
import threading
import uuid
from typing import Any, Mapping, Sequence

from ..media import annotate_image, placeholder_image
from .base import (
    Completion,
    CompletionRequest,
    ContextPart,
    JobStatus,
    MediaBlob,
    SearchResult,
    ToolCall,
    VideoConfig,
    VideoJob,
)

_GENERATE_HINT = re.compile(r"\b(generate|design|create|make|sketch)\b", re.IGNORECASE)


class DryRunProvider:
    """Answers every capability locally with labeled placeholders.

    Used for offline runs (``ATELIER_PROVIDER=dryrun``) and as the image source
    when no credentials are configured.
    """

    name = "dryrun"

    def __init__(self, label: str = "dryrun", video_polls: int = 2) -> None:
        self.label = label
        self.video_polls = max(0, int(video_polls))
        self._jobs: dict[str, int] = {}
        self._lock = threading.Lock()

    def ready(self) -> tuple[bool, str | None]:
        return True, None

    def complete(self, request: CompletionRequest) -> Completion:
        user_text = _last_text(request.parts)
        tool_names = {tool.name for tool in request.tools}
        if "generate_concepts" in tool_names and _GENERATE_HINT.search(user_text):
            theme = user_text.strip()[:120] or "untitled brief"
            return Completion(
                text=f"[{self.label}] Drafting two directions.",
                tool_calls=[
                    ToolCall(
                        name="generate_concepts",
                        args={
                            "concept1_name": "Structured Take",
                            "concept1_description": f"Tailored, structured interpretation of: {theme}",
                            "concept2_name": "Fluid Take",
                            "concept2_description": f"Draped, fluid interpretation of: {theme}",
                        },
                    )
                ],
            )
        return Completion(text=f"[{self.label}] Noted: {user_text[:160]}".rstrip())

    def complete_structured(
        self,
        system: str,
        parts: Sequence[ContextPart],
        schema: Mapping[str, Any],
    ) -> Any:
        return {
            "style_number": "DRY-0001",
            "season": "SS-DRYRUN",
            "bom": [
                {
                    "location": "Body",
                    "item": "Placeholder Twill",
                    "description": "Mid-weight cotton twill",
                    "quantity": "2.1 m",
                    "cost_estimate": 12.5,
                },
                {
                    "location": "Closure",
                    "item": "Placeholder Buttons",
                    "description": "Horn-look 18L",
                    "quantity": "6 pcs",
                    "cost_estimate": 1.2,
                },
            ],
            "measurements": [
                {"point_of_measure": "Chest width", "value": 52, "unit": "cm", "tolerance": "+/- 1"},
                {"point_of_measure": "Body length", "value": 72, "unit": "cm", "tolerance": "+/- 1"},
            ],
            "construction_notes": ["Dry-run tech pack; no model was consulted."],
            "total_cost_estimate": 13.7,
            "currency": "USD",
        }

    def generate_image(self, parts: Sequence[ContextPart]) -> MediaBlob:
        prompt = " ".join(part for part in parts if isinstance(part, str)).strip()
        for part in parts:
            if isinstance(part, MediaBlob) and part.kind == "image":
                return annotate_image(part, f"{self.label}: {prompt}")
        return placeholder_image(self.label, prompt)

    def edit_image(self, image: MediaBlob, instruction: str) -> MediaBlob:
        return annotate_image(image, f"{self.label} edit: {instruction}")

    def start_video_job(self, image: MediaBlob, prompt: str, config: VideoConfig) -> VideoJob:
        job_id = uuid.uuid4().hex
        with self._lock:
            self._jobs[job_id] = self.video_polls
        return VideoJob(job_id=job_id)

    def poll_job(self, job: VideoJob) -> JobStatus:
        with self._lock:
            remaining = self._jobs.get(job.job_id)
            if remaining is None:
                return JobStatus(done=True, error=f"Unknown job {job.job_id}.", job=job)
            if remaining > 0:
                self._jobs[job.job_id] = remaining - 1
                return JobStatus(done=False, job=job)
            del self._jobs[job.job_id]
        return JobStatus(done=True, result_ref=job.job_id, job=job)

    def fetch_result(self, result_ref: Any) -> MediaBlob:
        return MediaBlob(data=f"{self.label}-video:{result_ref}".encode("utf-8"), mime_type="video/mp4")

    def grounded_search(self, query: str) -> list[SearchResult]:
        return []


def _last_text(parts: Sequence[ContextPart]) -> str:
    for part in reversed(list(parts)):
        if isinstance(part, str) and part.strip():
            return part
    return ""

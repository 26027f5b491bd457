"""Capability provider contracts.

Everything that crosses into the generative backend is expressed with the
types below. Media always travels as a ``MediaBlob`` (bytes plus mime type),
never as untyped bytes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol, Sequence, Union

from ..media import MediaBlob

__all__ = [
    "CapabilityProvider",
    "Completion",
    "CompletionRequest",
    "ContextPart",
    "JobStatus",
    "MediaBlob",
    "ProviderUnavailable",
    "SearchResult",
    "ToolCall",
    "ToolSpec",
    "VideoConfig",
    "VideoJob",
]


class ProviderUnavailable(RuntimeError):
    """Raised when a provider cannot be used (missing credentials or SDK)."""


ContextPart = Union[str, MediaBlob]


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    parameters: Mapping[str, Any]


@dataclass(frozen=True)
class ToolCall:
    name: str
    args: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CompletionRequest:
    system: str
    parts: Sequence[ContextPart]
    tools: Sequence[ToolSpec] = ()


@dataclass(frozen=True)
class Completion:
    text: str
    tool_calls: Sequence[ToolCall] = ()
    thoughts: str | None = None
    usage: Mapping[str, Any] | None = None


@dataclass(frozen=True)
class VideoConfig:
    aspect_ratio: str = "9:16"
    resolution: str = "720p"
    number_of_videos: int = 1


@dataclass(frozen=True)
class VideoJob:
    job_id: str
    handle: Any = field(default=None, repr=False, compare=False)


@dataclass(frozen=True)
class JobStatus:
    done: bool
    result_ref: Any = None
    error: str | None = None
    job: VideoJob | None = None


@dataclass(frozen=True)
class SearchResult:
    title: str
    url: str


class CapabilityProvider(Protocol):
    name: str

    def ready(self) -> tuple[bool, str | None]:
        ...

    def complete(self, request: CompletionRequest) -> Completion:
        ...

    def complete_structured(
        self,
        system: str,
        parts: Sequence[ContextPart],
        schema: Mapping[str, Any],
    ) -> Any:
        ...

    def generate_image(self, parts: Sequence[ContextPart]) -> MediaBlob:
        ...

    def edit_image(self, image: MediaBlob, instruction: str) -> MediaBlob:
        ...

    def start_video_job(self, image: MediaBlob, prompt: str, config: VideoConfig) -> VideoJob:
        ...

    def poll_job(self, job: VideoJob) -> JobStatus:
        ...

    def fetch_result(self, result_ref: Any) -> MediaBlob:
        ...

    def grounded_search(self, query: str) -> list[SearchResult]:
        ...

"""Gemini capability provider."""

from __future__ import annotations

import json
import os
import threading
import uuid
from typing import Any, Mapping, Sequence

from google import genai
from google.genai import types

from ..models.selectors import ModelSelector
from ..models.registry import ModelRegistry
from .base import (
    Completion,
    CompletionRequest,
    ContextPart,
    JobStatus,
    MediaBlob,
    ProviderUnavailable,
    SearchResult,
    ToolSpec,
    VideoConfig,
    VideoJob,
)
from .google_utils import (
    extract_grounding_results,
    extract_image_blobs,
    extract_usage_summary,
    split_response_parts,
)

IMAGE_ASPECT_RATIO = "3:4"
SEARCH_RESULT_CAP = 10


def _api_key() -> str | None:
    return os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")


class GeminiProvider:
    name = "gemini"

    def __init__(self, api_key: str | None = None, registry: ModelRegistry | None = None) -> None:
        self._api_key = api_key
        self._selector = ModelSelector(registry, provider=self.name)
        self._client: genai.Client | None = None
        self._client_lock = threading.Lock()

    def ready(self) -> tuple[bool, str | None]:
        if not (self._api_key or _api_key()):
            return False, "Missing GEMINI_API_KEY (or GOOGLE_API_KEY)."
        return True, None

    def model_for(self, capability: str) -> str:
        return self._selector.select_from_env(capability).model.name

    def _get_client(self) -> genai.Client:
        api_key = self._api_key or _api_key()
        if not api_key:
            raise ProviderUnavailable("GEMINI_API_KEY or GOOGLE_API_KEY not set.")
        with self._client_lock:
            if self._client is None:
                self._client = genai.Client(api_key=api_key)
            return self._client

    def complete(self, request: CompletionRequest) -> Completion:
        client = self._get_client()
        config_kwargs: dict[str, Any] = {
            "system_instruction": request.system,
            "thinking_config": types.ThinkingConfig(include_thoughts=True),
        }
        if request.tools:
            config_kwargs["tools"] = [_build_tool(list(request.tools))]
        response = client.models.generate_content(
            model=self.model_for("orchestration"),
            contents=[types.Content(role="user", parts=to_parts(request.parts))],
            config=types.GenerateContentConfig(**config_kwargs),
        )
        text, thoughts, calls = split_response_parts(response)
        return Completion(text=text, tool_calls=calls, thoughts=thoughts, usage=extract_usage_summary(response))

    def complete_structured(
        self,
        system: str,
        parts: Sequence[ContextPart],
        schema: Mapping[str, Any],
    ) -> Any:
        client = self._get_client()
        response = client.models.generate_content(
            model=self.model_for("reasoning"),
            contents=[types.Content(role="user", parts=to_parts(parts))],
            config=types.GenerateContentConfig(
                system_instruction=system,
                response_mime_type="application/json",
                response_schema=dict(schema),
            ),
        )
        parsed = getattr(response, "parsed", None)
        if isinstance(parsed, (dict, list)):
            return parsed
        raw = getattr(response, "text", None) or ""
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return None

    def generate_image(self, parts: Sequence[ContextPart]) -> MediaBlob:
        return self._image_call(self.model_for("image"), parts)

    def edit_image(self, image: MediaBlob, instruction: str) -> MediaBlob:
        return self._image_call(self.model_for("edit"), [image, instruction])

    def _image_call(self, model: str, parts: Sequence[ContextPart]) -> MediaBlob:
        client = self._get_client()
        response = client.models.generate_content(
            model=model,
            contents=[types.Content(role="user", parts=to_parts(parts))],
            config=types.GenerateContentConfig(
                response_modalities=["IMAGE"],
                image_config=types.ImageConfig(aspect_ratio=IMAGE_ASPECT_RATIO),
            ),
        )
        blobs = extract_image_blobs(getattr(response, "candidates", None) or [])
        if not blobs:
            raise RuntimeError("Gemini returned no images.")
        return blobs[0]

    def start_video_job(self, image: MediaBlob, prompt: str, config: VideoConfig) -> VideoJob:
        client = self._get_client()
        operation = client.models.generate_videos(
            model=self.model_for("video"),
            prompt=prompt,
            image=types.Image(image_bytes=image.data, mime_type=image.mime_type),
            config=types.GenerateVideosConfig(
                number_of_videos=config.number_of_videos,
                aspect_ratio=config.aspect_ratio,
                resolution=config.resolution,
            ),
        )
        job_id = str(getattr(operation, "name", None) or uuid.uuid4().hex)
        return VideoJob(job_id=job_id, handle=operation)

    def poll_job(self, job: VideoJob) -> JobStatus:
        client = self._get_client()
        operation = client.operations.get(job.handle)
        refreshed = VideoJob(job_id=job.job_id, handle=operation)
        if not getattr(operation, "done", False):
            return JobStatus(done=False, job=refreshed)
        error = getattr(operation, "error", None)
        if error:
            return JobStatus(done=True, error=str(error), job=refreshed)
        result = getattr(operation, "response", None) or getattr(operation, "result", None)
        videos = getattr(result, "generated_videos", None) or []
        if not videos:
            return JobStatus(done=True, error="Video job finished without output.", job=refreshed)
        return JobStatus(done=True, result_ref=getattr(videos[0], "video", None), job=refreshed)

    def fetch_result(self, result_ref: Any) -> MediaBlob:
        mime_type = str(getattr(result_ref, "mime_type", None) or "video/mp4")
        inline = getattr(result_ref, "video_bytes", None)
        if inline:
            return MediaBlob(data=bytes(inline), mime_type=mime_type)
        client = self._get_client()
        data = client.files.download(file=result_ref)
        return MediaBlob(data=bytes(data), mime_type=mime_type)

    def grounded_search(self, query: str) -> list[SearchResult]:
        client = self._get_client()
        response = client.models.generate_content(
            model=self.model_for("search"),
            contents=f"Find wholesale suppliers and product listings for: {query}",
            config=types.GenerateContentConfig(
                tools=[types.Tool(google_search=types.GoogleSearch())],
            ),
        )
        return extract_grounding_results(response, limit=SEARCH_RESULT_CAP)


def to_parts(parts: Sequence[ContextPart]) -> list[types.Part]:
    converted: list[types.Part] = []
    for entry in parts:
        if isinstance(entry, MediaBlob):
            converted.append(types.Part(inline_data=types.Blob(data=entry.data, mime_type=entry.mime_type)))
            continue
        if isinstance(entry, str):
            if entry:
                converted.append(types.Part(text=entry))
            continue
        raise TypeError(f"Unsupported context part: {type(entry).__name__}")
    return converted


def _build_tool(tools: list[ToolSpec]) -> types.Tool:
    return types.Tool(
        function_declarations=[
            types.FunctionDeclaration(
                name=tool.name,
                description=tool.description,
                parameters=dict(tool.parameters),
            )
            for tool in tools
        ]
    )

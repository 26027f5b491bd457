"""Response parsing helpers for the google-genai SDK.

These read SDK objects with ``getattr`` so they also work on plain
namespaces in tests.
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from .base import MediaBlob, SearchResult, ToolCall


def first_candidate_parts(response: Any) -> list[Any]:
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    candidate = candidates[0]
    content = getattr(candidate, "content", None)
    return list(getattr(content, "parts", None) or getattr(candidate, "parts", None) or [])


def split_response_parts(response: Any) -> tuple[str, str | None, list[ToolCall]]:
    """Return (answer text, thought summary, tool calls) from a completion."""
    texts: list[str] = []
    thoughts: list[str] = []
    calls: list[ToolCall] = []
    for part in first_candidate_parts(response):
        function_call = getattr(part, "function_call", None)
        if function_call is not None:
            name = str(getattr(function_call, "name", "") or "")
            args = getattr(function_call, "args", None)
            calls.append(ToolCall(name=name, args=dict(args) if isinstance(args, Mapping) else {}))
            continue
        text = getattr(part, "text", None)
        if not text:
            continue
        if getattr(part, "thought", False):
            thoughts.append(str(text))
        else:
            texts.append(str(text))
    thought_text = "\n".join(thoughts).strip() or None
    return "\n".join(texts).strip(), thought_text, calls


def extract_image_blobs(candidates: Sequence[Any]) -> list[MediaBlob]:
    blobs: list[MediaBlob] = []
    for candidate in candidates:
        content = getattr(candidate, "content", None)
        parts = getattr(content, "parts", None) or getattr(candidate, "parts", None) or []
        for part in parts:
            inline_data = getattr(part, "inline_data", None)
            data = getattr(inline_data, "data", None) if inline_data else None
            if data is None:
                continue
            mime_type = getattr(inline_data, "mime_type", None) or "image/png"
            if isinstance(data, str):
                data = data.encode("latin1")
            if isinstance(data, (bytes, bytearray)):
                blobs.append(MediaBlob(data=bytes(data), mime_type=str(mime_type)))
    return blobs


def extract_grounding_results(response: Any, limit: int | None = None) -> list[SearchResult]:
    results: list[SearchResult] = []
    seen: set[str] = set()
    for candidate in getattr(response, "candidates", None) or []:
        metadata = getattr(candidate, "grounding_metadata", None)
        chunks = getattr(metadata, "grounding_chunks", None) or []
        for chunk in chunks:
            web = getattr(chunk, "web", None)
            uri = getattr(web, "uri", None) if web else None
            if not uri or uri in seen:
                continue
            seen.add(uri)
            title = getattr(web, "title", None) or uri
            results.append(SearchResult(title=str(title), url=str(uri)))
            if limit is not None and len(results) >= limit:
                return results
    return results


def to_dict(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Mapping):
        return {str(k): to_dict(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_dict(v) for v in value]
    if hasattr(value, "model_dump"):
        try:
            return to_dict(value.model_dump(exclude_none=True))
        except (TypeError, ValueError):
            pass
    if hasattr(value, "__dict__"):
        return {str(k): to_dict(v) for k, v in value.__dict__.items() if not str(k).startswith("_")}
    return str(value)


def extract_usage_summary(response: Any) -> Mapping[str, Any] | None:
    if response is None:
        return None
    for key in ("usage_metadata", "usage", "usageMetadata"):
        if isinstance(response, Mapping):
            raw = response.get(key)
        else:
            raw = getattr(response, key, None)
        mapped = to_dict(raw)
        if isinstance(mapped, Mapping):
            return dict(mapped)
    return None

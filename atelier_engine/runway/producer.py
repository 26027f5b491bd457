"""Runway photo and video production."""

from __future__ import annotations

import threading
import time
from typing import Callable

from ..chat.prompts import PHOTO_PROMPT, VIDEO_PROMPT
from ..providers.base import CapabilityProvider, JobStatus, VideoConfig
from ..runs.events import EventWriter
from ..studio.state import DesignConcept, RunwayAsset, RunwayKind
from ..utils import new_id, now_ms
from .scenarios import Scenario

DEFAULT_POLL_INTERVAL = 10.0
DEFAULT_POLL_TIMEOUT = 600.0


class ProductionError(RuntimeError):
    """User-facing production failure; the gallery is left untouched."""


class ProductionRenderer:
    def __init__(
        self,
        provider: CapabilityProvider,
        events: EventWriter,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        poll_timeout: float = DEFAULT_POLL_TIMEOUT,
        video_config: VideoConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.provider = provider
        self.events = events
        self.poll_interval = max(0.0, float(poll_interval))
        self.poll_timeout = max(0.0, float(poll_timeout))
        self.video_config = video_config or VideoConfig()
        self._clock = clock

    def produce(
        self,
        concept: DesignConcept,
        scenario: Scenario,
        kind: RunwayKind,
        cancel: threading.Event | None = None,
    ) -> RunwayAsset:
        if concept.primary is None:
            raise ProductionError(f"Concept '{concept.name}' has no primary image to produce from.")
        if kind is RunwayKind.VIDEO:
            return self.produce_video(concept, scenario, cancel or threading.Event())
        return self.produce_photo(concept, scenario)

    def produce_photo(self, concept: DesignConcept, scenario: Scenario) -> RunwayAsset:
        prompt = PHOTO_PROMPT.format(scenario=scenario.prompt)
        try:
            media = self.provider.generate_image([concept.primary.media, prompt])
        except Exception as exc:
            raise ProductionError(f"Photo production failed: {exc}") from exc
        return _asset(RunwayKind.PHOTO, media, concept, scenario)

    def produce_video(self, concept: DesignConcept, scenario: Scenario, cancel: threading.Event) -> RunwayAsset:
        prompt = VIDEO_PROMPT.format(scenario=scenario.prompt)
        try:
            job = self.provider.start_video_job(concept.primary.media, prompt, self.video_config)
        except Exception as exc:
            raise ProductionError(f"Video production could not start: {exc}") from exc
        self.events.emit("video_job_started", concept_id=concept.id, job_id=job.job_id, scenario=scenario.label)

        deadline = self._clock() + self.poll_timeout
        polls = 0
        while True:
            if cancel.is_set():
                self._abandon(job.job_id, "cancelled", polls)
                raise ProductionError("Video production was cancelled.")
            try:
                status: JobStatus = self.provider.poll_job(job)
            except Exception as exc:
                raise ProductionError(f"Video production failed while polling: {exc}") from exc
            polls += 1
            if status.job is not None:
                job = status.job
            self.events.emit("video_job_polled", job_id=job.job_id, done=status.done, polls=polls)
            if status.done:
                break
            if self._clock() >= deadline:
                self._abandon(job.job_id, "timeout", polls)
                raise ProductionError(f"Video production timed out after {self.poll_timeout:g}s.")
            if cancel.wait(self.poll_interval):
                self._abandon(job.job_id, "cancelled", polls)
                raise ProductionError("Video production was cancelled.")

        if status.error:
            raise ProductionError(f"Video production failed: {status.error}")
        if status.result_ref is None:
            raise ProductionError("Video production finished without a result.")
        try:
            media = self.provider.fetch_result(status.result_ref)
        except Exception as exc:
            raise ProductionError(f"Video download failed: {exc}") from exc
        self.events.emit("video_job_fetched", job_id=job.job_id, polls=polls, bytes=len(media.data))
        return _asset(RunwayKind.VIDEO, media, concept, scenario)

    def _abandon(self, job_id: str, reason: str, polls: int) -> None:
        self.events.emit("video_job_abandoned", job_id=job_id, reason=reason, polls=polls)


def _asset(kind: RunwayKind, media, concept: DesignConcept, scenario: Scenario) -> RunwayAsset:
    return RunwayAsset(
        id=new_id("runway"),
        kind=kind,
        media=media,
        source_concept_id=concept.id,
        scenario_label=scenario.label,
        created_at=now_ms(),
    )

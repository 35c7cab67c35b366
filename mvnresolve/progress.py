"""Progress tracking for the resolve / download / post-process pipeline."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable

import structlog

log = structlog.get_logger(__name__)

ARTIFACT_EVENTS = (
    "pom_downloading",
    "pom_downloaded",
    "pom_parsing",
    "pom_parsed",
    "artifact_downloading",
    "artifact_downloaded",
)


@dataclass
class PhaseProgress:
    phase: str
    status: str = "pending"  # "pending" | "running" | "completed" | "failed" | "skipped"
    start_time: float | None = None
    end_time: float | None = None
    detail: str = ""
    error: str | None = None

    @property
    def duration(self) -> float | None:
        if self.start_time and self.end_time:
            return round(self.end_time - self.start_time, 2)
        return None


@dataclass(frozen=True)
class ArtifactEvent:
    kind: str  # one of ARTIFACT_EVENTS
    url: str


class ProgressTracker:
    """Track pipeline phases and per-file fetch events.

    Callbacks are informational: an exception raised by one is logged and
    never interrupts the run.
    """

    def __init__(self) -> None:
        self.phases: list[PhaseProgress] = []
        self._by_name: dict[str, PhaseProgress] = {}
        self.callbacks: list[Callable[[PhaseProgress], None]] = []
        self.artifact_callbacks: list[Callable[[ArtifactEvent], None]] = []
        self.event_counts: dict[str, int] = {}

    def start_phase(self, phase: str) -> None:
        p = PhaseProgress(phase=phase, status="running", start_time=time.monotonic())
        self.phases.append(p)
        self._by_name[phase] = p
        self._notify(p)

    def complete_phase(self, phase: str, detail: str = "") -> None:
        p = self._by_name.get(phase)
        if p:
            p.status = "completed"
            p.end_time = time.monotonic()
            p.detail = detail
            self._notify(p)

    def fail_phase(self, phase: str, error: str) -> None:
        p = self._by_name.get(phase)
        if p:
            p.status = "failed"
            p.end_time = time.monotonic()
            p.error = error
            self._notify(p)

    def skip_phase(self, phase: str, reason: str) -> None:
        p = PhaseProgress(phase=phase, status="skipped", detail=reason)
        self.phases.append(p)
        self._by_name[phase] = p
        self._notify(p)

    def artifact_event(self, kind: str, url: str) -> None:
        """Report a POM or artifact fetch step for *url*."""
        if kind not in ARTIFACT_EVENTS:
            raise ValueError(f"unknown artifact event {kind!r}")
        self.event_counts[kind] = self.event_counts.get(kind, 0) + 1
        event = ArtifactEvent(kind, url)
        for cb in self.artifact_callbacks:
            try:
                cb(event)
            except Exception:
                log.debug("progress.callback_error", kind=kind, url=url, exc_info=True)

    def get_summary(self) -> dict[str, Any]:
        total_duration = sum(p.duration or 0 for p in self.phases)
        return {
            "phases": [
                {
                    "phase": p.phase,
                    "status": p.status,
                    "duration": p.duration,
                    "detail": p.detail,
                    "error": p.error,
                }
                for p in self.phases
            ],
            "events": dict(self.event_counts),
            "total_duration": round(total_duration, 2),
        }

    def _notify(self, p: PhaseProgress) -> None:
        for cb in self.callbacks:
            try:
                cb(p)
            except Exception:
                log.debug("progress.callback_error", phase=p.phase, exc_info=True)

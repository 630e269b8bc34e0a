from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any
from uuid import UUID, uuid4


class JobKind(str, Enum):
    ENCODE = "encode"
    DECODE = "decode"


class JobStage(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    SUBMITTING = "submitting"
    AWAITING_RESULT = "awaiting_result"
    RENDERING = "rendering"
    RECONSTRUCTING = "reconstructing"
    DONE = "done"
    FAILED = "failed"


TERMINAL_STAGES = frozenset({JobStage.DONE, JobStage.FAILED})

_TRANSITIONS: dict[JobKind, dict[JobStage, frozenset[JobStage]]] = {
    JobKind.ENCODE: {
        JobStage.IDLE: frozenset({JobStage.SUBMITTING}),
        JobStage.SUBMITTING: frozenset({JobStage.AWAITING_RESULT}),
        JobStage.AWAITING_RESULT: frozenset({JobStage.RENDERING}),
        JobStage.RENDERING: frozenset({JobStage.DONE}),
    },
    JobKind.DECODE: {
        JobStage.IDLE: frozenset({JobStage.SCANNING}),
        JobStage.SCANNING: frozenset({JobStage.SUBMITTING}),
        JobStage.SUBMITTING: frozenset({JobStage.AWAITING_RESULT}),
        JobStage.AWAITING_RESULT: frozenset({JobStage.RECONSTRUCTING}),
        JobStage.RECONSTRUCTING: frozenset({JobStage.DONE}),
    },
}


@dataclass
class TransferJob:
    """In-memory state of one encode or decode run."""

    kind: JobKind
    source: Path
    destination: Path
    id: UUID = field(default_factory=uuid4)
    stage: JobStage = JobStage.IDLE
    identifier: str | None = None
    error: str | None = None
    timeline: list[dict[str, Any]] = field(default_factory=list)
    _started: float = field(default_factory=time.perf_counter, repr=False)

    @property
    def elapsed_ms(self) -> int:
        return int((time.perf_counter() - self._started) * 1000.0)

    @property
    def finished(self) -> bool:
        return self.stage in TERMINAL_STAGES

    def advance(self, stage: JobStage) -> None:
        allowed = _TRANSITIONS[self.kind].get(self.stage, frozenset())
        if stage not in allowed:
            raise RuntimeError(f"{self.kind.value} job cannot move from {self.stage.value} to {stage.value}")
        self._enter(stage)

    def fail(self, exc: Exception) -> None:
        if self.finished:
            raise RuntimeError(f"{self.kind.value} job already finished ({self.stage.value})")
        self.error = f"{getattr(exc, 'kind', type(exc).__name__)}: {exc}"
        self._enter(JobStage.FAILED)

    def _enter(self, stage: JobStage) -> None:
        self.timeline.append({"stage": stage.value, "from": self.stage.value, "elapsedMs": self.elapsed_ms})
        self.stage = stage


__all__ = ["JobKind", "JobStage", "TERMINAL_STAGES", "TransferJob"]

"""AnalysisJob record and its lifecycle."""

from __future__ import annotations

import datetime as dt
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from spring_twin.errors import InvalidTransitionError


def utcnow() -> dt.datetime:
    """Return a timezone-aware UTC timestamp."""
    return dt.datetime.now(dt.timezone.utc)


class JobState(str, Enum):
    QUEUED = "Queued"
    RUNNING = "Running"
    COMPLETED = "Completed"
    FAILED = "Failed"
    CANCELLED = "Cancelled"

    @property
    def terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset({JobState.COMPLETED, JobState.FAILED, JobState.CANCELLED})

ALLOWED_TRANSITIONS = {
    JobState.QUEUED: frozenset({JobState.RUNNING, JobState.CANCELLED, JobState.FAILED}),
    JobState.RUNNING: frozenset({JobState.COMPLETED, JobState.FAILED, JobState.CANCELLED}),
    JobState.COMPLETED: frozenset(),
    JobState.FAILED: frozenset(),
    JobState.CANCELLED: frozenset(),
}


@dataclass(frozen=True)
class AnalysisJob:
    """Immutable job record; every change produces a new record."""

    id: str
    project_id: str
    state: JobState = JobState.QUEUED
    progress: int = 0
    include_packages: Tuple[str, ...] = ()
    exclude_packages: Tuple[str, ...] = ()
    created_at: dt.datetime = field(default_factory=utcnow)
    started_at: Optional[dt.datetime] = None
    finished_at: Optional[dt.datetime] = None
    error_kind: Optional[str] = None
    error_message: Optional[str] = None
    warnings: Tuple[Dict[str, str], ...] = ()
    result: Optional[Dict[str, Any]] = None

    @classmethod
    def queued(cls, project_id: str, include_packages=(), exclude_packages=()) -> "AnalysisJob":
        return cls(
            id=f"job-{uuid.uuid4().hex[:16]}",
            project_id=project_id,
            include_packages=tuple(include_packages),
            exclude_packages=tuple(exclude_packages),
        )

    @property
    def terminal(self) -> bool:
        return self.state.terminal

    def transition(self, state: JobState, **changes: Any) -> "AnalysisJob":
        if state not in ALLOWED_TRANSITIONS[self.state]:
            raise InvalidTransitionError(
                f"Job {self.id} cannot move from {self.state.value} to {state.value}"
            )
        now = utcnow()
        if state is JobState.RUNNING:
            changes.setdefault("started_at", now)
        if state.terminal:
            changes.setdefault("finished_at", now)
        return replace(self, state=state, **changes)

    def with_progress(self, progress: int) -> "AnalysisJob":
        if self.state is not JobState.RUNNING:
            raise InvalidTransitionError(f"Job {self.id} is {self.state.value}; progress is frozen")
        if progress < self.progress:
            raise InvalidTransitionError(f"Job {self.id} progress cannot go from {self.progress} to {progress}")
        return replace(self, progress=min(progress, 100))

    def status(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"state": self.state.value, "progress": self.progress}
        if self.error_kind:
            payload["error"] = {"kind": self.error_kind, "message": self.error_message}
        return payload

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "state": self.state.value,
            "progress": self.progress,
            "include_packages": list(self.include_packages),
            "exclude_packages": list(self.exclude_packages),
            "created_at": self.created_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "error": {"kind": self.error_kind, "message": self.error_message} if self.error_kind else None,
            "warnings": [dict(w) for w in self.warnings],
            "result": self.result,
        }


__all__ = ["AnalysisJob", "JobState", "TERMINAL_STATES", "ALLOWED_TRANSITIONS", "utcnow"]

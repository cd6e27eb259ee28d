"""Progress computation and event fan-out for analysis jobs."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

from .models import utcnow


@dataclass(frozen=True)
class ProgressEvent:
    job_id: str
    project_id: str
    state: str
    progress: int
    message: str = ""
    timestamp: str = field(default_factory=lambda: utcnow().isoformat())

    @property
    def terminal(self) -> bool:
        return self.state in ("Completed", "Failed", "Cancelled")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "job_id": self.job_id,
            "project_id": self.project_id,
            "state": self.state,
            "progress": self.progress,
            "message": self.message,
            "timestamp": self.timestamp,
        }


class ProgressTracker:
    """Turns unit completions into coalesced, non-decreasing percentages.

    Values stay at or below 99 until :meth:`complete`, which emits exactly
    one 100.
    """

    def __init__(
        self,
        emit: Callable[[int], None],
        *,
        min_interval: float = 0.25,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._emit = emit
        self._min_interval = min_interval
        self._clock = clock
        self.total: Optional[int] = None
        self.done = 0
        self.last_emitted = 0
        self._last_emit_at: Optional[float] = None
        self._completed = False

    def set_total(self, total: int) -> None:
        self.total = total

    def current(self) -> int:
        if not self.total:
            return 0
        return min(99, (self.done * 100) // self.total)

    def advance(self, units: int = 1) -> None:
        if self._completed:
            return
        self.done += units
        value = self.current()
        if value <= self.last_emitted:
            return
        now = self._clock()
        if self._last_emit_at is not None and now - self._last_emit_at < self._min_interval:
            return
        self._publish(value, now)

    def flush(self) -> None:
        """Emit the latest value even if the interval has not elapsed."""
        value = self.current()
        if not self._completed and value > self.last_emitted:
            self._publish(value, self._clock())

    def complete(self) -> None:
        if self._completed:
            return
        self._completed = True
        self._publish(100, self._clock())

    def _publish(self, value: int, now: float) -> None:
        self.last_emitted = value
        self._last_emit_at = now
        self._emit(value)


class EventBroker:
    """Per-job subscriber queues. Publishing never blocks."""

    def __init__(self) -> None:
        self._subscribers: Dict[str, List[asyncio.Queue]] = {}

    def publish(self, event: ProgressEvent) -> None:
        for queue in list(self._subscribers.get(event.job_id, [])):
            queue.put_nowait(event)

    async def stream(self, job_id: str, initial: Optional[ProgressEvent] = None) -> AsyncIterator[ProgressEvent]:
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.setdefault(job_id, []).append(queue)
        try:
            if initial is not None:
                yield initial
                if initial.terminal:
                    return
            while True:
                event = await queue.get()
                yield event
                if event.terminal:
                    return
        finally:
            subscribers = self._subscribers.get(job_id, [])
            if queue in subscribers:
                subscribers.remove(queue)
            if not subscribers:
                self._subscribers.pop(job_id, None)


__all__ = ["ProgressEvent", "ProgressTracker", "EventBroker"]

"""Per-project lease: at most one non-terminal job per project."""

import threading
from typing import Dict, Optional


class ProjectLeaseTable:
    def __init__(self) -> None:
        self._leases: Dict[str, str] = {}
        self._lock = threading.Lock()

    def acquire(self, project_id: str, job_id: str) -> bool:
        """Atomically take the lease; False when another job holds it."""
        with self._lock:
            if project_id in self._leases:
                return False
            self._leases[project_id] = job_id
            return True

    def release(self, project_id: str, job_id: str) -> None:
        with self._lock:
            if self._leases.get(project_id) == job_id:
                del self._leases[project_id]

    def holder(self, project_id: str) -> Optional[str]:
        return self._leases.get(project_id)

    def active(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._leases)


__all__ = ["ProjectLeaseTable"]

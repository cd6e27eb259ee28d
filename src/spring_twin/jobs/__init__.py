"""Analysis job lifecycle: records, leases, progress and the coordinator."""

from .coordinator import JobCoordinator
from .leases import ProjectLeaseTable
from .models import AnalysisJob, JobState, TERMINAL_STATES
from .progress import EventBroker, ProgressEvent, ProgressTracker

__all__ = [
    "AnalysisJob",
    "EventBroker",
    "JobCoordinator",
    "JobState",
    "ProgressEvent",
    "ProgressTracker",
    "ProjectLeaseTable",
    "TERMINAL_STATES",
]

"""
Job coordinator: drives Scanner -> Extractor -> GraphStore as one
cancellable, progress-reporting asynchronous run per project.
"""

from __future__ import annotations

import asyncio
import functools
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional

from loguru import logger

from spring_twin.analysis import (
    AnalysisOutcome,
    AnalysisPipeline,
    CancellationToken,
    EntityExtractor,
    PackageFilter,
    SourceScanner,
)
from spring_twin.architecture.graph_store import GraphStore
from spring_twin.architecture.neo4j_mirror import Neo4jGraphMirror
from spring_twin.errors import (
    AnalysisCancelledError,
    AnalysisTimeoutError,
    ConflictError,
    ExtractionError,
    NotFoundError,
    SpringTwinError,
)
from spring_twin.project.registry import ProjectRegistry

from .leases import ProjectLeaseTable
from .models import AnalysisJob, JobState
from .progress import EventBroker, ProgressEvent, ProgressTracker


class JobCoordinator:
    """asynchronous analysis job manager"""

    def __init__(
        self,
        registry: ProjectRegistry,
        graph_store: GraphStore,
        *,
        extractor: Optional[EntityExtractor] = None,
        mirror: Optional[Neo4jGraphMirror] = None,
        max_concurrent_jobs: int = 2,
        extraction_workers: int = 4,
        job_timeout_seconds: Optional[float] = 600.0,
        warning_rate_threshold: float = 0.25,
        progress_min_interval: float = 0.25,
        job_history_limit: int = 20,
        source_roots: Iterable[str] = ("src/main/java",),
        max_file_size_kb: int = 512,
    ) -> None:
        self.registry = registry
        self.graph_store = graph_store
        self.extractor = extractor or EntityExtractor()
        self.mirror = mirror
        self.max_concurrent_jobs = max(1, max_concurrent_jobs)
        self.extraction_workers = extraction_workers
        self.job_timeout_seconds = job_timeout_seconds
        self.warning_rate_threshold = warning_rate_threshold
        self.progress_min_interval = progress_min_interval
        self.job_history_limit = max(1, job_history_limit)
        self.source_roots = tuple(source_roots)
        self.max_file_size_kb = max_file_size_kb

        self.leases = ProjectLeaseTable()
        self.jobs: Dict[str, AnalysisJob] = {}
        self.events = EventBroker()
        self._tokens: Dict[str, CancellationToken] = {}
        self._tasks: Dict[str, asyncio.Task] = {}
        self._semaphore = asyncio.Semaphore(self.max_concurrent_jobs)
        self._executor: Optional[ThreadPoolExecutor] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @classmethod
    def from_settings(cls, settings, registry, graph_store, mirror=None) -> "JobCoordinator":
        return cls(
            registry,
            graph_store,
            extractor=EntityExtractor(
                default_produces=settings.default_produces,
                default_consumes=settings.default_consumes,
            ),
            mirror=mirror,
            max_concurrent_jobs=settings.max_concurrent_jobs,
            extraction_workers=settings.extraction_workers,
            job_timeout_seconds=settings.job_timeout_seconds,
            warning_rate_threshold=settings.warning_rate_threshold,
            progress_min_interval=settings.progress_min_interval_seconds,
            job_history_limit=settings.job_history_limit,
            source_roots=settings.source_roots,
            max_file_size_kb=settings.max_file_size_kb,
        )

    async def start(self) -> None:
        """start the coordinator"""
        self._loop = asyncio.get_running_loop()
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.max_concurrent_jobs, thread_name_prefix="analysis"
            )
        logger.info(f"Job coordinator started with max {self.max_concurrent_jobs} concurrent jobs")

    async def stop(self) -> None:
        """stop the coordinator, cancelling every active job"""
        for token in list(self._tokens.values()):
            token.cancel("Coordinator stopped")
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        if self._executor is not None:
            executor, self._executor = self._executor, None
            await asyncio.to_thread(executor.shutdown, True)
        logger.info("Job coordinator stopped")

    # job control

    async def trigger_analysis(
        self,
        project_id: str,
        include_packages: Optional[Iterable[str]] = None,
        exclude_packages: Optional[Iterable[str]] = None,
    ) -> str:
        """Queue an analysis run and return its job id.

        Configuration problems raise before any job is created; a project
        that already has a non-terminal job raises ConflictError.
        """
        project = self.registry.get_project(project_id)
        include = tuple(include_packages) if include_packages is not None else project.include_packages
        exclude = tuple(exclude_packages) if exclude_packages is not None else project.exclude_packages
        scanner = SourceScanner(
            project.root_path,
            PackageFilter(include, exclude),
            source_roots=self.source_roots,
            max_file_size_kb=self.max_file_size_kb,
        )
        pipeline = AnalysisPipeline(
            scanner,
            self.extractor,
            workers=self.extraction_workers,
            warning_rate_threshold=self.warning_rate_threshold,
        )

        job = AnalysisJob.queued(project_id, include, exclude)
        if not self.leases.acquire(project_id, job.id):
            active = self.leases.holder(project_id)
            raise ConflictError(
                f"Project {project_id} already has an active analysis job",
                details={"project_id": project_id, "active_job_id": active},
            )

        if self._loop is None:
            await self.start()
        self.jobs[job.id] = job
        self._tokens[job.id] = CancellationToken()
        self._publish(job, "Queued")
        logger.info(f"Analysis job {job.id} queued for project {project_id}")
        self._tasks[job.id] = asyncio.create_task(self._run_job(job.id, pipeline))
        return job.id

    def get_job(self, job_id: str) -> AnalysisJob:
        job = self.jobs.get(job_id)
        if job is None:
            raise NotFoundError(f"Job not found: {job_id}", details={"job_id": job_id})
        return job

    def get_job_status(self, job_id: str) -> Dict[str, Any]:
        return self.get_job(job_id).status()

    def list_jobs(self, project_id: Optional[str] = None) -> List[AnalysisJob]:
        jobs = [job for job in self.jobs.values() if project_id is None or job.project_id == project_id]
        return sorted(jobs, key=lambda job: job.created_at)

    def active_job(self, project_id: str) -> Optional[AnalysisJob]:
        job_id = self.leases.holder(project_id)
        return self.jobs.get(job_id) if job_id else None

    async def cancel_job(self, job_id: str) -> AnalysisJob:
        """Request cancellation; a queued job is cancelled immediately.

        A running job stops at its next check point. Cancelling a terminal
        job is a no-op that returns its record.
        """
        job = self.get_job(job_id)
        if job.terminal:
            return job
        token = self._tokens.get(job_id)
        if token is not None:
            token.cancel("Cancelled by request")
        if job.state is JobState.QUEUED:
            job = self._finish(
                job_id,
                JobState.CANCELLED,
                error_kind=AnalysisCancelledError.kind,
                error_message="Cancelled before start",
            )
        logger.info(f"Cancellation requested for job {job_id}")
        return job

    async def wait_for(self, job_id: str, timeout: Optional[float] = None) -> AnalysisJob:
        """Wait until the job is terminal or ``timeout`` elapses; returns the latest record."""
        job = self.get_job(job_id)
        task = self._tasks.get(job_id)
        if job.terminal or task is None:
            return job
        await asyncio.wait({task}, timeout=timeout)
        return self.get_job(job_id)

    def subscribe(self, job_id: str) -> AsyncIterator[ProgressEvent]:
        """Stream progress events for a job, ending with its terminal event."""
        job = self.get_job(job_id)
        return self.events.stream(job_id, initial=self._event(job))

    async def delete_project(self, project_id: str) -> None:
        self.registry.get_project(project_id)
        active = self.active_job(project_id)
        if active is not None:
            raise ConflictError(
                f"Project {project_id} has an active analysis job",
                details={"project_id": project_id, "active_job_id": active.id},
            )
        await self.graph_store.drop(project_id)
        if self.mirror is not None:
            try:
                await self.mirror.drop_project(project_id)
            except Exception as e:
                logger.error(f"Failed to drop project {project_id} from Neo4j: {e}")
        self.registry.delete_project(project_id)
        for job_id in [job.id for job in self.jobs.values() if job.project_id == project_id]:
            self.jobs.pop(job_id, None)

    # execution

    async def _run_job(self, job_id: str, pipeline: AnalysisPipeline) -> None:
        token = self._tokens[job_id]
        try:
            async with self._semaphore:
                job = self.jobs.get(job_id)
                if job is None or job.terminal:
                    return
                self._transition(job_id, JobState.RUNNING)
                await self._execute(job_id, pipeline, token)
        except AnalysisCancelledError as exc:
            self._finish(job_id, JobState.CANCELLED, error_kind=exc.kind, error_message=str(exc))
        except AnalysisTimeoutError as exc:
            self._finish(job_id, JobState.FAILED, error_kind=exc.kind, error_message=str(exc))
        except ExtractionError as exc:
            warnings = tuple(exc.details.get("warnings", ()))
            self._finish(
                job_id, JobState.FAILED, error_kind=exc.kind, error_message=str(exc), warnings=warnings
            )
        except SpringTwinError as exc:
            self._finish(job_id, JobState.FAILED, error_kind=exc.kind, error_message=str(exc))
        except asyncio.CancelledError:
            token.cancel("Coordinator stopped")
            self._finish(
                job_id,
                JobState.CANCELLED,
                error_kind=AnalysisCancelledError.kind,
                error_message="Coordinator stopped",
            )
            raise
        except Exception as exc:
            logger.exception(f"Analysis job {job_id} failed unexpectedly")
            self._finish(job_id, JobState.FAILED, error_kind=type(exc).__name__, error_message=str(exc))
        finally:
            self._tasks.pop(job_id, None)
            self._tokens.pop(job_id, None)

    async def _execute(self, job_id: str, pipeline: AnalysisPipeline, token: CancellationToken) -> None:
        loop = asyncio.get_running_loop()
        loop_thread = threading.get_ident()

        def emit(value: int) -> None:
            if threading.get_ident() == loop_thread:
                self._apply_progress(job_id, value)
            else:
                loop.call_soon_threadsafe(self._apply_progress, job_id, value)

        tracker = ProgressTracker(emit, min_interval=self.progress_min_interval)
        run = functools.partial(pipeline.run, token, on_total=tracker.set_total, on_unit=tracker.advance)
        work = loop.run_in_executor(self._executor, run)
        try:
            done, _ = await asyncio.wait({work}, timeout=self.job_timeout_seconds)
        except asyncio.CancelledError:
            token.cancel("Coordinator stopped")
            raise
        if not done:
            token.cancel("Timed out")
            try:
                await work
            except AnalysisCancelledError:
                pass
            raise AnalysisTimeoutError(
                f"Analysis exceeded its {self.job_timeout_seconds:g}s budget",
                details={"timeout_seconds": self.job_timeout_seconds},
            )
        outcome: AnalysisOutcome = work.result()

        token.raise_if_cancelled()
        project_id = self.jobs[job_id].project_id
        commit = await self.graph_store.commit(project_id, outcome.candidate)
        warnings = [w.to_dict() for w in outcome.warnings]

        if self.mirror is not None and commit.changed:
            try:
                await self.mirror.write_snapshot(self.graph_store.current(project_id))
            except Exception as e:
                logger.error(f"Neo4j mirror write failed for project {project_id}: {e}")
                warnings.append({"file": "neo4j", "error": f"Mirror write failed: {e}"})

        tracker.complete()
        self._finish(
            job_id,
            JobState.COMPLETED,
            warnings=tuple(warnings),
            result={**outcome.summary(), "commit": commit.to_dict()},
        )

    # state bookkeeping

    def _apply_progress(self, job_id: str, value: int) -> None:
        job = self.jobs.get(job_id)
        if job is None or job.state is not JobState.RUNNING or value <= job.progress:
            return
        job = job.with_progress(value)
        self.jobs[job_id] = job
        self._publish(job)

    def _transition(self, job_id: str, state: JobState, **changes: Any) -> AnalysisJob:
        job = self.jobs[job_id].transition(state, **changes)
        self.jobs[job_id] = job
        logger.info(f"Job {job_id} -> {state.value}")
        self._publish(job)
        return job

    def _finish(self, job_id: str, state: JobState, **changes: Any) -> Optional[AnalysisJob]:
        job = self.jobs.get(job_id)
        if job is None or job.terminal:
            return job
        job = self._transition(job_id, state, **changes)
        self.leases.release(job.project_id, job_id)
        if job.error_kind and state is JobState.FAILED:
            logger.error(f"Job {job_id} failed with {job.error_kind}: {job.error_message}")
        self._evict_history(job.project_id)
        return job

    def _evict_history(self, project_id: str) -> None:
        # records whose task still waits for a worker slot are kept until it exits
        finished = [job for job in self.list_jobs(project_id) if job.terminal and job.id not in self._tasks]
        for job in finished[: max(0, len(finished) - self.job_history_limit)]:
            self.jobs.pop(job.id, None)

    def _event(self, job: AnalysisJob, message: str = "") -> ProgressEvent:
        if not message and job.error_message:
            message = job.error_message
        return ProgressEvent(job.id, job.project_id, job.state.value, job.progress, message)

    def _publish(self, job: AnalysisJob, message: str = "") -> None:
        self.events.publish(self._event(job, message))


__all__ = ["JobCoordinator"]

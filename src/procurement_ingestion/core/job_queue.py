# ============================================================================
# src/procurement_ingestion/core/job_queue.py
# ============================================================================
"""
Extraction Job Queue

Fire-and-forget submission of extraction jobs onto the running event loop.
Each job runs as its own asyncio task; a semaphore bounds how many are in
flight at once.

Completion is observed through the persisted document status, not through
the queue. drain() exists for tests and graceful shutdown.

Not provided on purpose: retries (resubmit a new job) and deduplication
(callers submit at most one job per document).
"""

from typing import Dict, List, Optional
import asyncio
import logging

from .context.extraction_job import ExtractionJob
from .extraction_pipeline import ExtractionPipeline, JobOutcome

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENT_JOBS = 4


class ExtractionJobQueue:
    """
    Bounded-concurrency job runner.

    Usage:
        queue = ExtractionJobQueue(pipeline, max_concurrent_jobs=4)
        job_id = queue.submit(job)   # returns immediately
        ...
        await queue.drain()          # shutdown / tests
    """

    def __init__(self, pipeline: ExtractionPipeline, max_concurrent_jobs: Optional[int] = None):
        self.pipeline = pipeline
        self.max_concurrent_jobs = max(1, int(max_concurrent_jobs or DEFAULT_MAX_CONCURRENT_JOBS))
        self._semaphore = asyncio.Semaphore(self.max_concurrent_jobs)
        self._tasks: Dict[str, asyncio.Task] = {}

    @property
    def pending_count(self) -> int:
        """Jobs submitted and not yet finished (running or waiting for a slot)."""
        return sum(1 for task in self._tasks.values() if not task.done())

    def submit(self, job: ExtractionJob) -> str:
        """
        Schedule a job and return its id immediately.

        Must be called from code running on the event loop.
        """
        loop = asyncio.get_running_loop()
        task = loop.create_task(self._run(job), name=f"extraction-{job.job_id}")
        self._tasks[job.job_id] = task
        task.add_done_callback(lambda _: self._tasks.pop(job.job_id, None))
        logger.info(f"Submitted job {job.job_id} for document {job.document_id}")
        return job.job_id

    async def _run(self, job: ExtractionJob) -> Optional[JobOutcome]:
        async with self._semaphore:
            try:
                outcome = await self.pipeline.run(job)
            except Exception:
                # pipeline.run persists its own failures; this is a bug path
                logger.exception(f"Job {job.job_id} crashed outside the pipeline")
                return None

        if outcome.status is None:
            logger.warning(f"Job {job.job_id} did not start: {outcome.error}")
        else:
            logger.info(
                f"Job {job.job_id} finished {outcome.status.value} in {outcome.duration:.2f}s"
                + (f": {outcome.error}" if outcome.error else "")
            )
        return outcome

    async def drain(self) -> List[JobOutcome]:
        """
        Wait for every in-flight job, including jobs submitted while draining.

        Returns:
            Outcomes of the jobs that finished during the drain
        """
        outcomes: List[JobOutcome] = []
        seen = set()
        while True:
            waiting = {job_id: task for job_id, task in self._tasks.items() if job_id not in seen}
            if not waiting:
                break
            seen.update(waiting)
            results = await asyncio.gather(*waiting.values(), return_exceptions=True)
            outcomes.extend(r for r in results if isinstance(r, JobOutcome))
        return outcomes

"""
Bounded-concurrency queue scheduler.

Drains the job store in batches: take the first K pending jobs in store
order, mark them generating, run one generation per job concurrently, wait
for the whole batch to settle, repeat until nothing is pending.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional

from shared.config import settings
from shared.logging import get_logger
from shared.models.campaign import ImageArtifact, ShotJob

from .store import JobStore

logger = get_logger("job_queue.scheduler")

ImageGenerator = Callable[[str], Awaitable[ImageArtifact]]
BatchCallback = Callable[[Dict[str, Any]], None]


class QueueScheduler:
    """
    Drives every pending job to completed or failed.

    Only one drain runs at a time. trigger() while a drain is active is a
    no-op; the active drain re-reads the store after every batch, so jobs
    re-armed by a retry are still picked up.
    """

    def __init__(
        self,
        store: JobStore,
        generate: ImageGenerator,
        concurrency: Optional[int] = None,
        on_complete: Optional[Callable[[], None]] = None,
        on_batch: Optional[BatchCallback] = None
    ) -> None:
        self._store = store
        self._generate = generate
        self.concurrency = settings.generation_concurrency if concurrency is None else concurrency
        if self.concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._on_complete = on_complete
        self._on_batch = on_batch
        self._draining = False
        self._task: Optional[asyncio.Task] = None

    @property
    def is_draining(self) -> bool:
        return self._draining

    def trigger(self) -> asyncio.Task:
        """
        Start a drain unless one is already running.

        Must be called from inside a running event loop.

        Returns:
            The task of the active drain

        Raises:
            RuntimeError: If no event loop is running; scheduler state is unchanged
        """
        if self._draining and self._task is not None and not self._task.done():
            logger.debug("Drain already in progress, ignoring trigger")
            return self._task

        task = asyncio.get_running_loop().create_task(self._drain())
        self._task = task
        self._draining = True
        return task

    async def wait(self) -> None:
        """Wait for the current drain, and any drain it re-triggers, to finish."""
        while self._task is not None:
            task = self._task
            await task
            if self._task is task:
                break

    async def _drain(self) -> None:
        batches = 0
        try:
            while True:
                pending = self._store.pending_indices()
                if not pending:
                    break

                batch = self._claim(pending[:self.concurrency])
                if not batch:
                    continue

                batches += 1
                job_ids = [job.id for job in batch]
                logger.info(
                    f"Dispatching batch {batches} with {len(batch)} jobs",
                    extra={"batch": batches, "job_ids": ",".join(job_ids), "remaining_pending": len(pending) - len(batch)}
                )
                self._emit("batch_started", batch=batches, job_ids=job_ids)

                await asyncio.gather(*(self._run_job(job) for job in batch))

                self._emit("batch_settled", batch=batches, job_ids=job_ids)
        finally:
            self._draining = False

        logger.info(
            f"Queue drained after {batches} batches",
            extra={"batches": batches, "progress": self._store.progress().label}
        )
        if self._on_complete is not None:
            self._on_complete()

    def _claim(self, indices: List[int]) -> List[ShotJob]:
        """Mark jobs pending -> generating; jobs that are no longer pending are skipped."""
        snapshot = self._store.snapshot()
        claimed = []
        for index in indices:
            job = snapshot[index]
            if self._store.apply_transition(job.id, {"pending"}, "generating", attempts=job.attempts + 1):
                claimed.append(self._store.get(job.id))
        return claimed

    async def _run_job(self, job: ShotJob) -> None:
        try:
            artifact = await self._generate(job.prompt)
            self._store.apply_transition(job.id, {"generating"}, "completed", artifact=artifact)
        except Exception as e:
            # Job-level failure: recorded on the job, never raised to the drain
            message = str(e) or type(e).__name__
            logger.warning(
                f"Generation failed for job {job.id}: {message}",
                extra={"job_id": job.id, "index": job.index, "attempts": job.attempts, "error": message}
            )
            self._store.apply_transition(job.id, {"generating"}, "failed", error=message)
            return

        logger.info(
            f"Generated shot {job.index} ({job.id})",
            extra={"job_id": job.id, "index": job.index, "attempts": job.attempts}
        )

    def _emit(self, event_type: str, **data: Any) -> None:
        if self._on_batch is not None:
            self._on_batch({"event_type": event_type, "data": data})

"""
In-memory job store.

Ordered collection of shot jobs. Every status change goes through
apply_transition, which only applies when the job is in an expected status.
"""

import time
from typing import Any, Callable, Collection, Dict, Iterable, List, Optional, Tuple

from shared.errors import StoreError
from shared.logging import get_logger
from shared.models.campaign import CampaignProgress, JobStatus, JOB_STATUSES, ShotJob

logger = get_logger("job_queue.store")

JobListener = Callable[[ShotJob], None]


class JobStore:
    """Ordered shot jobs plus the guarded transition that mutates them."""

    def __init__(self) -> None:
        self._jobs: List[ShotJob] = []
        self._positions: Dict[str, int] = {}
        self._listeners: List[JobListener] = []

    def __len__(self) -> int:
        return len(self._jobs)

    def seed(self, prompts: Iterable[str]) -> "JobStore":
        """
        Create one pending job per prompt, in input order.

        Args:
            prompts: Shot prompts in campaign order

        Returns:
            The store itself

        Raises:
            StoreError: If the store still holds jobs from a previous run
        """
        if self._jobs:
            raise StoreError(
                f"Job store already holds {len(self._jobs)} jobs; clear it before seeding"
            )

        created_ms = int(time.time() * 1000)
        self._jobs = [
            ShotJob.create(index=index, prompt=prompt, created_ms=created_ms)
            for index, prompt in enumerate(prompts)
        ]
        self._positions = {job.id: job.index for job in self._jobs}

        logger.info(f"Seeded job store with {len(self._jobs)} jobs", extra={"job_count": len(self._jobs)})
        return self

    def clear(self) -> None:
        self._jobs = []
        self._positions = {}

    def get(self, job_id: str) -> Optional[ShotJob]:
        position = self._positions.get(job_id)
        return self._jobs[position] if position is not None else None

    def apply_transition(
        self,
        job_id: str,
        from_statuses: Collection[JobStatus],
        to: JobStatus,
        **patch: Any
    ) -> bool:
        """
        Move a job to `to` if its current status is in `from_statuses`.

        A non-matching status or an unknown id is a silent no-op.

        Args:
            job_id: Job to update
            from_statuses: Statuses the job must currently be in
            to: Target status
            **patch: Extra fields to merge (artifact, error, attempts)

        Returns:
            True if the transition was applied
        """
        position = self._positions.get(job_id)
        if position is None:
            logger.debug(f"Ignoring transition for unknown job {job_id}", extra={"job_id": job_id})
            return False

        current = self._jobs[position]
        if current.status not in from_statuses:
            logger.debug(
                f"Skipping transition {current.status} -> {to} for job {job_id}",
                extra={"job_id": job_id, "status": current.status, "target": to}
            )
            return False

        fields = dict(current)
        fields.update(patch)
        fields["status"] = to
        # artifact only survives on completed jobs, error only on failed ones
        if to != "completed":
            fields["artifact"] = None
        if to != "failed":
            fields["error"] = None
        fields["id"] = current.id
        fields["index"] = current.index
        fields["prompt"] = current.prompt

        updated = ShotJob(**fields)
        self._jobs[position] = updated
        self._notify(updated)
        return True

    def snapshot(self) -> Tuple[ShotJob, ...]:
        """Current jobs in store order (immutable view)."""
        return tuple(self._jobs)

    def pending_indices(self) -> List[int]:
        return [job.index for job in self._jobs if job.status == "pending"]

    def count(self, status: JobStatus) -> int:
        return sum(1 for job in self._jobs if job.status == status)

    def progress(self) -> CampaignProgress:
        counts = {status: 0 for status in JOB_STATUSES}
        for job in self._jobs:
            counts[job.status] += 1
        return CampaignProgress(total=len(self._jobs), **counts)

    def is_settled(self) -> bool:
        """True when no job is pending or generating."""
        return all(job.is_terminal for job in self._jobs)

    def subscribe(self, listener: JobListener) -> Callable[[], None]:
        """
        Register a listener called with each job record after a transition.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, job: ShotJob) -> None:
        for listener in list(self._listeners):
            try:
                listener(job)
            except Exception as e:
                logger.error(
                    f"Job listener failed for job {job.id}: {str(e)}",
                    extra={"job_id": job.id},
                    exc_info=True
                )

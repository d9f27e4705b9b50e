"""
Campaign controller.

Owns the campaign run state machine:

    idle -> analyzing -> generating -> complete
                 \\-> error
    complete | error --retry--> generating
    complete | error --new campaign--> idle

and the single job store the queue scheduler drains.
"""

import asyncio
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from shared.config import settings
from shared.errors import InvalidStateError, ValidationError
from shared.logging import get_logger, set_campaign_id
from shared.models.campaign import (
    CampaignProgress,
    CampaignState,
    ReferenceImage,
    ReferenceMaterial,
    Scenario,
    ShotJob,
)
from shared.validation import validate_guidance, validate_reference_images
from modules.job_queue import JobStore, QueueScheduler

from .client import GenerationClient, RemoteGenerationClient

logger = get_logger("campaign.controller")

CampaignListener = Callable[[Dict[str, Any]], None]

RETRYABLE_STATES = (CampaignState.COMPLETE, CampaignState.ERROR, CampaignState.GENERATING)
RESETTABLE_STATES = (CampaignState.IDLE, CampaignState.COMPLETE, CampaignState.ERROR)


class CampaignController:
    """
    Drives one ad campaign at a time from reference intake to rendered shots.

    Events are published to subscribers as {"event_type": ..., "data": {...}}
    dicts: "state_changed", "job_updated", "batch_started", "batch_settled".
    """

    def __init__(
        self,
        client: Optional[GenerationClient] = None,
        concurrency: Optional[int] = None,
        shot_count: Optional[int] = None
    ) -> None:
        self.shot_count = settings.shot_count if shot_count is None else shot_count
        if self.shot_count < 1:
            raise ValueError("shot_count must be at least 1")
        self._client = client or RemoteGenerationClient(shot_count=self.shot_count)
        self._store = JobStore()
        self._scheduler = QueueScheduler(
            self._store,
            self._client.synthesize_image,
            concurrency=concurrency,
            on_complete=self._on_queue_drained,
            on_batch=self._publish
        )
        self._store.subscribe(self._on_job_updated)
        self._listeners: List[CampaignListener] = []

        self._state = CampaignState.IDLE
        self._error_message: Optional[str] = None
        self._scenario: Optional[Scenario] = None
        self._reference = ReferenceMaterial()
        self._campaign_id: Optional[str] = None

    # Read-only surface

    @property
    def state(self) -> CampaignState:
        return self._state

    @property
    def error_message(self) -> Optional[str]:
        return self._error_message

    @property
    def scenario(self) -> Optional[Scenario]:
        return self._scenario

    @property
    def reference_material(self) -> ReferenceMaterial:
        return self._reference

    @property
    def campaign_id(self) -> Optional[str]:
        return self._campaign_id

    @property
    def concurrency(self) -> int:
        return self._scheduler.concurrency

    @property
    def jobs(self) -> Tuple[ShotJob, ...]:
        return self._store.snapshot()

    @property
    def progress(self) -> CampaignProgress:
        return self._store.progress()

    # Intake (idle only)

    def load_reference_images(self, images: Iterable[ReferenceImage]) -> ReferenceMaterial:
        """
        Accept a new set of reference images, replacing any previous upload.

        Raises:
            InvalidStateError: If the campaign is not idle
            ValidationError: If the batch is rejected; previous material is kept
        """
        self._require_state((CampaignState.IDLE,), "upload reference images")
        validated = validate_reference_images(images, max_images=settings.max_reference_images)
        self._reference = ReferenceMaterial(images=validated, guidance=self._reference.guidance)
        logger.info(
            f"Accepted {len(validated)} reference images",
            extra={"image_count": len(validated), "total_bytes": sum(image.size_bytes for image in validated)}
        )
        return self._reference

    def set_guidance(self, guidance: Optional[str]) -> str:
        """Set free-text guidance for the next scenario synthesis."""
        self._require_state((CampaignState.IDLE,), "change guidance")
        cleaned = validate_guidance(guidance)
        self._reference = ReferenceMaterial(images=self._reference.images, guidance=cleaned)
        return cleaned

    def clear_reference_material(self) -> None:
        """Drop uploaded images and guidance before a campaign starts."""
        self._require_state((CampaignState.IDLE,), "clear reference material")
        self._reference = ReferenceMaterial()

    # Campaign flow

    async def start(
        self,
        images: Optional[Iterable[ReferenceImage]] = None,
        guidance: Optional[str] = None
    ) -> Optional[Scenario]:
        """
        Synthesize a scenario from the reference material and start generation.

        Returns once the job store is seeded and the scheduler is running; use
        wait_until_settled() to wait for the shots.

        Args:
            images: Optional images to load first (same rules as load_reference_images)
            guidance: Optional guidance to set first

        Returns:
            The scenario, or None if synthesis failed (state is then `error`)

        Raises:
            InvalidStateError: If the campaign is not idle
            ValidationError: If images or guidance are rejected (nothing is
                replaced), or no reference images are loaded
        """
        self._require_state((CampaignState.IDLE,), "start a campaign")
        if images is not None or guidance is not None:
            validated = (
                self._reference.images if images is None
                else validate_reference_images(images, max_images=settings.max_reference_images)
            )
            cleaned = self._reference.guidance if guidance is None else validate_guidance(guidance)
            self._reference = ReferenceMaterial(images=validated, guidance=cleaned)
        if self._reference.is_empty:
            raise ValidationError("Upload at least one reference image before starting")

        self._campaign_id = uuid.uuid4().hex
        set_campaign_id(self._campaign_id)
        self._set_state(CampaignState.ANALYZING)

        try:
            scenario = await self._client.synthesize_scenario(
                [image.data for image in self._reference.images],
                self._reference.guidance
            )
        except asyncio.CancelledError:
            logger.warning("Scenario synthesis cancelled")
            self._set_state(CampaignState.ERROR, error_message="Scenario synthesis was cancelled")
            raise
        except Exception as e:
            # Scenario failures end the run but never the process
            message = str(e) or "Scenario synthesis failed"
            logger.error(f"Scenario synthesis failed: {message}", extra={"error_type": type(e).__name__})
            self._set_state(CampaignState.ERROR, error_message=message)
            return None

        self._scenario = scenario
        self._store.seed(scenario.image_prompts)
        logger.info(
            f"Scenario '{scenario.title}' ready with {len(scenario.image_prompts)} shots",
            extra={"title": scenario.title, "shot_count": len(scenario.image_prompts)}
        )
        self._enter_generating()
        return scenario

    async def wait_until_settled(self) -> CampaignState:
        """Wait for the scheduler to finish all pending work."""
        await self._scheduler.wait()
        return self._state

    async def run(
        self,
        images: Iterable[ReferenceImage],
        guidance: Optional[str] = None
    ) -> CampaignState:
        """Start a campaign and wait until every shot is completed or failed."""
        await self.start(images, guidance)
        if self._state == CampaignState.GENERATING:
            await self.wait_until_settled()
        return self._state

    # Retries

    def retry_one(self, job_id: str) -> bool:
        """
        Re-queue one failed (or completed) job without touching the others.

        Returns:
            True if the job was re-queued; False if it is already pending or generating

        Raises:
            InvalidStateError: If no campaign has reached generation, or no
                event loop is running
            ValidationError: If the job id is unknown
        """
        self._require_state(RETRYABLE_STATES, "retry a shot")
        self._require_event_loop("retry a shot")
        if self._store.get(job_id) is None:
            raise ValidationError(f"Unknown shot {job_id}")

        if not self._store.apply_transition(job_id, {"failed", "completed"}, "pending"):
            return False

        logger.info(f"Retrying shot {job_id}", extra={"job_id": job_id})
        self._enter_generating()
        return True

    def retry_all(self) -> int:
        """
        Re-queue every failed job; completed jobs are left alone.

        Returns:
            Number of jobs re-queued

        Raises:
            InvalidStateError: If no campaign has reached generation, or no
                event loop is running
        """
        self._require_state(RETRYABLE_STATES, "retry failed shots")
        self._require_event_loop("retry failed shots")
        retried = [
            job.id for job in self._store.snapshot()
            if job.status == "failed" and self._store.apply_transition(job.id, {"failed"}, "pending")
        ]
        if retried:
            logger.info(f"Retrying {len(retried)} failed shots", extra={"retry_count": len(retried)})
            self._enter_generating()
        return len(retried)

    def new_campaign(self) -> None:
        """
        Reset to idle: clear jobs, scenario, reference material and error.

        Raises:
            InvalidStateError: While analysis or generation is in progress
        """
        self._require_state(RESETTABLE_STATES, "start a new campaign")
        self._store.clear()
        self._scenario = None
        self._reference = ReferenceMaterial()
        self._campaign_id = None
        set_campaign_id(None)
        self._set_state(CampaignState.IDLE)

    # Export

    def export_artifacts(self, directory: Path, prefix: Optional[str] = None) -> List[Path]:
        """
        Write every completed shot to `directory` as {prefix}-{job_id}{ext}.

        Returns:
            Paths written, in shot order
        """
        prefix = prefix or settings.export_prefix
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)

        written = []
        for job in self._store.snapshot():
            if job.status != "completed" or job.artifact is None:
                continue
            path = directory / f"{prefix}-{job.id}{job.artifact.extension}"
            path.write_bytes(job.artifact.data)
            written.append(path)

        logger.info(f"Exported {len(written)} shots to {directory}", extra={"exported": len(written)})
        return written

    # Observers

    def subscribe(self, listener: CampaignListener) -> Callable[[], None]:
        """Register a campaign event listener; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Internals

    def _require_state(self, allowed: Sequence[CampaignState], action: str) -> None:
        if self._state not in allowed:
            raise InvalidStateError(
                f"Cannot {action} while the campaign is {self._state.value}",
                job_id=self._campaign_id
            )

    def _require_event_loop(self, action: str) -> None:
        # The scheduler can only be re-armed from inside the running loop
        try:
            asyncio.get_running_loop()
        except RuntimeError as e:
            raise InvalidStateError(
                f"Cannot {action} outside a running event loop",
                job_id=self._campaign_id
            ) from e

    def _set_state(self, state: CampaignState, error_message: Optional[str] = None) -> None:
        previous = self._state
        self._state = state
        self._error_message = error_message if state == CampaignState.ERROR else None
        if previous != state:
            logger.info(
                f"Campaign state {previous.value} -> {state.value}",
                extra={"previous_state": previous.value, "state": state.value}
            )
        self._publish({
            "event_type": "state_changed",
            "data": {"previous": previous.value, "state": state.value, "error": self._error_message}
        })

    def _enter_generating(self) -> None:
        if self._state != CampaignState.GENERATING:
            self._set_state(CampaignState.GENERATING)
        self._scheduler.trigger()

    def _on_queue_drained(self) -> None:
        if self._state != CampaignState.GENERATING:
            return
        # A retry may have re-armed a job after the drain's last check
        if not self._store.is_settled():
            self._scheduler.trigger()
            return
        progress = self._store.progress()
        logger.info(
            f"Campaign complete: {progress.completed} completed, {progress.failed} failed",
            extra={"completed": progress.completed, "failed": progress.failed, "total": progress.total}
        )
        self._set_state(CampaignState.COMPLETE)

    def _on_job_updated(self, job: ShotJob) -> None:
        self._publish({
            "event_type": "job_updated",
            "data": {"job_id": job.id, "index": job.index, "status": job.status, "error": job.error}
        })

    def _publish(self, event: Dict[str, Any]) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(
                    f"Campaign listener failed on {event.get('event_type')}: {str(e)}",
                    exc_info=True
                )

"""
Error taxonomy.

All campaign errors derive from PipelineError so callers can catch the
whole family at the controller boundary.
"""

from typing import Optional


class PipelineError(Exception):
    """Base error carrying an optional campaign/job identifier."""

    def __init__(self, message: str, job_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.job_id = job_id

    def __str__(self) -> str:
        return self.message


class ConfigError(PipelineError):
    """Missing or invalid configuration."""


class ValidationError(PipelineError):
    """User input rejected before it is accepted (intake errors)."""


class InvalidStateError(PipelineError):
    """Operation is not legal in the current campaign run state."""


class StoreError(PipelineError):
    """Job store misuse, e.g. seeding a store that was not cleared."""


class GenerationError(PipelineError):
    """Non-retryable failure from a remote generation call."""


class ScenarioError(GenerationError):
    """Scenario synthesis failed; fatal to the current campaign run."""


class ScenarioDecodeError(ScenarioError):
    """Scenario response could not be decoded into the expected shape."""


class RetryableError(PipelineError):
    """Transient failure; safe to retry the same call."""


class RateLimitError(RetryableError):
    """Remote service throttled the request."""

    def __init__(
        self,
        message: str,
        retry_after: Optional[float] = None,
        job_id: Optional[str] = None
    ):
        super().__init__(message, job_id=job_id)
        self.retry_after = retry_after

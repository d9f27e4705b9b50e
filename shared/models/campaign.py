"""
Campaign data models.

Defines Scenario, ShotJob, ImageArtifact, reference material and the
campaign run state used by the job queue and campaign controller.
"""

import base64
import time
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


JobStatus = Literal["pending", "generating", "completed", "failed"]

JOB_STATUSES: tuple = ("pending", "generating", "completed", "failed")
TERMINAL_STATUSES = frozenset({"completed", "failed"})

_MIME_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/webp": ".webp",
    "image/gif": ".gif",
}


class CampaignState(str, Enum):
    """Campaign run state."""

    IDLE = "idle"
    ANALYZING = "analyzing"
    GENERATING = "generating"
    COMPLETE = "complete"
    ERROR = "error"


class Scenario(BaseModel):
    """Synthesized campaign narrative plus the ordered per-shot prompts."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str
    concept: str
    target_audience: str = Field(alias="targetAudience")
    marketing_hook: str = Field(alias="marketingHook")
    image_prompts: List[str] = Field(alias="imagePrompts", description="One prompt per shot, in shot order")

    @field_validator("image_prompts")
    @classmethod
    def validate_image_prompts(cls, v: List[str]) -> List[str]:
        """Every shot prompt must carry text."""
        cleaned = [prompt.strip() for prompt in v]
        if any(not prompt for prompt in cleaned):
            raise ValueError("imagePrompts must not contain empty prompts")
        return cleaned


class ImageArtifact(BaseModel):
    """Rendered shot payload."""

    model_config = ConfigDict(frozen=True)

    data: bytes
    mime_type: str = "image/png"
    source_url: Optional[str] = None

    @property
    def extension(self) -> str:
        """File suffix matching the mime type."""
        return _MIME_EXTENSIONS.get(self.mime_type.lower(), ".png")

    def to_data_url(self) -> str:
        """Encode the payload as a data: URL for display."""
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


class ShotJob(BaseModel):
    """One unit of shot generation work."""

    model_config = ConfigDict(frozen=True)

    id: str
    index: int = Field(ge=0)
    prompt: str
    status: JobStatus = "pending"
    artifact: Optional[ImageArtifact] = None
    error: Optional[str] = None
    attempts: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def check_artifact_matches_status(self) -> "ShotJob":
        """artifact is present if and only if the job completed."""
        if (self.status == "completed") != (self.artifact is not None):
            raise ValueError(f"Job {self.id}: artifact must be set if and only if status is 'completed'")
        return self

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @classmethod
    def create(cls, index: int, prompt: str, created_ms: Optional[int] = None) -> "ShotJob":
        """Build a pending job whose id combines shot position and creation time."""
        if created_ms is None:
            created_ms = int(time.time() * 1000)
        return cls(id=f"shot-{index}-{created_ms}", index=index, prompt=prompt)


class CampaignProgress(BaseModel):
    """Read-only counts over the job store."""

    model_config = ConfigDict(frozen=True)

    total: int = 0
    pending: int = 0
    generating: int = 0
    completed: int = 0
    failed: int = 0

    @property
    def ratio(self) -> float:
        """Completed share of all jobs (0.0 when the store is empty)."""
        return self.completed / self.total if self.total else 0.0

    @property
    def label(self) -> str:
        return f"{self.completed}/{self.total}"


class ReferenceImage(BaseModel):
    """User-supplied reference image."""

    model_config = ConfigDict(frozen=True)

    filename: str
    content_type: str
    data: bytes

    @property
    def size_bytes(self) -> int:
        return len(self.data)


class ReferenceMaterial(BaseModel):
    """Validated reference images plus optional free-text guidance."""

    model_config = ConfigDict(frozen=True)

    images: List[ReferenceImage] = Field(default_factory=list)
    guidance: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.images

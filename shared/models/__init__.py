"""
Data models for the ad campaign pipeline.

This module exports all Pydantic models used across pipeline modules.
"""

from .campaign import (
    CampaignProgress,
    CampaignState,
    ImageArtifact,
    JobStatus,
    JOB_STATUSES,
    ReferenceImage,
    ReferenceMaterial,
    Scenario,
    ShotJob,
    TERMINAL_STATUSES,
)

__all__ = [
    "CampaignProgress",
    "CampaignState",
    "ImageArtifact",
    "JobStatus",
    "JOB_STATUSES",
    "ReferenceImage",
    "ReferenceMaterial",
    "Scenario",
    "ShotJob",
    "TERMINAL_STATUSES",
]

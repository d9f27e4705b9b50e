"""Shared fixtures for job queue tests."""

import asyncio

import pytest

from modules.job_queue.store import JobStore
from shared.errors import GenerationError
from shared.models.campaign import ImageArtifact

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.fixture
def artifact():
    """Sample rendered shot."""
    return ImageArtifact(data=PNG_BYTES, mime_type="image/png")


@pytest.fixture
def make_store():
    """Factory for a store seeded with `count` prompts named 'shot N'."""
    def _make(count: int = 5) -> JobStore:
        return JobStore().seed([f"shot {i}" for i in range(count)])
    return _make


@pytest.fixture
def recording_generator(artifact):
    """
    Factory for a fake image generator.

    The generator records every prompt, tracks the peak number of calls in
    flight, and fails prompts listed in `fail` (a prompt -> remaining
    failures mapping).
    """
    def _make(fail=None, delay: float = 0.01):
        remaining = dict(fail or {})
        state = {"calls": [], "in_flight": 0, "peak": 0}

        async def generate(prompt: str) -> ImageArtifact:
            state["calls"].append(prompt)
            state["in_flight"] += 1
            state["peak"] = max(state["peak"], state["in_flight"])
            try:
                await asyncio.sleep(delay)
                if remaining.get(prompt, 0) > 0:
                    remaining[prompt] -= 1
                    raise GenerationError(f"render failed for {prompt}")
                return artifact
            finally:
                state["in_flight"] -= 1

        generate.state = state
        return generate
    return _make

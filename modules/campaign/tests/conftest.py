"""Shared fixtures for campaign controller tests."""

import asyncio
from typing import Dict, List, Optional, Sequence

import pytest

from shared.errors import GenerationError, ScenarioError
from shared.models.campaign import ImageArtifact, ReferenceImage, Scenario

PNG_HEADER = b"\x89PNG\r\n\x1a\n"


class FakeGenerationClient:
    """In-memory stand-in for the remote generation client."""

    def __init__(
        self,
        scenario: Optional[Scenario] = None,
        scenario_error: Optional[Exception] = None,
        failures: Optional[Dict[str, int]] = None,
        delay: float = 0.005
    ) -> None:
        self.scenario = scenario
        self.scenario_error = scenario_error
        self.failures = dict(failures or {})
        self.delay = delay
        self.scenario_calls: List[tuple] = []
        self.image_calls: List[str] = []

    async def synthesize_scenario(self, images: Sequence[bytes], guidance: str) -> Scenario:
        self.scenario_calls.append((list(images), guidance))
        await asyncio.sleep(0)
        if self.scenario_error is not None:
            raise self.scenario_error
        return self.scenario

    async def synthesize_image(self, prompt: str) -> ImageArtifact:
        self.image_calls.append(prompt)
        await asyncio.sleep(self.delay)
        if self.failures.get(prompt, 0) > 0:
            self.failures[prompt] -= 1
            raise GenerationError(f"render failed for {prompt}")
        return ImageArtifact(data=PNG_HEADER + prompt.encode(), mime_type="image/png")


@pytest.fixture
def make_scenario():
    """Factory for a scenario with `count` prompts named 'shot N'."""
    def _make(count: int = 30) -> Scenario:
        return Scenario(
            title="Quiet Morning",
            concept="A slow morning turns bright with one cup of coffee.",
            targetAudience="Urban professionals, 25-40",
            marketingHook="Wake up to yourself.",
            imagePrompts=[f"shot {i}" for i in range(count)],
        )
    return _make


@pytest.fixture
def make_client(make_scenario):
    """Factory for a FakeGenerationClient with a default scenario."""
    def _make(count: int = 30, **kwargs) -> FakeGenerationClient:
        kwargs.setdefault("scenario", make_scenario(count))
        return FakeGenerationClient(**kwargs)
    return _make


@pytest.fixture
def reference_images():
    """Factory for `count` small valid PNG reference images."""
    def _make(count: int = 3, size: int = 128) -> List[ReferenceImage]:
        return [
            ReferenceImage(
                filename=f"product_{i}.png",
                content_type="image/png",
                data=PNG_HEADER + b"\x00" * size
            )
            for i in range(count)
        ]
    return _make


@pytest.fixture
def scenario_failure():
    return ScenarioError("Scenario synthesis failed: model unavailable")

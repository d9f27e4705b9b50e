"""
Remote generation client.

The controller talks to the generative models only through GenerationClient;
RemoteGenerationClient is the default OpenAI + Replicate implementation.
"""

from typing import Optional, Protocol, Sequence

from modules.scenario_planner import synthesize_scenario
from modules.shot_generator import generate_image
from shared.models.campaign import ImageArtifact, Scenario


class GenerationClient(Protocol):
    """Scenario and single-image synthesis."""

    async def synthesize_scenario(self, images: Sequence[bytes], guidance: str) -> Scenario:
        ...

    async def synthesize_image(self, prompt: str) -> ImageArtifact:
        ...


class RemoteGenerationClient:
    """Scenario synthesis via OpenAI, shot rendering via Replicate."""

    def __init__(self, shot_count: Optional[int] = None) -> None:
        self.shot_count = shot_count

    async def synthesize_scenario(self, images: Sequence[bytes], guidance: str) -> Scenario:
        return await synthesize_scenario(list(images), guidance, shot_count=self.shot_count)

    async def synthesize_image(self, prompt: str) -> ImageArtifact:
        return await generate_image(prompt)

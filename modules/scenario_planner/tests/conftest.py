"""
Shared test fixtures for scenario planner tests.
"""

import io
import json
from types import SimpleNamespace

import pytest
from PIL import Image


@pytest.fixture
def png_bytes():
    """Small real PNG reference image."""
    buffer = io.BytesIO()
    Image.new("RGB", (64, 48), color=(200, 120, 40)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def scenario_payload():
    """Factory for a scenario JSON object with `count` prompts."""
    def _make(count: int = 30) -> dict:
        return {
            "title": "First Light",
            "concept": "A tired commuter rediscovers the city through a new camera.",
            "targetAudience": "Young creatives, 20-35",
            "marketingHook": "See it again for the first time.",
            "imagePrompts": [f"Cinematic shot {i}, soft morning light, 35mm lens" for i in range(count)]
        }
    return _make


@pytest.fixture
def chat_response():
    """Factory for a chat completion shaped like the OpenAI SDK response."""
    def _make(content, refusal=None):
        message = SimpleNamespace(content=content, refusal=refusal)
        return SimpleNamespace(
            choices=[SimpleNamespace(message=message)],
            usage=SimpleNamespace(prompt_tokens=1200, completion_tokens=3400)
        )
    return _make


@pytest.fixture
def scenario_response(chat_response, scenario_payload):
    """Factory for a successful chat completion carrying a scenario."""
    def _make(count: int = 30):
        return chat_response(json.dumps(scenario_payload(count)))
    return _make

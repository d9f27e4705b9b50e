"""
Scenario response decoding.

Turns a chat completion into a Scenario. The text is located with a fixed
fallback order and anything that does not match a known shape is rejected.
"""

import json
import re
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from shared.errors import ScenarioDecodeError
from shared.logging import get_logger
from shared.models.campaign import Scenario

logger = get_logger("scenario_planner.decoder")

_FENCE_PATTERN = re.compile(r"```(?:json)?", re.IGNORECASE)


def extract_response_text(response: Any) -> str:
    """
    Pull the text out of a chat completion.

    Fallback order:
    1. choices[0].message.content as a string
    2. choices[0].message.content as a list of parts; text parts concatenated

    Args:
        response: Chat completion object returned by the OpenAI SDK

    Returns:
        Raw response text

    Raises:
        ScenarioDecodeError: If no known shape yields non-empty text
    """
    message = _first_message(response)
    content = getattr(message, "content", None) if message is not None else None

    text: Optional[str] = None
    if isinstance(content, str):
        text = content
    elif isinstance(content, list):
        pieces = []
        for part in content:
            if isinstance(part, dict):
                piece = part.get("text")
            else:
                piece = getattr(part, "text", None)
            if isinstance(piece, str):
                pieces.append(piece)
        text = "".join(pieces)

    if not text or not text.strip():
        refusal = getattr(message, "refusal", None) if message is not None else None
        if refusal:
            raise ScenarioDecodeError(f"Model refused to produce a scenario: {refusal}")
        logger.error("No text found in scenario response", extra={"response_type": type(response).__name__})
        raise ScenarioDecodeError("No text found in the scenario response")

    return text


def _first_message(response: Any) -> Any:
    choices = getattr(response, "choices", None)
    if not choices:
        return None
    return getattr(choices[0], "message", None)


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences around a JSON payload."""
    return _FENCE_PATTERN.sub("", text).strip()


def decode_scenario(text: str, expected_prompts: int) -> Scenario:
    """
    Decode response text into a Scenario.

    Args:
        text: Raw response text (may be wrapped in ```json fences)
        expected_prompts: Exact number of image prompts required

    Returns:
        Validated Scenario

    Raises:
        ScenarioDecodeError: If the text is not JSON, misses fields, or has the
            wrong number of prompts
    """
    payload = strip_code_fences(text)
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        logger.error(
            f"Scenario response is not valid JSON: {str(e)}",
            extra={"error_position": e.pos, "response_preview": payload[:500]}
        )
        raise ScenarioDecodeError(f"Scenario response is not valid JSON: {str(e)}") from e

    if not isinstance(data, dict):
        raise ScenarioDecodeError(
            f"Scenario response must be a JSON object, got {type(data).__name__}"
        )

    try:
        scenario = Scenario.model_validate(data)
    except PydanticValidationError as e:
        fields = ", ".join(".".join(str(loc) for loc in err["loc"]) for err in e.errors())
        raise ScenarioDecodeError(f"Scenario response has missing or invalid fields: {fields}") from e

    if len(scenario.image_prompts) != expected_prompts:
        raise ScenarioDecodeError(
            f"Scenario must contain exactly {expected_prompts} image prompts, "
            f"got {len(scenario.image_prompts)}"
        )

    return scenario

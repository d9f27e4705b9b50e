"""
LLM API integration for scenario synthesis.

Sends the reference images and guidance to an OpenAI vision model, requests
a JSON object, and decodes it into a Scenario.
"""

from typing import List, Optional

from openai import AsyncOpenAI
from openai import APIConnectionError, APIError, APIStatusError, APITimeoutError
from openai import RateLimitError as OpenAIRateLimitError

from shared.config import settings
from shared.errors import RateLimitError, RetryableError, ScenarioError
from shared.image_processing import normalize_reference_image
from shared.logging import get_logger
from shared.models.campaign import Scenario
from shared.retry import retry_with_backoff

from .decoder import decode_scenario, extract_response_text
from .prompts import build_system_prompt, build_user_content

logger = get_logger("scenario_planner")

_openai_client: Optional[AsyncOpenAI] = None


def get_openai_client() -> AsyncOpenAI:
    """Get or create OpenAI async client."""
    global _openai_client
    if _openai_client is None:
        _openai_client = AsyncOpenAI(api_key=settings.require_openai_api_key())
    return _openai_client


@retry_with_backoff(max_attempts=settings.retry_max_attempts, base_delay=settings.retry_base_delay)
async def _request_scenario(images: List[bytes], guidance: str, shot_count: int) -> Scenario:
    """
    Single scenario request; transient failures raise RetryableError.

    Raises:
        RetryableError: Rate limit, timeout, connection or 5xx error
        ScenarioError: Non-retryable API error, or a response that cannot be decoded
    """
    model = settings.scenario_model
    client = get_openai_client()

    logger.info(
        "Calling LLM for scenario synthesis",
        extra={"model": model, "image_count": len(images), "shot_count": shot_count, "has_guidance": bool(guidance)}
    )

    try:
        response = await client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": build_system_prompt(shot_count)},
                {"role": "user", "content": build_user_content(images, guidance)}
            ],
            response_format={"type": "json_object"},
            temperature=settings.scenario_temperature,
            max_tokens=settings.scenario_max_tokens,
            timeout=settings.scenario_timeout_seconds
        )
    except OpenAIRateLimitError as e:
        logger.warning(f"Rate limit error: {str(e)}")
        retry_after = e.response.headers.get("retry-after") if e.response is not None else None
        raise RateLimitError(
            f"Rate limit error: {str(e)}",
            retry_after=float(retry_after) if retry_after and retry_after.isdigit() else None
        ) from e
    except (APITimeoutError, APIConnectionError) as e:
        logger.warning(f"API connection problem: {str(e)}")
        raise RetryableError(f"API connection problem: {str(e)}") from e
    except APIStatusError as e:
        logger.error(f"OpenAI API error: {str(e)}", extra={"status_code": e.status_code})
        if e.status_code == 404:
            raise ScenarioError(
                f"Model '{model}' could not be found. Check that your account has access to it."
            ) from e
        if e.status_code >= 500:
            raise RetryableError(f"Retryable API error: {str(e)}") from e
        raise ScenarioError(f"OpenAI API error: {str(e)}") from e
    except APIError as e:
        logger.error(f"OpenAI API error: {str(e)}")
        raise ScenarioError(f"OpenAI API error: {str(e)}") from e

    scenario = decode_scenario(extract_response_text(response), expected_prompts=shot_count)

    usage = getattr(response, "usage", None)
    logger.info(
        "Scenario synthesized",
        extra={
            "model": model,
            "title": scenario.title,
            "prompt_count": len(scenario.image_prompts),
            "input_tokens": getattr(usage, "prompt_tokens", None),
            "output_tokens": getattr(usage, "completion_tokens", None)
        }
    )
    return scenario


async def synthesize_scenario(
    images: List[bytes],
    guidance: str = "",
    shot_count: Optional[int] = None
) -> Scenario:
    """
    Synthesize an ad campaign scenario from reference images.

    Args:
        images: Raw reference image payloads, in upload order
        guidance: Optional free-text direction from the user
        shot_count: Exact number of shot prompts required (default: settings.shot_count)

    Returns:
        Scenario with exactly `shot_count` image prompts

    Raises:
        ScenarioError: If the images cannot be processed, the service fails,
            or the response cannot be decoded (ScenarioDecodeError)
        ConfigError: If no OpenAI API key is configured
    """
    shot_count = settings.shot_count if shot_count is None else shot_count
    if not images:
        raise ScenarioError("At least one reference image is required for scenario synthesis")

    try:
        normalized = [
            normalize_reference_image(image, max_dimension=settings.reference_max_dimension)
            for image in images
        ]
    except ValueError as e:
        raise ScenarioError(f"Reference images could not be processed: {str(e)}") from e

    try:
        return await _request_scenario(normalized, guidance, shot_count)
    except RetryableError as e:
        raise ScenarioError(f"Scenario synthesis failed: {str(e)}") from e

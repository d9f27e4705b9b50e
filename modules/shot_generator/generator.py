"""
Shot image generation via Replicate API.

Runs the configured text-to-image model for one prompt, downloads the
output and returns it as an ImageArtifact.
"""

import asyncio
import time
from typing import Any, Dict, Optional

import httpx
import replicate
from replicate.exceptions import ModelError, ReplicateError

from shared.config import settings
from shared.errors import GenerationError, RateLimitError, RetryableError
from shared.logging import get_logger
from shared.models.campaign import ImageArtifact
from shared.retry import retry_with_backoff
from shared.validation import sniff_image_type

logger = get_logger("shot_generator.generator")

_client: Optional[replicate.Client] = None


def get_replicate_client() -> replicate.Client:
    """Get or create the Replicate client."""
    global _client
    if _client is None:
        _client = replicate.Client(api_token=settings.require_replicate_api_token())
    return _client


def build_model_input(prompt: str) -> Dict[str, Any]:
    """
    Model input for the configured image model.

    Flux models take an aspect ratio; SDXL-style models take explicit size
    and a negative prompt.
    """
    model = settings.image_model.lower()
    if "flux" in model:
        return {
            "prompt": prompt,
            "aspect_ratio": settings.image_aspect_ratio,
            "output_format": "png",
        }
    return {
        "prompt": prompt,
        "negative_prompt": "blurry, low quality, distorted, watermark, text overlay",
        "width": 1344,
        "height": 768,
        "num_outputs": 1,
    }


def extract_output_url(output: Any) -> str:
    """
    Resolve the image URL from a Replicate run result.

    Replicate returns a FileOutput (with .url), a plain URL string, or a
    list of either.

    Raises:
        GenerationError: If the output holds no URL
    """
    if isinstance(output, (list, tuple)):
        output = output[0] if output else None
    if not output:
        raise GenerationError("No output returned from Replicate API")

    url = getattr(output, "url", None)
    if url is None:
        url = str(output)
    url = str(url)
    if not url.startswith(("http://", "https://", "data:")):
        raise GenerationError(f"Unexpected output from Replicate API: {url[:100]}")
    return url


async def download_image(url: str) -> ImageArtifact:
    """Download a generated image and wrap it as an artifact."""
    async with httpx.AsyncClient(timeout=settings.image_download_timeout_seconds) as http_client:
        response = await http_client.get(url)
        response.raise_for_status()
        data = response.content

    if not data:
        raise GenerationError(f"Empty image downloaded from {url}")

    header_type = response.headers.get("content-type", "").split(";")[0].strip()
    mime_type = sniff_image_type(data) or (header_type if header_type.startswith("image/") else "image/png")
    return ImageArtifact(data=data, mime_type=mime_type, source_url=url)


@retry_with_backoff(max_attempts=settings.retry_max_attempts, base_delay=settings.retry_base_delay)
async def generate_image(prompt: str) -> ImageArtifact:
    """
    Generate a single shot image.

    Args:
        prompt: Shot prompt

    Returns:
        Downloaded image artifact

    Raises:
        RetryableError: Rate limit, server or network error after all retries
        GenerationError: Timeout, client error, or unusable output
        ConfigError: If no Replicate token is configured
    """
    if not prompt or not prompt.strip():
        raise GenerationError("Prompt cannot be empty")

    model = settings.image_model
    client = get_replicate_client()
    start_time = time.time()

    try:
        output = await asyncio.wait_for(
            asyncio.to_thread(client.run, model, input=build_model_input(prompt)),
            timeout=settings.image_timeout_seconds
        )
        artifact = await download_image(extract_output_url(output))

    except asyncio.TimeoutError:
        raise GenerationError(f"Timeout generating image after {settings.image_timeout_seconds:.0f}s")

    except httpx.HTTPStatusError as e:
        status = e.response.status_code
        if status == 429:
            retry_after = e.response.headers.get("Retry-After")
            raise RateLimitError(
                "Rate limit exceeded while generating image",
                retry_after=float(retry_after) if retry_after and retry_after.isdigit() else None
            ) from e
        if 400 <= status < 500:
            raise GenerationError(f"Client error generating image: {str(e)}") from e
        raise RetryableError(f"Server error generating image: {str(e)}") from e

    except httpx.RequestError as e:
        raise RetryableError(f"Network error generating image: {str(e)}") from e

    except ModelError as e:
        # Prediction ran and failed (e.g. safety filter); retrying the same prompt won't help
        raise GenerationError(f"Image model failed: {str(e)}") from e

    except ReplicateError as e:
        status = getattr(e, "status", None)
        if status == 429:
            raise RateLimitError(f"Rate limit exceeded: {str(e)}") from e
        if status == 404:
            raise GenerationError(
                f"Model not found: {model}. The model may not be available on Replicate "
                f"or the name is incorrect."
            ) from e
        if status is not None and 400 <= status < 500:
            raise GenerationError(f"Invalid prompt or settings: {str(e)}") from e
        raise RetryableError(f"Replicate error: {str(e)}") from e

    logger.info(
        f"Generated image in {time.time() - start_time:.2f}s",
        extra={"model": model, "generation_time": time.time() - start_time, "bytes": len(artifact.data)}
    )
    return artifact

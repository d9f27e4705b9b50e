"""
Image processing utilities.

Normalizes user-uploaded reference images into PNG payloads small enough to
send inline to the scenario model.
"""

import base64
import io
from PIL import Image, UnidentifiedImageError
from shared.logging import get_logger

logger = get_logger("image_processing")


def normalize_reference_image(image_bytes: bytes, max_dimension: int = 1024) -> bytes:
    """
    Convert a reference image to PNG, downscaling so the longest side fits.

    - Palette images with transparency become RGBA, other modes become RGB
    - Aspect ratio is preserved; images already within bounds keep their size

    Args:
        image_bytes: Raw image bytes (any format Pillow can read)
        max_dimension: Longest allowed side in pixels (default: 1024)

    Returns:
        PNG image bytes

    Raises:
        ValueError: If the image cannot be decoded
    """
    try:
        image = Image.open(io.BytesIO(image_bytes))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        logger.error(f"Failed to decode reference image: {str(e)}")
        raise ValueError(f"Failed to decode reference image: {str(e)}") from e

    if image.mode not in ("RGB", "RGBA"):
        if image.mode == "P" and "transparency" in image.info:
            image = image.convert("RGBA")
        else:
            image = image.convert("RGB")

    width, height = image.size
    longest = max(width, height)
    if longest > max_dimension:
        scale = max_dimension / longest
        new_size = (max(1, int(width * scale)), max(1, int(height * scale)))
        image = image.resize(new_size, Image.Resampling.LANCZOS)
        logger.debug(
            "Downscaled reference image",
            extra={"original_size": f"{width}x{height}", "new_size": f"{new_size[0]}x{new_size[1]}"}
        )

    output = io.BytesIO()
    image.save(output, format="PNG", optimize=True)
    return output.getvalue()


def to_data_url(image_bytes: bytes, mime_type: str = "image/png") -> str:
    """Encode image bytes as a base64 data: URL."""
    return f"data:{mime_type};base64,{base64.b64encode(image_bytes).decode('ascii')}"

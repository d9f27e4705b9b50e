"""
Validation utilities.

Intake validation for reference images and free-text guidance.
"""

import mimetypes
from typing import Iterable, List, Optional

from shared.config import settings
from shared.errors import ValidationError
from shared.models.campaign import ReferenceImage

# Leading bytes of the image formats the scenario model accepts
_IMAGE_SIGNATURES = (
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
)


def sniff_image_type(data: bytes) -> Optional[str]:
    """
    Detect an image mime type from the payload header.

    Args:
        data: Raw file bytes

    Returns:
        Mime type string, or None if the header is not a known image format
    """
    for signature, mime_type in _IMAGE_SIGNATURES:
        if data.startswith(signature):
            return mime_type
    if len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return None


def validate_reference_image(image: ReferenceImage, max_size_mb: Optional[int] = None) -> None:
    """
    Validate a single reference image.

    Args:
        image: Uploaded image
        max_size_mb: Maximum file size in MB (default: settings.max_reference_image_mb)

    Raises:
        ValidationError: If the file is empty, not an image, or too large
    """
    max_size_mb = settings.max_reference_image_mb if max_size_mb is None else max_size_mb

    if image.size_bytes == 0:
        raise ValidationError(f"{image.filename} is empty")

    declared = (image.content_type or "").lower()
    if not declared.startswith("image/") and sniff_image_type(image.data) is None:
        raise ValidationError(
            f"{image.filename} is not a valid image file. Please upload image files only."
        )

    max_size_bytes = max_size_mb * 1024 * 1024
    if image.size_bytes > max_size_bytes:
        raise ValidationError(
            f"{image.filename} is too large ({image.size_bytes / (1024 * 1024):.2f} MB). "
            f"Maximum is {max_size_mb} MB per image."
        )


def validate_reference_images(
    images: Iterable[ReferenceImage],
    max_images: Optional[int] = None
) -> List[ReferenceImage]:
    """
    Validate a batch of reference images.

    The whole batch is rejected if any single file fails.

    Args:
        images: Uploaded images, in upload order
        max_images: Maximum number of images (default: settings.max_reference_images)

    Returns:
        The images as a list, unchanged

    Raises:
        ValidationError: If the batch is empty, too large, or any file is invalid
    """
    max_images = settings.max_reference_images if max_images is None else max_images
    images = list(images)

    if not images:
        raise ValidationError("At least one reference image is required")

    if len(images) > max_images:
        raise ValidationError(f"You can upload up to {max_images} images at a time.")

    for image in images:
        validate_reference_image(image)

    return images


def validate_guidance(guidance: Optional[str], max_length: Optional[int] = None) -> str:
    """
    Validate optional free-text guidance.

    Args:
        guidance: User guidance text, may be None or empty
        max_length: Maximum length in characters (default: settings.max_guidance_length)

    Returns:
        Stripped guidance ("" if none)

    Raises:
        ValidationError: If guidance is not a string or is too long
    """
    if guidance is None:
        return ""
    if not isinstance(guidance, str):
        raise ValidationError("Guidance must be a string")

    max_length = settings.max_guidance_length if max_length is None else max_length
    guidance = guidance.strip()
    if len(guidance) > max_length:
        raise ValidationError(
            f"Guidance is too long ({len(guidance)} characters). Maximum is {max_length} characters."
        )
    return guidance


def guess_content_type(filename: str, data: bytes) -> str:
    """Best-effort mime type for a file read from disk."""
    sniffed = sniff_image_type(data)
    if sniffed:
        return sniffed
    mime_type, _ = mimetypes.guess_type(filename)
    return mime_type or "application/octet-stream"

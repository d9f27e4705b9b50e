"""
Tests for reference image normalization.
"""

import base64
import io

import pytest
from PIL import Image

from shared.image_processing import normalize_reference_image, to_data_url


def _encode(image, fmt="PNG"):
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


def _decode(data):
    return Image.open(io.BytesIO(data))


def test_large_image_downscaled_keeping_aspect():
    """Test that the longest side is clamped and aspect ratio preserved."""
    result = _decode(normalize_reference_image(_encode(Image.new("RGB", (2048, 1024)), "JPEG"), max_dimension=1024))

    assert result.format == "PNG"
    assert result.size == (1024, 512)


def test_small_image_keeps_size():
    result = _decode(normalize_reference_image(_encode(Image.new("RGB", (300, 200))), max_dimension=1024))

    assert result.size == (300, 200)


def test_transparency_preserved():
    result = _decode(normalize_reference_image(_encode(Image.new("RGBA", (10, 10), (0, 0, 0, 0)))))

    assert result.mode == "RGBA"


def test_grayscale_converted_to_rgb():
    result = _decode(normalize_reference_image(_encode(Image.new("L", (10, 10)))))

    assert result.mode == "RGB"


def test_undecodable_bytes():
    with pytest.raises(ValueError, match="Failed to decode"):
        normalize_reference_image(b"not an image at all")


def test_to_data_url():
    url = to_data_url(b"abc", "image/webp")

    assert url.startswith("data:image/webp;base64,")
    assert base64.b64decode(url.split(",", 1)[1]) == b"abc"

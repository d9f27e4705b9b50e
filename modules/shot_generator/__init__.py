"""
Shot Generator Module.

Renders one campaign shot per prompt using a text-to-image model via Replicate.
"""

from .generator import generate_image

__all__ = ["generate_image"]

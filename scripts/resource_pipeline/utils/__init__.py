"""
Utility modules for image decoding and frame export.
"""

from .image import ImageUtils

__all__ = [
    "ImageUtils",
]

"""
Coordinate mapping between normalized grid space and the pixel buffer.

Normalized space has its origin at the bottom-left corner with ``y``
growing upward; the pixel buffer is row-major with row 0 at the top.
"""

import math
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from ..exceptions import ValidationError


@dataclass
class Crop:
    """RGBA sub-region of an image."""

    pixels: np.ndarray

    @property
    def size(self) -> Tuple[int, int]:
        """``(width, height)`` in pixels."""
        height, width = self.pixels.shape[:2]
        return width, height

    @property
    def is_empty(self) -> bool:
        return self.pixels.size == 0

    def tobytes(self) -> bytes:
        """Flat row-major RGBA byte buffer."""
        return self.pixels.tobytes()


def clip(value: float) -> float:
    """Clamp a normalized coordinate to ``[0, 1]``."""
    if math.isnan(value):
        raise ValidationError("Normalized coordinate must be a number", value=value)
    return min(max(value, 0.0), 1.0)


def pixel_bounds(
    width: int, height: int, x1: float, x2: float, y1: float, y2: float
) -> Tuple[int, int, int, int]:
    """
    Map a normalized rectangle to pixel bounds.

    Endpoints may be given in either order. Coordinates are clamped before
    scaling so the bounds never leave the buffer.

    Returns:
        ``(i0, i1, j0, j1)``: columns ``[i0, i1)`` and rows ``[j0, j1)``
    """
    x1, x2, y1, y2 = clip(x1), clip(x2), clip(y1), clip(y2)
    i0 = math.floor(min(x1, x2) * width)
    i1 = math.floor(max(x1, x2) * width)
    j0 = math.floor((1.0 - max(y1, y2)) * height)
    j1 = math.floor((1.0 - min(y1, y2)) * height)
    return i0, i1, j0, j1


def crop_region(image: np.ndarray, x1: float, x2: float, y1: float, y2: float) -> Crop:
    """Copy the pixels inside a normalized rectangle; degenerate rectangles give an empty crop."""
    height, width = image.shape[:2]
    i0, i1, j0, j1 = pixel_bounds(width, height, x1, x2, y1, y2)
    return Crop(image[j0:j1, i0:i1].copy())

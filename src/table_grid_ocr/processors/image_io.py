"""Image I/O utilities for loading, rotating and saving RGBA images."""

import math
from pathlib import Path
from typing import Tuple

import cv2
import numpy as np

from ..exceptions import ImageLoadError, ImageSaveError

ROTATION_FILL: Tuple[int, int, int, int] = (255, 0, 0, 0)
MAX_ROTATION = math.pi / 16


def to_rgba(image: np.ndarray) -> np.ndarray:
    """Convert an OpenCV image (gray, BGR or BGRA) to 8-bit RGBA."""
    if image.dtype == np.uint16:
        image = (image // 257).astype(np.uint8)
    elif image.dtype != np.uint8:
        image = cv2.convertScaleAbs(image)

    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2RGBA)
    if image.shape[2] == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2RGBA)
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)
    raise ValueError(f"Unsupported channel count: {image.shape[2]}")


def load_image(image_path: Path) -> np.ndarray:
    """Load image from file.

    Args:
        image_path: Path to the image file

    Returns:
        ``(height, width, 4)`` uint8 RGBA array

    Raises:
        ImageLoadError: If image cannot be loaded
    """
    image = cv2.imread(str(image_path), cv2.IMREAD_UNCHANGED)
    if image is None or image.size == 0:
        raise ImageLoadError(f"Could not load image: {image_path}", image_path=str(image_path))
    try:
        return to_rgba(image)
    except (ValueError, cv2.error) as e:
        raise ImageLoadError(f"Unsupported image format: {e}", image_path=str(image_path))


def save_image(image: np.ndarray, output_path: Path) -> None:
    """Save an RGBA image to file.

    Args:
        image: RGBA array to save
        output_path: Path where to save the image

    Raises:
        ImageSaveError: If image is None, empty or cannot be written
    """
    if image is None:
        raise ImageSaveError(f"Cannot save None as image to {output_path}")

    if image.size == 0:
        raise ImageSaveError(
            f"Cannot save empty image to {output_path}", size=tuple(image.shape[:2])
        )

    try:
        written = cv2.imwrite(str(output_path), cv2.cvtColor(image, cv2.COLOR_RGBA2BGRA))
    except cv2.error as e:
        raise ImageSaveError(f"Failed to write image to {output_path}: {e}")
    if not written:
        raise ImageSaveError(f"Failed to write image to {output_path}")


def rotate_image(
    image: np.ndarray,
    theta: float,
    fill: Tuple[int, int, int, int] = ROTATION_FILL,
    max_rotation: float = MAX_ROTATION,
) -> np.ndarray:
    """Rotate clockwise about the center by ``theta`` radians.

    The angle is limited to ``[-max_rotation, max_rotation]``; uncovered
    corners are filled with ``fill``. The output keeps the input size.
    """
    theta = min(max(theta, -max_rotation), max_rotation)
    if theta == 0.0:
        return image.copy()

    height, width = image.shape[:2]
    matrix = cv2.getRotationMatrix2D((width / 2.0, height / 2.0), -math.degrees(theta), 1.0)
    return cv2.warpAffine(
        image,
        matrix,
        (width, height),
        flags=cv2.INTER_CUBIC,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=fill,
    )


def aspect_ratio(image: np.ndarray) -> float:
    """Width over height."""
    height, width = image.shape[:2]
    return width / height

"""Image and text processors used by recognition jobs."""

from .image_io import load_image, save_image, rotate_image, to_rgba, aspect_ratio
from .region import Crop, clip, pixel_bounds, crop_region
from .cleaning import clean_text

__all__ = [
    # Image I/O
    'load_image',
    'save_image',
    'rotate_image',
    'to_rgba',
    'aspect_ratio',
    # Region extraction
    'Crop',
    'clip',
    'pixel_bounds',
    'crop_region',
    # Output cleaning
    'clean_text',
]

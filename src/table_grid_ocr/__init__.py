"""Grid-driven table OCR: per-cell recognition through an external engine."""

__version__ = "1.0.0"
__author__ = "Table Grid OCR Team"

from .grid import Grid, Separator, Orientation, Extents
from .session import AnnotationSession
from .engines import OCREngine
from .table import Table
from .task import BackgroundTask, OCRParameters, TaskState
from .pipeline import TableGridOCR

__all__ = [
    "Grid",
    "Separator",
    "Orientation",
    "Extents",
    "AnnotationSession",
    "OCREngine",
    "Table",
    "BackgroundTask",
    "OCRParameters",
    "TaskState",
    "TableGridOCR",
]

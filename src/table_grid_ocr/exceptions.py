"""
Custom exceptions for Table Grid OCR.

Provides a hierarchy of exceptions for the errors that can occur while
loading images, editing the grid, running recognition jobs and driving
the background extraction task.
"""

from typing import Optional, Any


class TableGridOCRError(Exception):
    """Base exception for all Table Grid OCR errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} (Details: {details_str})"
        return self.message


class ConfigurationError(TableGridOCRError):
    """Raised when a configuration file or value is rejected."""
    pass


class ValidationError(TableGridOCRError):
    """Raised when grid geometry or a coordinate is invalid."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        super().__init__(message, kwargs)


class InvalidSeparatorError(ValidationError):
    """Raised when a separator position or translation is not a number."""
    pass


class DirectoryError(TableGridOCRError):
    """Raised when the working directory for crops cannot be created."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        super().__init__(message, kwargs)


class ProcessingError(TableGridOCRError):
    """Base class for image read, write and transform failures."""

    def __init__(self, message: str, image_path: Optional[str] = None,
                 **kwargs: Any) -> None:
        details = kwargs
        if image_path:
            details["image_path"] = image_path
        super().__init__(message, details)


class ImageLoadError(ProcessingError):
    """Raised when a table image cannot be read or decoded."""
    pass


class ImageSaveError(ProcessingError):
    """Raised when a pixel buffer cannot be written to disk."""
    pass


class RecognitionJobError(TableGridOCRError):
    """Base class for failures of a single cell's recognition job."""

    def __init__(self, message: str, row: int, col: int, **kwargs: Any) -> None:
        details = kwargs
        details["row"] = row
        details["col"] = col
        super().__init__(message, details)
        self.row = row
        self.col = col


class JobExportError(RecognitionJobError):
    """Raised when a cell crop cannot be written for the engine."""
    pass


class JobSpawnError(RecognitionJobError):
    """Raised when the recognition command cannot be started."""
    pass


class JobExitError(RecognitionJobError):
    """Raised when the recognition command exits with a non-zero status."""

    def __init__(self, message: str, row: int, col: int, returncode: int,
                 **kwargs: Any) -> None:
        super().__init__(message, row, col, returncode=returncode, **kwargs)
        self.returncode = returncode


class JobOutputMissingError(RecognitionJobError):
    """Raised when the recognition output file is missing or unreadable."""
    pass


class JobCleanupError(RecognitionJobError):
    """Raised when a job's temporary files cannot be removed."""
    pass


class TaskStateError(TableGridOCRError):
    """Raised when a background task transition is not allowed."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        super().__init__(message, kwargs)


class RunAlreadyInProgressError(TaskStateError):
    """Raised when a run is started or restaged while one is running."""
    pass


class TaskNotReadyError(TaskStateError):
    """Raised when a run is started before its parameters are staged."""
    pass

"""Table Grid OCR utility modules."""

from .console import (
    console, print_success, print_error, print_warning, print_status,
)
from .file_utils import ensure_directory_exists, remove_files, TemporaryFiles
from .logging_utils import setup_logging, log_run_stats, RunStats

__all__ = [
    'console', 'print_success', 'print_error', 'print_warning', 'print_status',
    'ensure_directory_exists', 'remove_files', 'TemporaryFiles',
    'setup_logging', 'log_run_stats', 'RunStats',
]

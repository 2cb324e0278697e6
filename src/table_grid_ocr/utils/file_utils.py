"""
File handling utilities.

Provides directory creation and scoped removal of the temporary files a
recognition job creates.
"""

import logging
from pathlib import Path
from typing import List, Tuple, Union

from ..exceptions import DirectoryError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def ensure_directory_exists(directory_path: PathLike) -> Path:
    """Create the directory and its parents if missing; DirectoryError on failure."""
    path = Path(directory_path)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise DirectoryError(f"Cannot create working directory {path}: {e}", path=str(path))
    return path


def remove_files(*paths: PathLike) -> List[Tuple[Path, OSError]]:
    """
    Remove files that exist; missing files are skipped.

    Returns:
        ``(path, error)`` for every file that could not be removed
    """
    failures = []
    for path in map(Path, paths):
        try:
            path.unlink()
        except FileNotFoundError:
            continue
        except OSError as e:
            logger.warning(f"Could not remove temporary file {path}: {e}")
            failures.append((path, e))
    return failures


class TemporaryFiles:
    """
    Remove a set of files when the block exits, however it exits.

    Removal problems never replace an exception raised inside the block;
    they are logged and collected in ``failures`` for the caller to act on.
    """

    def __init__(self, *paths: PathLike) -> None:
        self.paths = [Path(p) for p in paths]
        self.failures: List[Tuple[Path, OSError]] = []

    def __enter__(self) -> "TemporaryFiles":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.failures = remove_files(*self.paths)
        return False

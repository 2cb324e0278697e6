"""
Recognition job dispatch.

Every cell of the grid becomes one job: crop the cell, write the crop to a
temporary image, run the external engine on it, read the text file the
engine produced and clean it. Jobs run on a thread pool; each one waits on
its own subprocess. A failing job is logged and reported in its result
but never stops the other jobs.
"""

import itertools
import logging
import subprocess
import threading
from dataclasses import dataclass
from functools import partial
from multiprocessing import cpu_count
from multiprocessing.pool import ThreadPool
from pathlib import Path
from typing import List, Optional

import numpy as np

from .config.models import CleaningOptions
from .engines import materialize_command
from .exceptions import (
    ImageSaveError,
    JobCleanupError,
    JobExitError,
    JobExportError,
    JobOutputMissingError,
    JobSpawnError,
    RecognitionJobError,
)
from .grid import Grid
from .processors import Crop, clean_text, crop_region, save_image
from .utils.file_utils import TemporaryFiles, remove_files
from .utils.logging_utils import log_run_stats

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_SUFFIX = ".txt"


def crop_image_path(temp_dir: Path, row: int, col: int) -> Path:
    return Path(temp_dir) / f"ocr_crop_{row}_{col}.png"


def text_output_path(temp_dir: Path, row: int, col: int) -> Path:
    return Path(temp_dir) / f"ocr_out_{row}_{col}"


class ProgressCounter:
    """Thread-safe count of resolved jobs out of an expected total."""

    def __init__(self, total: int) -> None:
        self.total = total
        self._completed = 0
        self._lock = threading.Lock()

    def increment(self) -> int:
        with self._lock:
            self._completed += 1
            return self._completed

    @property
    def completed(self) -> int:
        with self._lock:
            return self._completed

    @property
    def fraction(self) -> float:
        if self.total == 0:
            return 1.0
        return self.completed / self.total


@dataclass
class RecognitionJob:
    """One cell's unit of work."""

    row: int
    col: int
    crop: Crop
    image_path: Path
    text_path: Path


@dataclass
class JobResult:
    """Cleaned text of a job, or the error that stopped it."""

    row: int
    col: int
    text: Optional[str] = None
    error: Optional[RecognitionJobError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def build_jobs(grid: Grid, image: np.ndarray, temp_dir: Path) -> List[RecognitionJob]:
    """
    Create one job per cell of the grid.

    Rows are numbered from the top of the image and columns from the left.

    Args:
        grid: Grid whose separators partition the image
        image: ``(height, width, 4)`` RGBA pixel buffer
        temp_dir: Directory for the per-cell temporary files

    Returns:
        Jobs in row-major order
    """
    jobs = []
    for (row, (y_a, y_b)), (col, (x_a, x_b)) in itertools.product(
        enumerate(grid.row_gaps()), enumerate(grid.col_gaps())
    ):
        jobs.append(RecognitionJob(
            row=row,
            col=col,
            crop=crop_region(image, x_a, x_b, y_a, y_b),
            image_path=crop_image_path(temp_dir, row, col),
            text_path=text_output_path(temp_dir, row, col),
        ))
    return jobs


def _output_candidates(job: RecognitionJob, output_suffix: str) -> List[Path]:
    candidates = [job.text_path]
    if output_suffix:
        candidates.append(job.text_path.with_name(job.text_path.name + output_suffix))
    return candidates


def _read_output(job: RecognitionJob, candidates: List[Path]) -> str:
    for path in candidates:
        if not path.is_file():
            continue
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise JobOutputMissingError(
                f"Could not read recognition output: {e}", job.row, job.col, path=str(path)
            )
    raise JobOutputMissingError(
        "Recognition output not found", job.row, job.col,
        paths=", ".join(str(p) for p in candidates),
    )


def recognize(
    job: RecognitionJob,
    command_template: str,
    output_suffix: str = DEFAULT_OUTPUT_SUFFIX,
) -> str:
    """
    Run the external engine on one job and return its raw text.

    The crop image and every candidate output file are removed before
    returning, whether or not recognition succeeded.

    Raises:
        RecognitionJobError: Subclass describing the failed step
    """
    candidates = _output_candidates(job, output_suffix)
    remove_files(*candidates)

    files = TemporaryFiles(job.image_path, *candidates)
    with files:
        try:
            save_image(job.crop.pixels, job.image_path)
        except ImageSaveError as e:
            raise JobExportError(
                f"Could not export cell crop: {e.message}", job.row, job.col,
                size=job.crop.size,
            )

        args = materialize_command(command_template, job.image_path, job.text_path)
        if not args:
            raise JobSpawnError("Recognition command is empty", job.row, job.col)

        try:
            completed = subprocess.run(
                args,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                check=False,
            )
        except OSError as e:
            raise JobSpawnError(
                f"Could not start recognition command: {e}", job.row, job.col,
                program=args[0],
            )

        if completed.returncode != 0:
            raise JobExitError(
                "Recognition command failed", job.row, job.col,
                returncode=completed.returncode, program=args[0],
            )

        text = _read_output(job, candidates)

    if files.failures:
        raise JobCleanupError(
            "Could not remove temporary files", job.row, job.col,
            paths=", ".join(str(p) for p, _ in files.failures),
        )
    return text


def run_job(
    job: RecognitionJob,
    command_template: str,
    cleaning: Optional[CleaningOptions] = None,
    output_suffix: str = DEFAULT_OUTPUT_SUFFIX,
) -> JobResult:
    """Recognize and clean one cell; failures are returned, not raised."""
    if job.crop.is_empty:
        logger.debug(f"Cell ({job.row}, {job.col}) has zero area, nothing to recognize")
        return JobResult(job.row, job.col, text="")

    try:
        raw = recognize(job, command_template, output_suffix)
    except RecognitionJobError as e:
        logger.warning(f"Cell ({job.row}, {job.col}) left empty: {e}")
        return JobResult(job.row, job.col, error=e)

    text = clean_text(raw, cleaning)
    logger.debug(f"Cell ({job.row}, {job.col}): {text!r}")
    return JobResult(job.row, job.col, text=text)


def resolve_workers(max_workers: Optional[int], n_jobs: int) -> int:
    """Pool size: the configured cap (CPU count by default), never more than the job count."""
    workers = max_workers or cpu_count()
    return max(1, min(workers, n_jobs))


def dispatch(
    jobs: List[RecognitionJob],
    command_template: str,
    cleaning: Optional[CleaningOptions] = None,
    max_workers: Optional[int] = None,
    progress: Optional[ProgressCounter] = None,
    output_suffix: str = DEFAULT_OUTPUT_SUFFIX,
) -> List[JobResult]:
    """
    Run all jobs in parallel and block until every one has resolved.

    Args:
        jobs: Jobs to run
        command_template: Command with ``%img_in%`` / ``%txt_out%`` placeholders
        cleaning: Cleaning options applied to each job's text
        max_workers: Upper bound on concurrently running engine processes
        progress: Counter incremented once per resolved job
        output_suffix: Extension the engine may append to the output path

    Returns:
        One result per job, in completion order
    """
    if not jobs:
        return []

    workers = resolve_workers(max_workers, len(jobs))
    process_func = partial(
        run_job,
        command_template=command_template,
        cleaning=cleaning,
        output_suffix=output_suffix,
    )

    results = []
    with log_run_stats(f"recognition of {len(jobs)} cells", logger) as stats:
        logger.debug(f"Dispatching {len(jobs)} jobs on {workers} workers")
        with ThreadPool(processes=workers) as pool:
            for result in pool.imap_unordered(process_func, jobs):
                results.append(result)
                stats.record(result.ok)
                if progress is not None:
                    progress.increment()
    return results

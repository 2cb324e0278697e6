"""
Background extraction task.

A single task object moves through ``IDLE -> READY -> RUNNING -> FINISHED``
and back to ``READY`` when new parameters are staged. The run itself
executes on a worker thread; the interactive loop calls :meth:`poll` and
reads :attr:`progress` without ever blocking on it.
"""

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Tuple

import numpy as np

from .config.models import CleaningOptions
from .dispatcher import DEFAULT_OUTPUT_SUFFIX, ProgressCounter, build_jobs, dispatch
from .exceptions import RunAlreadyInProgressError, TaskNotReadyError
from .grid import Grid
from .table import Table, assemble
from .utils.file_utils import ensure_directory_exists

logger = logging.getLogger(__name__)


class TaskState(str, Enum):
    IDLE = "idle"
    READY = "ready"
    RUNNING = "running"
    FINISHED = "finished"


@dataclass
class OCRParameters:
    """Snapshot of everything a run needs, decoupled from later edits."""

    grid: Grid
    image: np.ndarray
    command_template: str
    temp_dir: Path
    cleaning: CleaningOptions = field(default_factory=CleaningOptions)
    max_workers: Optional[int] = None
    output_suffix: str = DEFAULT_OUTPUT_SUFFIX

    @classmethod
    def snapshot(
        cls,
        grid: Grid,
        image: np.ndarray,
        command_template: str,
        temp_dir: Path,
        cleaning: Optional[CleaningOptions] = None,
        max_workers: Optional[int] = None,
        output_suffix: str = DEFAULT_OUTPUT_SUFFIX,
    ) -> "OCRParameters":
        """Copy the grid, pixels and options so the caller may keep editing them."""
        grid = grid.copy()
        grid.sort()
        return cls(
            grid=grid,
            image=image.copy(),
            command_template=command_template,
            temp_dir=Path(temp_dir),
            cleaning=cleaning.model_copy() if cleaning is not None else CleaningOptions(),
            max_workers=max_workers,
            output_suffix=output_suffix,
        )

    @property
    def n_jobs(self) -> int:
        return self.grid.n_cells


def extract_table(params: OCRParameters, progress: ProgressCounter) -> Table:
    """Crop, recognize and assemble every cell of the staged grid."""
    ensure_directory_exists(params.temp_dir)
    jobs = build_jobs(params.grid, params.image, params.temp_dir)
    results = dispatch(
        jobs,
        params.command_template,
        cleaning=params.cleaning,
        max_workers=params.max_workers,
        progress=progress,
        output_suffix=params.output_suffix,
    )
    return assemble(params.grid.shape, results)


Work = Callable[[OCRParameters, ProgressCounter], Table]


class BackgroundTask:
    """Single in-flight extraction run observed by a polling caller."""

    def __init__(self, work: Work = extract_table) -> None:
        self._work = work
        self._lock = threading.Lock()
        self._state = TaskState.IDLE
        self._params: Optional[OCRParameters] = None
        self._progress: Optional[ProgressCounter] = None
        self._thread: Optional[threading.Thread] = None
        self._result: Optional[Table] = None
        self._error: Optional[Exception] = None

    @property
    def state(self) -> TaskState:
        with self._lock:
            return self._state

    @property
    def parameters(self) -> Optional[OCRParameters]:
        return self._params

    @property
    def result(self) -> Optional[Table]:
        with self._lock:
            return self._result

    @property
    def error(self) -> Optional[Exception]:
        with self._lock:
            return self._error

    @property
    def progress(self) -> Tuple[int, int]:
        """``(completed, total)`` jobs of the current or last run."""
        if self._progress is None:
            return 0, 0
        return self._progress.completed, self._progress.total

    def is_running(self) -> bool:
        return self.state is TaskState.RUNNING

    def stage(self, params: OCRParameters) -> None:
        """
        Load parameters for the next run.

        Raises:
            RunAlreadyInProgressError: If a run is in flight
        """
        with self._lock:
            if self._state is TaskState.RUNNING:
                raise RunAlreadyInProgressError("Cannot stage parameters while a run is in progress")
            self._params = params
            self._progress = ProgressCounter(params.n_jobs)
            self._result = None
            self._error = None
            self._state = TaskState.READY
        logger.debug(f"Staged extraction of {params.n_jobs} cells")

    def start(self) -> None:
        """
        Launch the staged run on a background thread.

        Raises:
            RunAlreadyInProgressError: If a run is in flight
            TaskNotReadyError: If no parameters are staged
        """
        with self._lock:
            if self._state is TaskState.RUNNING:
                raise RunAlreadyInProgressError("A run is already in progress")
            if self._state is not TaskState.READY:
                raise TaskNotReadyError(
                    "No parameters staged for the next run", state=self._state.value
                )
            self._state = TaskState.RUNNING
            self._thread = threading.Thread(
                target=self._run,
                args=(self._params, self._progress),
                name="table-grid-ocr-run",
                daemon=True,
            )
            self._thread.start()
        logger.info(f"Started extraction of {self._params.n_jobs} cells")

    def _run(self, params: OCRParameters, progress: ProgressCounter) -> None:
        result, error = None, None
        try:
            result = self._work(params, progress)
        except Exception as e:
            logger.exception(f"Extraction run failed: {e}")
            error = e
        with self._lock:
            self._result = result
            self._error = error
            self._state = TaskState.FINISHED

    def poll(self) -> TaskState:
        """Current state; never blocks on the run."""
        return self.state

    def wait(self, timeout: Optional[float] = None) -> TaskState:
        """Block until the current run finishes or ``timeout`` elapses."""
        thread = self._thread
        if thread is not None:
            thread.join(timeout)
        return self.state

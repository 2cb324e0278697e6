"""Application state and command line entry point."""

import argparse
import logging
import math
import sys
import time
from pathlib import Path
from typing import List, Optional

import numpy as np
from tqdm import tqdm

from .config import Config, get_default_config, load_config
from .engines import OCREngine, check_template
from .exceptions import ConfigurationError, ImageLoadError, TableGridOCRError, ValidationError
from .grid import Grid
from .processors import aspect_ratio, load_image, rotate_image
from .session import AnnotationSession
from .table import Table
from .task import BackgroundTask, OCRParameters, TaskState
from .utils.console import print_error, print_success, print_warning
from .utils.logging_utils import setup_logging

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.05


class TableGridOCR:
    """
    Everything one annotation window owns.

    Holds the loaded image and its rotated preview, the editable grid, the
    interaction session, the command template and the background task. The
    interactive loop (or the command line) edits the grid, then calls
    :meth:`request_extraction` and polls :meth:`poll` until the table is ready.
    """

    def __init__(self, config: Optional[Config] = None) -> None:
        self.config = config or get_default_config()
        self.grid = self._default_grid()
        self.session = AnnotationSession(
            separator_thickness=self.config.grid.separator_thickness,
            separator_color=self.config.grid.separator_color,
        )
        self.command_template = self.config.ocr.resolved_template()
        self.image_path: Optional[Path] = None
        self.base_image: Optional[np.ndarray] = None
        self.image: Optional[np.ndarray] = None
        self.theta = 0.0
        self.task = BackgroundTask()

    def _default_grid(self) -> Grid:
        return Grid(self.config.grid.horizontals, self.config.grid.verticals)

    @property
    def has_image(self) -> bool:
        return self.image is not None

    def load_image(self, image_path: Path) -> None:
        """Load a table image; the grid is kept."""
        image = load_image(Path(image_path))
        self.image_path = Path(image_path)
        self.base_image = image
        self.image = image.copy()
        self.theta = 0.0
        height, width = image.shape[:2]
        logger.info(f"Loaded {self.image_path} ({width}x{height})")

    def set_rotation(self, theta: float) -> None:
        """Rotate the preview that extraction will use."""
        if self.base_image is None:
            raise ImageLoadError("Must load an image first.")
        if math.isnan(theta):
            raise ValidationError("Rotation angle must be a number", theta=theta)
        limit = self.config.image.max_rotation
        theta = min(max(theta, -limit), limit)
        if theta == self.theta:
            return
        self.image = rotate_image(
            self.base_image, theta,
            fill=tuple(self.config.image.rotation_fill),
            max_rotation=limit,
        )
        self.theta = theta

    def begin_frame(self, shifting: bool = False, zooming: bool = False) -> None:
        """Per-iteration housekeeping of the interactive loop."""
        ratio = aspect_ratio(self.image) if self.has_image else 1.0
        self.session.begin_frame(self.grid, ratio, shifting=shifting, zooming=zooming)

    def reset_grid(self) -> None:
        self.grid = self._default_grid()

    def use_engine(self, engine: OCREngine) -> None:
        """Replace the command template with an engine preset."""
        self.command_template = OCREngine(engine).command_template

    def request_extraction(self) -> None:
        """
        Snapshot the current state and start a run.

        Raises:
            ImageLoadError: If no image is loaded
            RunAlreadyInProgressError: If a run is in flight
        """
        if not self.has_image:
            raise ImageLoadError("Must load an image first.")
        check_template(self.command_template)
        params = OCRParameters.snapshot(
            self.grid,
            self.image,
            self.command_template,
            self.config.ocr.resolved_temp_dir(),
            cleaning=self.config.cleaning,
            max_workers=self.config.ocr.max_workers,
            output_suffix=self.config.ocr.output_suffix,
        )
        self.task.stage(params)
        self.task.start()

    def poll(self) -> TaskState:
        return self.task.poll()

    @property
    def table(self) -> Optional[Table]:
        if self.task.poll() is TaskState.FINISHED:
            return self.task.result
        return None


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Recognize the cells of a table image partitioned by a separator grid"
    )
    parser.add_argument("image", help="Table image to read")
    parser.add_argument("--rows", type=float, nargs="+", metavar="Y",
                        help="Horizontal separator positions, 0 (bottom) to 1 (top)")
    parser.add_argument("--cols", type=float, nargs="+", metavar="X",
                        help="Vertical separator positions, 0 (left) to 1 (right)")
    parser.add_argument("-c", "--config", help="Configuration file (JSON, YAML or TOML)")
    parser.add_argument("--engine", choices=[e.value for e in OCREngine],
                        help="Preset recognition engine")
    parser.add_argument("--command", help="Custom command template with %%img_in%% and %%txt_out%%")
    parser.add_argument("--workers", type=_positive_int,
                        help="Maximum concurrent recognition processes")
    parser.add_argument("--rotate", type=float, default=0.0, metavar="RADIANS",
                        help="Rotate the image clockwise before extraction")
    parser.add_argument("-o", "--output", help="Write the table here instead of stdout")
    parser.add_argument("--no-trim-whitespace", action="store_true")
    parser.add_argument("--no-trim-single-quote", action="store_true")
    parser.add_argument("--no-trim-double-quote", action="store_true")
    parser.add_argument("--keep-newlines", action="store_true")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def _apply_arguments(config: Config, args: argparse.Namespace) -> None:
    if args.rows:
        config.grid.horizontals = args.rows
    if args.cols:
        config.grid.verticals = args.cols
    if args.engine:
        config.ocr.engine = OCREngine(args.engine)
        config.ocr.command_template = None
    if args.command:
        config.ocr.command_template = args.command
    if args.workers:
        config.ocr.max_workers = args.workers
    if args.no_trim_whitespace:
        config.cleaning.trim_whitespace = False
    if args.no_trim_single_quote:
        config.cleaning.trim_single_quote = False
    if args.no_trim_double_quote:
        config.cleaning.trim_double_quote = False
    if args.keep_newlines:
        config.cleaning.no_newlines = False
    if args.verbose:
        config.logging.level = "DEBUG"


def run(app: TableGridOCR, show_progress: bool = True) -> Table:
    """Start a run and poll it to completion, updating a progress bar."""
    app.request_extraction()
    _, total = app.task.progress
    with tqdm(total=total, desc="Recognizing cells", unit="cell",
              disable=not show_progress, file=sys.stderr) as pbar:
        while app.poll() is TaskState.RUNNING:
            completed, _ = app.task.progress
            pbar.update(completed - pbar.n)
            time.sleep(POLL_INTERVAL)
        completed, _ = app.task.progress
        pbar.update(completed - pbar.n)

    if app.task.error is not None:
        raise app.task.error
    return app.task.result


def main(argv: Optional[List[str]] = None) -> int:
    """Command line interface."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config) if args.config else get_default_config()
        _apply_arguments(config, args)
    except ConfigurationError as e:
        print_error(str(e))
        return 1
    except ValueError as e:
        parser.error(str(e))

    setup_logging(
        level=config.logging.level.value,
        log_file=config.logging.log_file,
        use_rich=config.logging.use_rich,
        format_style=config.logging.format_style,
    )

    try:
        app = TableGridOCR(config)
        app.load_image(Path(args.image))
        if args.rotate:
            app.set_rotation(args.rotate)
        table = run(app)
    except ImageLoadError as e:
        print_error(str(e))
        return 1
    except ValidationError as e:
        print_error(str(e))
        return 2
    except TableGridOCRError as e:
        print_error(str(e))
        return 1

    empty = table.empty_cells()
    if args.output:
        table.save(args.output)
    else:
        sys.stdout.write(table.to_delimited() + "\n")

    n_rows, n_cols = table.shape
    if empty:
        print_warning(f"{len(empty)} of {n_rows * n_cols} cells are empty")
    print_success(f"Extracted {n_rows}x{n_cols} table")
    return 0


if __name__ == "__main__":
    sys.exit(main())

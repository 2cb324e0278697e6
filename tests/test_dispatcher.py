"""Tests for recognition job construction and dispatch."""

import threading
from pathlib import Path

import pytest

from table_grid_ocr.config import CleaningOptions
from table_grid_ocr.dispatcher import (
    JobResult,
    ProgressCounter,
    build_jobs,
    crop_image_path,
    dispatch,
    recognize,
    resolve_workers,
    run_job,
    text_output_path,
)
from table_grid_ocr.exceptions import (
    JobCleanupError,
    JobExitError,
    JobExportError,
    JobOutputMissingError,
    JobSpawnError,
)
from table_grid_ocr.grid import Grid
from table_grid_ocr.table import assemble


def leftovers(directory: Path):
    return sorted(p.name for p in directory.iterdir())


class TestBuildJobs:

    def test_one_job_per_cell_row_major(self, full_grid, sample_image, temp_dir):
        jobs = build_jobs(full_grid, sample_image, temp_dir)
        assert [(j.row, j.col) for j in jobs] == [(0, 0), (0, 1), (1, 0), (1, 1)]

    def test_row_zero_is_top_of_image(self, full_grid, sample_image, temp_dir):
        jobs = build_jobs(full_grid, sample_image, temp_dir)
        top_left = jobs[0].crop.pixels
        bottom_left = jobs[2].crop.pixels
        assert top_left[0, 0, 1] == 0
        assert bottom_left[0, 0, 1] == 100

    def test_file_names(self, full_grid, sample_image, temp_dir):
        job = build_jobs(full_grid, sample_image, temp_dir)[1]
        assert job.image_path == crop_image_path(temp_dir, 0, 1)
        assert job.image_path.name == "ocr_crop_0_1.png"
        assert job.text_path == text_output_path(temp_dir, 0, 1)
        assert job.text_path.name == "ocr_out_0_1"

    def test_unsorted_grid(self, sample_image, temp_dir):
        grid = Grid([1.0, 0.0, 0.5], [0.5, 1.0, 0.0])
        jobs = build_jobs(grid, sample_image, temp_dir)
        assert len(jobs) == 4
        assert all(job.crop.size == (200, 100) for job in jobs)


@pytest.mark.integration
class TestRecognize:

    def test_reads_suffixed_output(self, full_grid, sample_image, temp_dir, engine_command):
        job = build_jobs(full_grid, sample_image, temp_dir)[3]
        assert recognize(job, engine_command()) == " '1,1'\n"
        assert leftovers(temp_dir) == []

    def test_reads_exact_output(self, full_grid, sample_image, temp_dir, engine_command):
        job = build_jobs(full_grid, sample_image, temp_dir)[0]
        assert recognize(job, engine_command("--exact")) == " '0,0'\n"
        assert leftovers(temp_dir) == []

    def test_stale_output_is_not_reused(self, full_grid, sample_image, temp_dir, engine_command):
        job = build_jobs(full_grid, sample_image, temp_dir)[0]
        Path(str(job.text_path) + ".txt").write_text("stale", encoding="utf-8")
        with pytest.raises(JobOutputMissingError):
            recognize(job, engine_command("--silent"))
        assert leftovers(temp_dir) == []

    def test_nonzero_exit(self, full_grid, sample_image, temp_dir, engine_command):
        job = build_jobs(full_grid, sample_image, temp_dir)[1]
        with pytest.raises(JobExitError) as exc_info:
            recognize(job, engine_command("--fail", "0,1"))
        assert exc_info.value.returncode == 1
        assert (exc_info.value.row, exc_info.value.col) == (0, 1)
        assert leftovers(temp_dir) == []

    def test_missing_program(self, full_grid, sample_image, temp_dir):
        job = build_jobs(full_grid, sample_image, temp_dir)[0]
        with pytest.raises(JobSpawnError):
            recognize(job, "no-such-recognizer-binary %img_in% %txt_out%")
        assert leftovers(temp_dir) == []

    def test_empty_command(self, full_grid, sample_image, temp_dir):
        job = build_jobs(full_grid, sample_image, temp_dir)[0]
        with pytest.raises(JobSpawnError):
            recognize(job, "   ")

    def test_zero_area_cell_is_empty_not_failed(self, sample_image, temp_dir, engine_command):
        grid = Grid([0.0, 1.0], [0.5, 0.5])
        job = build_jobs(grid, sample_image, temp_dir)[0]
        assert job.crop.is_empty

        # The engine would fail every cell; it must not be reached
        result = run_job(job, engine_command("--fail", "0,0"))
        assert result == JobResult(0, 0, text="")
        assert result.ok
        assert leftovers(temp_dir) == []

    def test_unwritable_temp_dir(self, full_grid, sample_image, temp_dir, engine_command):
        job = build_jobs(full_grid, sample_image, temp_dir / "missing")[0]
        with pytest.raises(JobExportError):
            recognize(job, engine_command())


@pytest.mark.integration
class TestRunJob:

    def test_success_is_cleaned(self, full_grid, sample_image, temp_dir, engine_command):
        job = build_jobs(full_grid, sample_image, temp_dir)[2]
        result = run_job(job, engine_command())
        assert result == JobResult(1, 0, text="1,0")
        assert result.ok

    def test_cleaning_options_applied(self, full_grid, sample_image, temp_dir, engine_command):
        job = build_jobs(full_grid, sample_image, temp_dir)[2]
        result = run_job(job, engine_command(), CleaningOptions(trim_single_quote=False))
        assert result.text == "'1,0'"

    def test_failure_is_returned(self, full_grid, sample_image, temp_dir, engine_command):
        job = build_jobs(full_grid, sample_image, temp_dir)[2]
        result = run_job(job, engine_command("--fail", "1,0"))
        assert not result.ok
        assert result.text is None
        assert isinstance(result.error, JobExitError)


@pytest.mark.integration
class TestDispatch:

    def test_all_cells_recognized(self, full_grid, sample_image, temp_dir, engine_command):
        jobs = build_jobs(full_grid, sample_image, temp_dir)
        progress = ProgressCounter(len(jobs))
        results = dispatch(jobs, engine_command(), max_workers=2, progress=progress)

        table = assemble(full_grid.shape, results)
        assert table.items == [["0,0", "0,1"], ["1,0", "1,1"]]
        assert progress.completed == 4
        assert progress.fraction == 1.0
        assert leftovers(temp_dir) == []

    def test_partial_failure_leaves_one_empty_cell(
        self, full_grid, sample_image, temp_dir, engine_command
    ):
        jobs = build_jobs(full_grid, sample_image, temp_dir)
        progress = ProgressCounter(len(jobs))
        results = dispatch(jobs, engine_command("--fail", "1,0"), progress=progress)

        table = assemble(full_grid.shape, results)
        assert table.empty_cells() == [(1, 0)]
        assert table.get(0, 1) == "0,1"
        assert progress.completed == 4
        assert sum(not r.ok for r in results) == 1

    def test_every_job_fails(self, full_grid, sample_image, temp_dir):
        jobs = build_jobs(full_grid, sample_image, temp_dir)
        results = dispatch(jobs, "no-such-recognizer-binary %img_in% %txt_out%")
        assert len(results) == 4
        assert all(isinstance(r.error, JobSpawnError) for r in results)
        assert assemble(full_grid.shape, results).empty_cells() == [
            (0, 0), (0, 1), (1, 0), (1, 1)
        ]

    def test_no_jobs(self, engine_command):
        assert dispatch([], engine_command()) == []

    def test_degenerate_column_counts_as_success(self, sample_image, temp_dir, engine_command):
        grid = Grid([0.0, 1.0], [0.0, 0.5, 0.5, 1.0])
        jobs = build_jobs(grid, sample_image, temp_dir)
        results = dispatch(jobs, engine_command())

        assert all(r.ok for r in results)
        assert assemble(grid.shape, results).items == [["0,0", "", "0,2"]]

    def test_cleanup_failure_empties_only_that_cell(
        self, full_grid, sample_image, temp_dir, engine_command, monkeypatch
    ):
        stuck = crop_image_path(temp_dir, 1, 0)
        unlink = Path.unlink

        def refuse_stuck_crop(self, *args, **kwargs):
            if self == stuck:
                raise PermissionError(13, "Permission denied", str(self))
            return unlink(self, *args, **kwargs)

        monkeypatch.setattr(Path, "unlink", refuse_stuck_crop)

        jobs = build_jobs(full_grid, sample_image, temp_dir)
        results = dispatch(jobs, engine_command(), max_workers=2)
        failed = [r for r in results if not r.ok]
        assert [(r.row, r.col) for r in failed] == [(1, 0)]
        assert isinstance(failed[0].error, JobCleanupError)

        table = assemble(full_grid.shape, results)
        assert table.items == [["0,0", "0,1"], ["", "1,1"]]
        assert leftovers(temp_dir) == [stuck.name]

    def test_run_job_reports_cleanup_failure(
        self, full_grid, sample_image, temp_dir, engine_command, monkeypatch
    ):
        monkeypatch.setattr(
            "table_grid_ocr.utils.file_utils.remove_files",
            lambda *paths: [(Path(paths[0]), PermissionError("Permission denied"))],
        )
        job = build_jobs(full_grid, sample_image, temp_dir)[0]
        result = run_job(job, engine_command())
        assert result.text is None
        assert isinstance(result.error, JobCleanupError)
        assert (result.error.row, result.error.col) == (0, 0)


@pytest.mark.parametrize("max_workers, n_jobs, expected", [
    (None, 1, 1),
    (4, 10, 4),
    (8, 3, 3),
    (2, 0, 1),
])
def test_resolve_workers(max_workers, n_jobs, expected):
    assert resolve_workers(max_workers, n_jobs) == expected


def test_resolve_workers_defaults_to_cpu_count(monkeypatch):
    monkeypatch.setattr("table_grid_ocr.dispatcher.cpu_count", lambda: 3)
    assert resolve_workers(None, 100) == 3


def test_progress_counter_is_thread_safe():
    counter = ProgressCounter(total=8000)

    def work():
        for _ in range(1000):
            counter.increment()

    threads = [threading.Thread(target=work) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert counter.completed == 8000
    assert counter.fraction == 1.0


def test_progress_counter_empty_total():
    assert ProgressCounter(0).fraction == 1.0

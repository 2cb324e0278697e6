"""Tests for annotation session interaction rules."""

import pytest

from table_grid_ocr.grid import Extents, Grid
from table_grid_ocr.session import HELP_TEXT, MAX_THICKNESS, MIN_THICKNESS, AnnotationSession


@pytest.fixture
def session() -> AnnotationSession:
    return AnnotationSession()


def test_thickness_is_clamped():
    assert AnnotationSession(separator_thickness=1.0).separator_thickness == MAX_THICKNESS
    session = AnnotationSession()
    session.set_thickness(0.0)
    assert session.separator_thickness == MIN_THICKNESS


def test_vertical_delta_scales_with_aspect_ratio(session):
    session.begin_frame(Grid(), aspect_ratio=2.0)
    assert session.delta_x == pytest.approx(0.005)
    assert session.delta_y == pytest.approx(0.01)


def test_begin_frame_sorts_and_refreshes_extents(session):
    grid = Grid([0.9, 0.3], [0.7, 0.2])
    extents = session.begin_frame(grid, aspect_ratio=1.0)
    assert extents == Extents(0.2, 0.7, 0.3, 0.9)
    assert session.extents == extents
    assert grid.horizontals[0].position == 0.3


@pytest.mark.parametrize("shifting, zooming, expected", [
    (False, False, True),
    (True, False, False),
    (False, True, False),
])
def test_begin_frame_arms_drag(session, shifting, zooming, expected):
    session.begin_frame(Grid(), 1.0, shifting=shifting, zooming=zooming)
    assert session.drag_enabled is expected


def test_drag_moves_separator_under_pointer(session):
    grid = Grid()
    session.begin_frame(grid, 1.0)
    moved = session.drag(grid, (0.15, 0.8), (0.0, 0.02))
    assert moved is grid.horizontals[0]
    assert moved.position == pytest.approx(0.82)
    assert session.drag_enabled is False


def test_drag_moves_at_most_one_separator_per_frame(session):
    grid = Grid([0.5, 0.502, 0.9], [0.1, 0.2])
    session.begin_frame(grid, 1.0)
    session.drag(grid, (0.15, 0.501), (0.0, 0.1))
    assert session.drag(grid, (0.15, 0.502), (0.0, 0.1)) is None

    moved = [s for s in grid.horizontals if s.position not in (0.5, 0.502, 0.9)]
    assert len(moved) == 1


def test_drag_off_separator_keeps_drag_available(session):
    grid = Grid()
    session.begin_frame(grid, 1.0)
    assert session.drag(grid, (0.5, 0.5), (0.1, 0.1)) is None
    assert session.drag_enabled is True


def test_shift_blocks_separator_drag(session):
    grid = Grid()
    session.begin_frame(grid, 1.0)
    session.shift_grid(grid, (0.01, 0.0))
    assert session.drag(grid, (0.15, 0.8), (0.0, 0.1)) is None
    assert grid.verticals[0].position == pytest.approx(0.11)


def test_place_separator_inside_image(session):
    grid = Grid()
    placed = session.place_separator(grid, (0.4, 0.3))
    assert placed.position == 0.3
    assert len(grid.horizontals) == 3

    placed = session.place_separator(grid, (0.4, 0.3), vertical=True)
    assert placed.position == 0.4
    assert len(grid.verticals) == 3


@pytest.mark.parametrize("pointer", [(0.0, 0.5), (0.5, 1.0), (-0.2, 0.5), (0.5, 1.3)])
def test_place_separator_outside_image_is_ignored(session, pointer):
    grid = Grid()
    assert session.place_separator(grid, pointer) is None
    assert len(grid.horizontals) == 2


def test_outline_spans_extents(session):
    grid = Grid()
    session.begin_frame(grid, 1.0)
    corners = session.outline(grid.horizontals[0])
    xs = [x for x, _ in corners]
    ys = [y for _, y in corners]
    assert min(xs) == pytest.approx(0.095)
    assert max(xs) == pytest.approx(0.205)
    assert min(ys) == pytest.approx(0.795)
    assert max(ys) == pytest.approx(0.805)


def test_help_text_mentions_placement_bindings():
    assert "Right click" in HELP_TEXT
    assert "Shift" in HELP_TEXT

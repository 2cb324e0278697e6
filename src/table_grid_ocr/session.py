"""Annotation session state shared by rendering and pointer interaction."""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .grid import Extents, Grid, Point, Separator

MIN_THICKNESS = 0.0001
MAX_THICKNESS = 0.01

HELP_TEXT = """Key bindings for the image preview.

Left click drag: [on separator] move separator, [off separator] pan preview.

Ctrl + Mouse wheel: zoom.

Mouse wheel drag: translate grid.

Double click left mouse button: reset zoom.

Right click: place new horizontal separator.

Right click + Shift: place new vertical separator.


When finished annotating, hit extract to generate table."""


@dataclass
class AnnotationSession:
    """
    Per-window interaction state.

    One instance is owned by the interactive loop and passed to every
    rendering and interaction call. ``drag_enabled`` is re-armed at the
    start of each frame and cleared as soon as one separator claims the
    pointer drag, so at most one separator moves per gesture.
    """

    separator_thickness: float = 0.005
    separator_color: str = "red"
    aspect_ratio: float = 1.0
    drag_enabled: bool = False
    extents: Extents = field(default_factory=lambda: Extents(0.0, 0.0, 0.0, 0.0))

    def __post_init__(self) -> None:
        self.set_thickness(self.separator_thickness)

    def set_thickness(self, thickness: float) -> None:
        self.separator_thickness = min(max(thickness, MIN_THICKNESS), MAX_THICKNESS)

    @property
    def delta_x(self) -> float:
        return self.separator_thickness

    @property
    def delta_y(self) -> float:
        return self.separator_thickness * self.aspect_ratio

    def begin_frame(
        self,
        grid: Grid,
        aspect_ratio: float,
        shifting: bool = False,
        zooming: bool = False,
    ) -> Extents:
        """Sort the grid, refresh extents and re-arm separator dragging."""
        self.aspect_ratio = aspect_ratio
        self.extents = grid.extents()
        self.drag_enabled = not (shifting or zooming)
        return self.extents

    def place_separator(
        self, grid: Grid, pointer: Point, vertical: bool = False
    ) -> Optional[Separator]:
        """Add a separator at the pointer if it lies inside the image."""
        x, y = pointer
        if not (0.0 < x < 1.0 and 0.0 < y < 1.0):
            return None
        if vertical:
            return grid.add_vertical(x)
        return grid.add_horizontal(y)

    def shift_grid(self, grid: Grid, delta: Point) -> None:
        """Translate every separator; blocks separator dragging for this frame."""
        self.drag_enabled = False
        grid.translate_all(*delta)

    def drag(self, grid: Grid, pointer: Point, delta: Point) -> Optional[Separator]:
        """Move the separator under the pointer, if dragging is still available."""
        if not self.drag_enabled:
            return None
        separator = grid.hit_test(pointer, (self.delta_x, self.delta_y), self.extents)
        if separator is None:
            return None
        self.drag_enabled = False
        separator.translate(*delta)
        return separator

    def outline(self, separator: Separator) -> List[Tuple[float, float]]:
        """Polygon corners for drawing a separator across the grid extents."""
        ext = self.extents
        dx, dy = self.delta_x, self.delta_y
        pos = separator.position
        if separator.is_horizontal:
            return [
                (ext.xmin - dx, pos - dy),
                (ext.xmin - dx, pos + dy),
                (ext.xmax + dx, pos + dy),
                (ext.xmax + dx, pos - dy),
            ]
        return [
            (pos - dx, ext.ymin - dy),
            (pos + dx, ext.ymin - dy),
            (pos + dx, ext.ymax + dy),
            (pos - dx, ext.ymax + dy),
        ]

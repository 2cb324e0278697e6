"""
Grid partition model.

A grid is two ordered collections of separators laid over the image in
normalized coordinates (origin bottom-left, ``x`` to the right, ``y`` up).
Cells are never stored: the cell at ``(row, col)`` is the rectangle between
an adjacent pair of horizontal separators and an adjacent pair of vertical
separators once both collections have been sorted.
"""

import copy
import logging
import math
import numbers
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, NamedTuple, Optional, Sequence, Tuple, Union

from .exceptions import InvalidSeparatorError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_HORIZONTALS: Tuple[float, ...] = (0.8, 0.9)
DEFAULT_VERTICALS: Tuple[float, ...] = (0.1, 0.2)
MIN_SEPARATORS = 2

Point = Tuple[float, float]
Gap = Tuple[float, float]


class Orientation(str, Enum):
    """Separator orientation."""
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


class Extents(NamedTuple):
    """Bounding box of the grid in normalized coordinates."""
    xmin: float
    xmax: float
    ymin: float
    ymax: float


def _as_number(value: float, what: str) -> float:
    value = float(value)
    if math.isnan(value):
        raise InvalidSeparatorError(f"Separator {what} must be a number", value=value)
    return value


@dataclass
class Separator:
    """A single movable line; ``position`` is ``y`` for horizontals, ``x`` for verticals."""

    orientation: Orientation
    position: float

    def __post_init__(self) -> None:
        self.orientation = Orientation(self.orientation)
        self.position = _as_number(self.position, "position")

    @property
    def is_horizontal(self) -> bool:
        return self.orientation is Orientation.HORIZONTAL

    def translate(self, dx: float, dy: float) -> None:
        """Move the separator along its own axis by the matching delta component."""
        delta = _as_number(dy if self.is_horizontal else dx, "delta")
        self.position += delta

    def in_bounds(self, point: Point, thickness: float, extents: Extents) -> bool:
        """
        Check whether a point lies on this separator.

        The point must be within ``thickness`` of the separator along its axis
        and strictly inside the grid extents across it.
        """
        x, y = point
        if self.is_horizontal:
            along, across, low, high = y, x, extents.xmin, extents.xmax
        else:
            along, across, low, high = x, y, extents.ymin, extents.ymax
        return (
            self.position - thickness < along < self.position + thickness
            and low < across < high
        )


class Grid:
    """Horizontal and vertical separator collections, each with at least two members."""

    def __init__(
        self,
        horizontals: Iterable[float] = DEFAULT_HORIZONTALS,
        verticals: Iterable[float] = DEFAULT_VERTICALS,
    ) -> None:
        self.horizontals: List[Separator] = [
            Separator(Orientation.HORIZONTAL, y) for y in horizontals
        ]
        self.verticals: List[Separator] = [
            Separator(Orientation.VERTICAL, x) for x in verticals
        ]
        if len(self.horizontals) < MIN_SEPARATORS or len(self.verticals) < MIN_SEPARATORS:
            raise ValidationError(
                "A grid needs at least two horizontal and two vertical separators",
                horizontals=len(self.horizontals),
                verticals=len(self.verticals),
            )

    def __repr__(self) -> str:
        return (
            f"Grid(horizontals={[s.position for s in self.horizontals]}, "
            f"verticals={[s.position for s in self.verticals]})"
        )

    def reset(self) -> None:
        """Restore the default two-by-two grid."""
        default = Grid()
        self.horizontals = default.horizontals
        self.verticals = default.verticals

    def copy(self) -> "Grid":
        """Independent snapshot of the grid."""
        return copy.deepcopy(self)

    # Editing

    def add_horizontal(self, y: float) -> Separator:
        separator = Separator(Orientation.HORIZONTAL, y)
        self.horizontals.append(separator)
        return separator

    def add_vertical(self, x: float) -> Separator:
        separator = Separator(Orientation.VERTICAL, x)
        self.verticals.append(separator)
        return separator

    def remove_horizontal(self) -> bool:
        """Remove the lowest horizontal separator; refused when only two remain."""
        if len(self.horizontals) <= MIN_SEPARATORS:
            logger.debug("Refusing to remove horizontal separator: minimum reached")
            return False
        self.sort()
        del self.horizontals[0]
        return True

    def remove_vertical(self) -> bool:
        """Remove the right-most vertical separator; refused when only two remain."""
        if len(self.verticals) <= MIN_SEPARATORS:
            logger.debug("Refusing to remove vertical separator: minimum reached")
            return False
        self.sort()
        self.verticals.pop()
        return True

    def sort(self) -> None:
        """Sort both collections ascending by position."""
        self.horizontals.sort(key=lambda s: s.position)
        self.verticals.sort(key=lambda s: s.position)

    def translate(self, separator: Separator, dx: float, dy: float) -> None:
        separator.translate(dx, dy)

    def translate_all(self, dx: float, dy: float) -> None:
        """Shift the whole grid by a delta."""
        _as_number(dx, "delta")
        _as_number(dy, "delta")
        for separator in self.horizontals + self.verticals:
            separator.translate(dx, dy)

    # Derived geometry

    def extents(self) -> Extents:
        self.sort()
        return Extents(
            xmin=self.verticals[0].position,
            xmax=self.verticals[-1].position,
            ymin=self.horizontals[0].position,
            ymax=self.horizontals[-1].position,
        )

    def hit_test(
        self,
        point: Point,
        thickness: Union[float, Tuple[float, float]],
        extents: Optional[Extents] = None,
    ) -> Optional[Separator]:
        """
        Find the separator under a point.

        Args:
            point: Query point in normalized coordinates
            thickness: Half-width of a separator, either one value or
                ``(dx, dy)`` where verticals use ``dx`` and horizontals ``dy``
            extents: Grid extents; computed from the grid when omitted

        Returns:
            The first matching separator, horizontals before verticals, or None
        """
        if isinstance(thickness, numbers.Real):
            dx = dy = float(thickness)
        else:
            dx, dy = thickness
        if extents is None:
            extents = self.extents()

        for separator in self.horizontals:
            if separator.in_bounds(point, dy, extents):
                return separator
        for separator in self.verticals:
            if separator.in_bounds(point, dx, extents):
                return separator
        return None

    @property
    def shape(self) -> Tuple[int, int]:
        """Table shape ``(rows, cols)`` this grid partitions the image into."""
        return len(self.horizontals) - 1, len(self.verticals) - 1

    @property
    def n_cells(self) -> int:
        rows, cols = self.shape
        return rows * cols

    def row_gaps(self) -> List[Gap]:
        """Adjacent horizontal pairs ordered top to bottom (descending ``y``)."""
        self.sort()
        return _adjacent_pairs([s.position for s in self.horizontals])[::-1]

    def col_gaps(self) -> List[Gap]:
        """Adjacent vertical pairs ordered left to right."""
        self.sort()
        return _adjacent_pairs([s.position for s in self.verticals])


def _adjacent_pairs(values: Sequence[float]) -> List[Gap]:
    return list(zip(values, values[1:]))

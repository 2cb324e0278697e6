"""Table assembly from recognition results and delimited text export."""

import logging
from pathlib import Path
from typing import Iterable, List, Tuple, Union

from .dispatcher import JobResult

logger = logging.getLogger(__name__)


class Table:
    """Matrix of cell strings, row 0 at the top of the image."""

    def __init__(self, items: List[List[str]]) -> None:
        self.items = items

    @classmethod
    def empty(cls, n_rows: int, n_cols: int) -> "Table":
        return cls([["" for _ in range(n_cols)] for _ in range(n_rows)])

    def __repr__(self) -> str:
        return f"Table(shape={self.shape})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Table):
            return NotImplemented
        return self.items == other.items

    def __iter__(self):
        return iter(self.items)

    @property
    def shape(self) -> Tuple[int, int]:
        n_rows = len(self.items)
        n_cols = len(self.items[0]) if n_rows else 0
        return n_rows, n_cols

    def get(self, row: int, col: int) -> str:
        return self.items[row][col]

    def set(self, row: int, col: int, text: str) -> None:
        self.items[row][col] = text

    def place(self, result: JobResult) -> None:
        """Write a successful result into its cell; failed results leave the cell as is."""
        if result.ok:
            self.items[result.row][result.col] = result.text

    def empty_cells(self) -> List[Tuple[int, int]]:
        return [
            (i, j)
            for i, row in enumerate(self.items)
            for j, item in enumerate(row)
            if item == ""
        ]

    def to_delimited(self) -> str:
        """
        Serialize as quoted, comma-separated text.

        Each field is wrapped in double quotes without escaping, fields are
        joined by ``", "`` and rows by newlines.
        """
        return "\n".join(
            ", ".join(f'"{item}"' for item in row)
            for row in self.items
        )

    def save(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.write_text(self.to_delimited(), encoding="utf-8")
        logger.info(f"Table written to {path}")
        return path


def assemble(shape: Tuple[int, int], results: Iterable[JobResult]) -> Table:
    """
    Place job results into a table of the given shape.

    The result does not depend on the order of ``results``.
    """
    table = Table.empty(*shape)
    for result in results:
        table.place(result)
    return table

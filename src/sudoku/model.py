"""Board geometry and grid validation for N x N Sudoku (N = b * b)."""

import operator
from dataclasses import dataclass, field
from functools import lru_cache
from math import isqrt
from typing import Any, List, Optional, Sequence, Tuple

Grid = List[List[int]]
Cell = Tuple[int, int]


@lru_cache(maxsize=None)
def _geometry(size: int) -> Tuple[Tuple[Tuple[int, ...], ...], Tuple[Tuple[int, ...], ...]]:
    """Return (units, peers) for a board of the given size.

    Units are the rows, then the columns, then the boxes. Peers are the
    distinct cells sharing a unit with each cell, excluding the cell itself.
    """
    box = isqrt(size)
    rows = [tuple(r * size + c for c in range(size)) for r in range(size)]
    cols = [tuple(r * size + c for r in range(size)) for c in range(size)]
    boxes = []
    for band in range(0, size, box):
        for stack in range(0, size, box):
            boxes.append(
                tuple(
                    (band + i) * size + (stack + j)
                    for i in range(box)
                    for j in range(box)
                )
            )
    units = tuple(rows + cols + boxes)

    peers = []
    for index in range(size * size):
        row, col = divmod(index, size)
        box_index = (row // box) * box + col // box
        members = set(rows[row]) | set(cols[col]) | set(boxes[box_index])
        members.discard(index)
        peers.append(tuple(sorted(members)))
    return units, tuple(peers)


@dataclass
class Board:
    """Static geometry of an N x N board with b x b boxes."""

    size: int
    box_size: int = field(init=False)
    units: Tuple[Tuple[int, ...], ...] = field(init=False, repr=False)
    peers: Tuple[Tuple[int, ...], ...] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if isinstance(self.size, bool) or not isinstance(self.size, int):
            raise TypeError(f"Board size must be an integer, got {self.size!r}")
        if self.size < 1:
            raise ValueError(f"Board size must be positive, got {self.size}")
        box = isqrt(self.size)
        if box * box != self.size:
            raise ValueError(f"Board size must be a perfect square, got {self.size}")
        self.box_size = box
        # Shared between every board of this size; never mutated.
        self.units, self.peers = _geometry(self.size)

    @property
    def cell_count(self) -> int:
        return self.size * self.size

    def index(self, row: int, col: int) -> int:
        if not (0 <= row < self.size and 0 <= col < self.size):
            raise IndexError(f"Cell ({row}, {col}) is outside a {self.size}x{self.size} board")
        return row * self.size + col

    def position(self, index: int) -> Cell:
        return divmod(index, self.size)

    def peers_of(self, row: int, col: int) -> List[Cell]:
        return [self.position(p) for p in self.peers[self.index(row, col)]]

    def validate_grid(self, grid: Optional[Sequence[Sequence[Any]]]) -> Grid:
        """Check shape and value range; return a normalized copy of the grid."""
        if grid is None:
            raise ValueError("Input grid is missing")
        if len(grid) != self.size:
            raise ValueError(f"Expected {self.size} rows, got {len(grid)}")

        normalized: Grid = []
        for r, row in enumerate(grid):
            if row is None or len(row) != self.size:
                got = "None" if row is None else len(row)
                raise ValueError(f"Row {r}: expected {self.size} values, got {got}")
            clean_row: List[int] = []
            for c, value in enumerate(row):
                if isinstance(value, bool):
                    raise TypeError(f"Cell ({r}, {c}): expected an integer, got {value!r}")
                try:
                    # Accepts numpy integers coming out of pandas frames.
                    value = operator.index(value)
                except TypeError:
                    raise TypeError(
                        f"Cell ({r}, {c}): expected an integer, got {value!r}"
                    ) from None
                if not 0 <= value <= self.size:
                    raise ValueError(
                        f"Cell ({r}, {c}): value {value} outside 0..{self.size}"
                    )
                clean_row.append(value)
            normalized.append(clean_row)
        return normalized

    def is_solution(self, grid: Optional[Sequence[Sequence[int]]]) -> bool:
        """True when every row, column and box is a permutation of 1..N."""
        if grid is None or len(grid) != self.size:
            return False
        if any(len(row) != self.size for row in grid):
            return False
        flat = [value for row in grid for value in row]
        expected = set(range(1, self.size + 1))
        return all({flat[i] for i in unit} == expected for unit in self.units)

    def preserves_givens(
        self, givens: Sequence[Sequence[int]], grid: Sequence[Sequence[int]]
    ) -> bool:
        for r in range(self.size):
            for c in range(self.size):
                if givens[r][c] and givens[r][c] != grid[r][c]:
                    return False
        return True

    def empty_grid(self) -> Grid:
        return [[0] * self.size for _ in range(self.size)]

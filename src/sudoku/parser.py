"""Puzzle parser: turn raw records and text into validated grids.

Supports:
- nested N x N lists and flat lists of N*N integers
- the "header" text format: N followed by N*N whitespace separated integers
- plain whitespace/comma separated integers (N inferred from the count)
- compact strings, one character per cell ('0' or '.' for blanks, 1-9, then A-Z for 10+)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from math import isqrt
from typing import Any, Dict, List, Optional

from .model import Board, Grid

_GRID_KEYS = ("puzzle", "quizzes", "quiz", "grid", "board")
_SOLUTION_KEYS = ("solution", "solutions")
_BLANKS = ".0_-*"


@dataclass
class Puzzle:
    id: str
    size: int
    grid: Grid
    solution: Optional[Grid] = None


def _infer_size(cell_count: int) -> int:
    size = isqrt(cell_count)
    if size * size != cell_count:
        raise ValueError(f"{cell_count} cells cannot form a square grid")
    # Board() rejects sizes that are not perfect squares themselves.
    Board(size)
    return size


def _fits(cell_count: int, size: Optional[int]) -> bool:
    if size is not None:
        return cell_count == size * size
    side = isqrt(cell_count)
    box = isqrt(side)
    return cell_count > 0 and side * side == cell_count and box * box == side


def _char_value(ch: str) -> int:
    if ch in _BLANKS:
        return 0
    if ch.isdigit():
        return int(ch)
    if ch.isalpha() and ch.isascii():
        return ord(ch.upper()) - ord("A") + 10
    raise ValueError(f"Unexpected character {ch!r} in compact grid")


def _chunk(values: List[int], size: int) -> Grid:
    return [values[r * size:(r + 1) * size] for r in range(size)]


def _parse_text(text: str, size: Optional[int]) -> Grid:
    tokens = [t for t in re.split(r"[\s,;|]+", text.strip()) if t]
    if not tokens:
        raise ValueError("Empty puzzle text")

    if len(tokens) > 1 and all(re.fullmatch(r"\d+", t) for t in tokens):
        numbers = [int(t) for t in tokens]
        # Header form: first number is N and exactly N*N values follow.
        header = numbers[0]
        if (size is None or header == size) and len(numbers) == header * header + 1:
            Board(header)
            return _chunk(numbers[1:], header)
        if _fits(len(numbers), size):
            return _chunk(numbers, size or isqrt(len(numbers)))
        # Otherwise the tokens are rows of a digit-only compact grid.

    compact = "".join(tokens)
    if size is None:
        size = _infer_size(len(compact))
    if len(compact) != size * size:
        raise ValueError(f"Expected {size * size} cells, got {len(compact)}")
    return _chunk([_char_value(ch) for ch in compact], size)


def parse_grid(raw: Any, size: Optional[int] = None) -> Grid:
    """Convert any supported grid representation into a validated N x N grid."""
    if raw is None:
        raise ValueError("Input grid is missing")

    if isinstance(raw, str):
        grid = _parse_text(raw, size)
    elif hasattr(raw, "tolist"):
        # numpy arrays coming from parquet columns
        return parse_grid(raw.tolist(), size)
    elif isinstance(raw, (list, tuple)):
        if raw and all(isinstance(row, (list, tuple)) or hasattr(row, "tolist") for row in raw):
            grid = [list(row.tolist() if hasattr(row, "tolist") else row) for row in raw]
        else:
            values = list(raw)
            if size is None:
                size = _infer_size(len(values))
            if len(values) != size * size:
                raise ValueError(f"Expected {size * size} values, got {len(values)}")
            grid = _chunk(values, size)
    else:
        raise TypeError(f"Unsupported grid representation: {type(raw).__name__}")

    board = Board(size if size is not None else len(grid))
    return board.validate_grid(grid)


def parse_puzzle(record: Dict[str, Any]) -> Puzzle:
    """Build a Puzzle from a raw record (as returned by the loader)."""
    raw_grid = None
    for key in _GRID_KEYS:
        if record.get(key) is not None:
            raw_grid = record[key]
            break
    if raw_grid is None:
        raise ValueError(f"Record {record.get('id', '?')!r} has no puzzle grid")

    size = record.get("size")
    size = int(size) if size not in (None, "") else None
    grid = parse_grid(raw_grid, size)
    size = len(grid)

    solution = None
    for key in _SOLUTION_KEYS:
        value = record.get(key)
        if value is not None and not (isinstance(value, str) and not value.strip()):
            solution = parse_grid(value, size)
            break

    return Puzzle(
        id=str(record.get("id", "unknown")),
        size=size,
        grid=grid,
        solution=solution,
    )


def format_compact(grid: Grid) -> str:
    """One character per cell; inverse of the compact string form."""
    chars = []
    for row in grid:
        for value in row:
            if value > 35:
                raise ValueError(f"Value {value} has no single-character form")
            chars.append(str(value) if value < 10 else chr(ord("A") + value - 10))
    return "".join(chars)

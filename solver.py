"""Top-level solve interface.

Expose `solve_puzzle(puzzle)` that accepts a parsed `Puzzle`, a raw puzzle
dictionary compatible with `src.sudoku.parser.parse_puzzle`, or a bare grid
(nested list, flat list, or string).
"""

from typing import Any, Optional

from src.sudoku.engine import GridEngine
from src.sudoku.model import Grid
from src.sudoku.parser import Puzzle, parse_grid, parse_puzzle
from src.utils.trace import Tracer


def solve_puzzle(puzzle: Any, tracer: Optional[Tracer] = None) -> Optional[Grid]:
    """
    Solve a puzzle and return the completed grid, or None when it has no solution.
    Accepts:
      - Puzzle instances (used directly)
      - Raw puzzle dictionaries (parsed via `parse_puzzle`)
      - Grids as nested lists, flat lists or strings (parsed via `parse_grid`)
    """
    if isinstance(puzzle, Puzzle):
        grid = puzzle.grid
    elif isinstance(puzzle, dict):
        grid = parse_puzzle(puzzle).grid
    elif isinstance(puzzle, (list, tuple, str)):
        grid = parse_grid(puzzle)
    else:
        raise TypeError("solve_puzzle expects a Puzzle, a puzzle dictionary, or a grid")

    engine = GridEngine(len(grid), tracer=tracer)
    if not engine.solve(grid):
        return None
    return engine.solution()


__all__ = ["solve_puzzle"]

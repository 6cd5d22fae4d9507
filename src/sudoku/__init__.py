"""Board model, parsing, and the propagation/backtracking engine for N x N Sudoku."""

from .model import Board, Grid
from .engine import EngineState, GridEngine
from .parser import Puzzle, format_compact, parse_grid, parse_puzzle

__all__ = [
    "Board",
    "Grid",
    "EngineState",
    "GridEngine",
    "Puzzle",
    "format_compact",
    "parse_grid",
    "parse_puzzle",
]

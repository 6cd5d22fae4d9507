"""Grid engine: per-cell possibility tracking, propagation, and backtracking search.

The engine owns one board's worth of state. Each cell carries its assigned
value (0 while unknown) and its possibility set; the remaining count of a
cell is the size of that set and is never allowed to reach zero.

Propagation works off a queue of pending assignments: assigning a value
eliminates it from every peer, and a peer left with a single candidate is
queued for assignment in turn. Every step removes at least one candidate
from the board, so the total number of candidates strictly decreases and the
cascade terminates.

Search branches on one cell at a time (values ascending, first success wins).
Instead of cloning the engine at each branch point it keeps a stack of
checkpoints and restores the snapshot before each trial, which yields the
same sequence of trials and the same answer as copy-per-branch recursion.
"""

from collections import Counter, deque
from dataclasses import dataclass
from enum import Enum
from typing import Deque, Iterator, List, Optional, Sequence, Set, Tuple

from .model import Board, Cell, Grid
from src.utils.trace import Tracer, get_tracer

Pending = Deque[Tuple[int, int]]


class EngineState(Enum):
    EMPTY = "empty"
    LOADING = "loading"
    PROPAGATING = "propagating"
    SEARCHING = "searching"
    COMPLETE = "complete"
    CONTRADICTED = "contradicted"


@dataclass
class _Checkpoint:
    values: List[int]
    candidates: List[Set[int]]


@dataclass
class _BranchPoint:
    index: int
    checkpoint: _Checkpoint
    trials: Iterator[int]


class GridEngine:
    """Constraint propagation plus backtracking for an N x N board."""

    def __init__(self, size: int, tracer: Optional[Tracer] = None) -> None:
        self.board = Board(size)
        self.size = self.board.size
        self.tracer = tracer or get_tracer()
        self.branches = 0
        self.backtracks = 0
        self._reset()
        self.state = EngineState.EMPTY

    def _reset(self) -> None:
        cells = self.board.cell_count
        self._values: List[int] = [0] * cells
        self._candidates: List[Set[int]] = [
            set(range(1, self.size + 1)) for _ in range(cells)
        ]
        self.branches = 0
        self.backtracks = 0

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def solve(self, grid: Optional[Sequence[Sequence[int]]]) -> bool:
        """Load the givens, then search. False when no solution exists."""
        return self.load(grid) and self.search()

    def load(self, grid: Optional[Sequence[Sequence[int]]]) -> bool:
        """Reset the engine and assign every given in row-major order.

        Malformed grids raise before anything is touched. Returns False on the
        first conflicting given; the engine is then contradicted and should be
        discarded or loaded again.
        """
        givens = self.board.validate_grid(grid)
        self.state = EngineState.LOADING
        self._reset()
        for row, values in enumerate(givens):
            for col, value in enumerate(values):
                if not self._assign(self.board.index(row, col), value, "given"):
                    return self._fail()
        self._settle()
        return True

    def assign(self, row: int, col: int, value: int) -> bool:
        """Fix a cell to `value` and propagate. 0 is a no-op."""
        self._ensure_mutable()
        self._check_value(value, allow_zero=True)
        if not self._assign(self.board.index(row, col), value, "assign"):
            return self._fail()
        self._settle()
        return True

    def eliminate(self, row: int, col: int, value: int) -> bool:
        """Remove `value` from a cell's possibilities and propagate."""
        self._ensure_mutable()
        self._check_value(value, allow_zero=False)
        pending: Pending = deque()
        if not self._remove(self.board.index(row, col), value, pending):
            return self._fail()
        if not self._propagate(pending, "eliminate"):
            return self._fail()
        self._settle()
        return True

    def search(self) -> bool:
        """Fill the remaining cells by trial and error.

        Returns True with the engine holding a complete grid, or False when
        every branch ends in a contradiction.
        """
        if self.state is EngineState.COMPLETE:
            return True
        if self.state is EngineState.CONTRADICTED:
            raise RuntimeError("Cannot search a contradicted engine; load a new grid")
        self.state = EngineState.SEARCHING

        if not self._place_hidden_singles():
            return self._fail()
        target = self._select_branch_index()
        if target is None:
            return self._finish(depth=0)

        stack: List[_BranchPoint] = [self._open_branch(target)]
        while stack:
            branch = stack[-1]
            row, col = self.board.position(branch.index)
            value = next(branch.trials, None)
            if value is None:
                stack.pop()
                self.backtracks += 1
                self.tracer.log_backtrack(row, col, depth=len(stack))
                continue

            self._restore(branch.checkpoint)
            self.branches += 1
            self.tracer.log_assign(
                row,
                col,
                value,
                remaining=len(branch.checkpoint.candidates[branch.index]),
                depth=len(stack),
            )
            if not self._assign(branch.index, value, "branch"):
                continue
            if not self._place_hidden_singles():
                continue

            target = self._select_branch_index()
            if target is None:
                return self._finish(depth=len(stack))
            stack.append(self._open_branch(target))

        return self._fail()

    def select_branch_cell(self) -> Optional[Cell]:
        """Cell the search would branch on next, or None when all are assigned."""
        index = self._select_branch_index()
        return None if index is None else self.board.position(index)

    def most_contended_value(self) -> Optional[int]:
        """Value listed by the most unassigned cells; ties go to the smaller value."""
        counts: Counter = Counter()
        for index, cell in enumerate(self._candidates):
            if not self._values[index]:
                counts.update(cell)
        if not counts:
            return None
        return max(sorted(counts), key=lambda value: counts[value])

    def copy(self) -> "GridEngine":
        """Independent engine holding a deep copy of this one's state."""
        clone = GridEngine(self.size, tracer=self.tracer)
        clone.copy_from(self)
        return clone

    def copy_from(self, other: "GridEngine") -> None:
        if other.size != self.size:
            raise ValueError(
                f"Cannot copy a {other.size}x{other.size} engine into a {self.size}x{self.size} one"
            )
        self._values = list(other._values)
        self._candidates = [set(cell) for cell in other._candidates]
        self.state = other.state
        self.branches = other.branches
        self.backtracks = other.backtracks

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def grid(self) -> Grid:
        n = self.size
        return [self._values[r * n:(r + 1) * n] for r in range(n)]

    def solution(self) -> Optional[Grid]:
        """The solved grid, or None unless the engine is complete."""
        if self.state is not EngineState.COMPLETE:
            return None
        return self.grid

    def candidates(self, row: int, col: int) -> Tuple[int, ...]:
        return tuple(sorted(self._candidates[self.board.index(row, col)]))

    def remaining(self, row: int, col: int) -> int:
        return len(self._candidates[self.board.index(row, col)])

    def total_candidates(self) -> int:
        return sum(len(cell) for cell in self._candidates)

    def is_complete(self) -> bool:
        return all(self._values)

    # ------------------------------------------------------------------
    # Propagation
    # ------------------------------------------------------------------

    def _assign(self, index: int, value: int, reason: str) -> bool:
        if value == 0:
            return True
        return self._propagate(deque([(index, value)]), reason)

    def _propagate(self, pending: Pending, reason: str) -> bool:
        """Drain the queue of forced assignments, eliminating from peers."""
        forced = 0
        while pending:
            index, value = pending.popleft()
            cell = self._candidates[index]
            if value not in cell:
                return self._conflict(index, value, "value already eliminated")
            if self._values[index] == value:
                continue
            cell.intersection_update((value,))
            self._values[index] = value
            forced += 1
            for peer in self.board.peers[index]:
                if not self._remove(peer, value, pending):
                    return False
        self.tracer.log_propagation(forced, reason)
        return True

    def _remove(self, index: int, value: int, pending: Pending) -> bool:
        cell = self._candidates[index]
        if value not in cell:
            return True
        if len(cell) == 1:
            return self._conflict(index, value, "would remove last candidate")
        cell.discard(value)
        if len(cell) == 1:
            pending.append((index, next(iter(cell))))
        return True

    def _place_hidden_singles(self) -> bool:
        """Assign values that no peer can hold, until nothing changes."""
        peers = self.board.peers
        changed = True
        while changed:
            changed = False
            for index in range(self.board.cell_count):
                if self._values[index]:
                    continue
                hidden = set(self._candidates[index])
                for peer in peers[index]:
                    hidden -= self._candidates[peer]
                    if not hidden:
                        break
                if not hidden:
                    continue
                if len(hidden) > 1:
                    return self._conflict(index, None, "several values fit only this cell")
                value = hidden.pop()
                row, col = self.board.position(index)
                self.tracer.log_hidden_single(row, col, value)
                if not self._assign(index, value, "hidden single"):
                    return False
                changed = True
        return True

    # ------------------------------------------------------------------
    # Search helpers
    # ------------------------------------------------------------------

    def _select_branch_index(self) -> Optional[int]:
        unassigned = [i for i, value in enumerate(self._values) if not value]
        if not unassigned:
            return None
        contended = self.most_contended_value()
        pool = [i for i in unassigned if contended in self._candidates[i]]
        # Fallback: plain most-constrained cell.
        if not pool:
            pool = unassigned
        return min(pool, key=lambda i: (len(self._candidates[i]), i))

    def _open_branch(self, index: int) -> _BranchPoint:
        return _BranchPoint(
            index=index,
            checkpoint=self._snapshot(),
            trials=iter(sorted(self._candidates[index])),
        )

    def _snapshot(self) -> _Checkpoint:
        return _Checkpoint(
            values=list(self._values),
            candidates=[set(cell) for cell in self._candidates],
        )

    def _restore(self, checkpoint: _Checkpoint) -> None:
        # The checkpoint is reused for every trial at its branch point.
        self._values = list(checkpoint.values)
        self._candidates = [set(cell) for cell in checkpoint.candidates]

    # ------------------------------------------------------------------
    # State bookkeeping
    # ------------------------------------------------------------------

    def _conflict(self, index: int, value: Optional[int], reason: str) -> bool:
        row, col = self.board.position(index)
        self.tracer.log_contradiction(row, col, value, reason)
        return False

    def _settle(self) -> None:
        self.state = EngineState.COMPLETE if self.is_complete() else EngineState.PROPAGATING

    def _finish(self, depth: int) -> bool:
        self.state = EngineState.COMPLETE
        self.tracer.log_solution_found(depth=depth)
        return True

    def _fail(self) -> bool:
        self.state = EngineState.CONTRADICTED
        return False

    def _ensure_mutable(self) -> None:
        if self.state in (EngineState.COMPLETE, EngineState.CONTRADICTED):
            raise RuntimeError(f"Engine is {self.state.value}; load a new grid first")

    def _check_value(self, value: int, allow_zero: bool) -> None:
        low = 0 if allow_zero else 1
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"Expected an integer value, got {value!r}")
        if not low <= value <= self.size:
            raise ValueError(f"Value {value} outside {low}..{self.size}")

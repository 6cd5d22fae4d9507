"""Unit tests for the grid engine: propagation, heuristic, and search."""

import pytest

from src.sudoku.engine import EngineState, GridEngine
from src.sudoku.model import Board
from src.utils.trace import Tracer

CLASSIC = [
    [5, 3, 0, 0, 7, 0, 0, 0, 0],
    [6, 0, 0, 1, 9, 5, 0, 0, 0],
    [0, 9, 8, 0, 0, 0, 0, 6, 0],
    [8, 0, 0, 0, 6, 0, 0, 0, 3],
    [4, 0, 0, 8, 0, 3, 0, 0, 1],
    [7, 0, 0, 0, 2, 0, 0, 0, 6],
    [0, 6, 0, 0, 0, 0, 2, 8, 0],
    [0, 0, 0, 4, 1, 9, 0, 0, 5],
    [0, 0, 0, 0, 8, 0, 0, 7, 9],
]

CLASSIC_SOLUTION = [
    [5, 3, 4, 6, 7, 8, 9, 1, 2],
    [6, 7, 2, 1, 9, 5, 3, 4, 8],
    [1, 9, 8, 3, 4, 2, 5, 6, 7],
    [8, 5, 9, 7, 6, 1, 4, 2, 3],
    [4, 2, 6, 8, 5, 3, 7, 9, 1],
    [7, 1, 3, 9, 2, 4, 8, 5, 6],
    [9, 6, 1, 5, 3, 7, 2, 8, 4],
    [2, 8, 7, 4, 1, 9, 6, 3, 5],
    [3, 4, 5, 2, 8, 6, 1, 7, 9],
]

HARD = [
    [8, 0, 0, 0, 0, 0, 0, 0, 0],
    [0, 0, 3, 6, 0, 0, 0, 0, 0],
    [0, 7, 0, 0, 9, 0, 2, 0, 0],
    [0, 5, 0, 0, 0, 7, 0, 0, 0],
    [0, 0, 0, 0, 4, 5, 7, 0, 0],
    [0, 0, 0, 1, 0, 0, 0, 3, 0],
    [0, 0, 1, 0, 0, 0, 0, 6, 8],
    [0, 0, 8, 5, 0, 0, 0, 1, 0],
    [0, 9, 0, 0, 0, 0, 4, 0, 0],
]

SMALL = [
    [1, 0, 0, 4],
    [0, 0, 1, 0],
    [0, 1, 0, 0],
    [4, 0, 0, 1],
]


def _engine(size):
    return GridEngine(size, tracer=Tracer())


def _pattern_solution(size):
    box = Board(size).box_size
    return [
        [(box * (r % box) + r // box + c) % size + 1 for c in range(size)]
        for r in range(size)
    ]


def test_fresh_engine_has_every_value_possible():
    engine = _engine(4)
    assert engine.state is EngineState.EMPTY
    assert engine.candidates(2, 3) == (1, 2, 3, 4)
    assert engine.remaining(2, 3) == 4
    assert engine.total_candidates() == 64
    assert engine.grid == [[0] * 4 for _ in range(4)]


def test_non_square_size_is_rejected():
    with pytest.raises(ValueError):
        GridEngine(5)


def test_assign_eliminates_from_peers_only():
    engine = _engine(4)
    assert engine.assign(0, 0, 1)
    assert engine.candidates(0, 0) == (1,)
    assert engine.candidates(0, 3) == (2, 3, 4)  # row
    assert engine.candidates(3, 0) == (2, 3, 4)  # column
    assert engine.candidates(1, 1) == (2, 3, 4)  # box
    assert engine.candidates(1, 2) == (1, 2, 3, 4)
    # 3 removed from the cell itself, 1 from each of its 7 peers
    assert engine.total_candidates() == 64 - 3 - 7


def test_assign_zero_is_a_noop():
    engine = _engine(4)
    assert engine.assign(2, 2, 0)
    assert engine.total_candidates() == 64


def test_assign_rejects_out_of_range_value():
    engine = _engine(4)
    with pytest.raises(ValueError):
        engine.assign(0, 0, 5)
    with pytest.raises(TypeError):
        engine.assign(0, 0, True)


def test_assign_eliminated_value_is_a_conflict():
    engine = _engine(4)
    assert engine.assign(0, 0, 1)
    assert not engine.assign(0, 1, 1)
    assert engine.state is EngineState.CONTRADICTED


def test_contradicted_engine_refuses_further_mutation():
    engine = _engine(4)
    engine.assign(0, 0, 1)
    engine.assign(0, 1, 1)
    with pytest.raises(RuntimeError):
        engine.assign(2, 2, 3)
    with pytest.raises(RuntimeError):
        engine.search()


def test_eliminate_is_idempotent():
    engine = _engine(4)
    assert engine.eliminate(1, 1, 3)
    before = engine.total_candidates()
    assert engine.eliminate(1, 1, 3)
    assert engine.total_candidates() == before
    assert engine.candidates(1, 1) == (1, 2, 4)


def test_eliminate_down_to_one_candidate_cascades():
    engine = _engine(4)
    assert engine.eliminate(0, 0, 1)
    assert engine.eliminate(0, 0, 2)
    assert engine.grid[0][0] == 0
    assert engine.eliminate(0, 0, 3)
    assert engine.grid[0][0] == 4
    for row, col in engine.board.peers_of(0, 0):
        assert 4 not in engine.candidates(row, col)


def test_eliminating_last_candidate_is_a_conflict():
    engine = _engine(4)
    assert engine.assign(0, 0, 2)
    assert not engine.eliminate(0, 0, 2)
    assert engine.state is EngineState.CONTRADICTED


def test_propagation_strictly_reduces_candidates():
    engine = _engine(9)
    previous = engine.total_candidates()
    for r, row in enumerate(CLASSIC):
        for c, value in enumerate(row):
            if value:
                assert engine.assign(r, c, value)
                current = engine.total_candidates()
                assert current <= previous
                previous = current
    assert previous < 81 * 9


def test_load_rejects_malformed_grids():
    engine = _engine(4)
    with pytest.raises(ValueError):
        engine.load(None)
    with pytest.raises(ValueError):
        engine.load([[0] * 4 for _ in range(3)])
    with pytest.raises(ValueError):
        engine.load([[0, 0, 0, 5]] + [[0] * 4 for _ in range(3)])
    assert engine.state is EngineState.EMPTY


def test_load_detects_duplicates_in_row_column_and_box():
    row_dup = [[1, 1, 2, 3], [0] * 4, [0] * 4, [0] * 4]
    col_dup = [[2, 0, 0, 0], [0] * 4, [2, 0, 0, 0], [0] * 4]
    box_dup = [[3, 0, 0, 0], [0, 3, 0, 0], [0] * 4, [0] * 4]
    for grid in (row_dup, col_dup, box_dup):
        engine = _engine(4)
        assert not engine.solve(grid)
        assert engine.state is EngineState.CONTRADICTED
        assert engine.solution() is None


def test_load_resets_previous_state():
    engine = _engine(4)
    assert not engine.load([[1, 1, 2, 3], [0] * 4, [0] * 4, [0] * 4])
    assert engine.load(SMALL)
    assert engine.candidates(0, 0) == (1,)
    assert engine.state is EngineState.PROPAGATING


def test_small_puzzle_solves_and_keeps_givens():
    engine = _engine(4)
    assert engine.solve(SMALL)
    solution = engine.solution()
    assert engine.board.is_solution(solution)
    assert engine.board.preserves_givens(SMALL, solution)
    # The puzzle has two completions; the ascending value order picks this one.
    assert solution == [
        [1, 2, 3, 4],
        [3, 4, 1, 2],
        [2, 1, 4, 3],
        [4, 3, 2, 1],
    ]
    assert engine.branches >= 1


def test_hidden_values_are_placed_before_branching():
    tracer = Tracer()
    engine = GridEngine(4, tracer=tracer)
    assert engine.solve(SMALL)
    assert tracer.summary()["action_counts"].get("hidden_single", 0) >= 1


def test_classic_puzzle_matches_known_solution():
    engine = _engine(9)
    assert engine.solve(CLASSIC)
    assert engine.solution() == CLASSIC_SOLUTION
    assert engine.state is EngineState.COMPLETE


def test_hard_puzzle_needs_search():
    engine = _engine(9)
    assert engine.solve(HARD)
    solution = engine.solution()
    assert engine.board.is_solution(solution)
    assert engine.board.preserves_givens(HARD, solution)
    assert engine.branches > 0


def test_complete_grid_is_returned_unchanged_without_branching():
    engine = _engine(9)
    assert engine.load(CLASSIC_SOLUTION)
    assert engine.state is EngineState.COMPLETE
    assert engine.search()
    assert engine.solution() == CLASSIC_SOLUTION
    assert engine.branches == 0


def test_resolving_a_solution_is_idempotent():
    first = _engine(9)
    assert first.solve(HARD)
    second = _engine(9)
    assert second.solve(first.solution())
    assert second.solution() == first.solution()
    assert second.branches == 0


def test_single_blank_cell_is_forced_by_propagation():
    grid = [row[:] for row in CLASSIC_SOLUTION]
    grid[4][4] = 0
    engine = _engine(9)
    assert engine.load(grid)
    assert engine.grid[4][4] == 5
    assert engine.search()
    assert engine.solution() == CLASSIC_SOLUTION
    assert engine.branches == 0


def test_unsolvable_puzzle_exhausts_search():
    # Row 0 needs {1, 2, 9} in its first three cells, but 9 is blocked by the box.
    grid = [[0] * 9 for _ in range(9)]
    grid[0] = [0, 0, 0, 3, 4, 5, 6, 7, 8]
    grid[1][0] = 9
    engine = _engine(9)
    assert engine.load(grid)
    assert not engine.search()
    assert engine.state is EngineState.CONTRADICTED
    assert engine.solution() is None
    assert engine.backtracks >= 1


def test_empty_board_gets_filled():
    engine = _engine(9)
    assert engine.solve(engine.board.empty_grid())
    assert engine.board.is_solution(engine.solution())


def test_sixteen_by_sixteen_puzzle():
    solution = _pattern_solution(16)
    puzzle = [
        [0 if (r + 2 * c) % 3 == 0 else value for c, value in enumerate(row)]
        for r, row in enumerate(solution)
    ]
    engine = _engine(16)
    assert engine.solve(puzzle)
    assert engine.board.is_solution(engine.solution())
    assert engine.board.preserves_givens(puzzle, engine.solution())


def test_one_by_one_board():
    engine = _engine(1)
    assert engine.solve([[0]])
    assert engine.solution() == [[1]]


def test_most_contended_value_prefers_smallest_on_ties():
    engine = _engine(4)
    assert engine.most_contended_value() == 1
    engine.assign(0, 0, 1)
    assert engine.most_contended_value() == 2


def test_branch_cell_is_most_constrained_holder_of_contended_value():
    engine = _engine(4)
    assert engine.select_branch_cell() == (0, 0)
    engine.assign(0, 0, 1)
    # Peers of (0, 0) have three candidates left and all still list 2.
    assert engine.select_branch_cell() == (0, 1)


def test_branch_cell_falls_back_to_most_constrained(monkeypatch):
    engine = _engine(4)
    engine.assign(0, 0, 1)
    monkeypatch.setattr(engine, "most_contended_value", lambda: None)
    assert engine.select_branch_cell() == (0, 1)


def test_branch_cell_is_none_when_complete():
    engine = _engine(9)
    engine.load(CLASSIC_SOLUTION)
    assert engine.select_branch_cell() is None
    assert engine.most_contended_value() is None


def test_copy_is_independent():
    engine = _engine(4)
    engine.assign(0, 0, 1)
    clone = engine.copy()
    assert clone.assign(3, 3, 2)
    assert engine.grid[3][3] == 0
    assert engine.candidates(3, 3) == (1, 2, 3, 4)
    assert clone.candidates(3, 2) == (1, 3, 4)


def test_copy_from_overwrites_state():
    source = _engine(4)
    assert source.solve(SMALL)
    target = _engine(4)
    target.copy_from(source)
    assert target.solution() == source.solution()
    assert target.state is EngineState.COMPLETE


def test_copy_from_rejects_size_mismatch():
    with pytest.raises(ValueError):
        _engine(4).copy_from(_engine(9))


def test_two_hidden_values_in_one_cell_is_a_contradiction():
    engine = _engine(4)
    for row, col in engine.board.peers_of(0, 0):
        assert engine.eliminate(row, col, 1)
        assert engine.eliminate(row, col, 2)
    assert engine.candidates(0, 0) == (1, 2, 3, 4)
    assert not engine.search()
    assert engine.state is EngineState.CONTRADICTED


def test_complete_engine_refuses_further_mutation():
    engine = _engine(9)
    assert engine.load(CLASSIC_SOLUTION)
    with pytest.raises(RuntimeError):
        engine.assign(0, 2, 4)
    with pytest.raises(RuntimeError):
        engine.eliminate(0, 2, 4)
    assert engine.solution() == CLASSIC_SOLUTION

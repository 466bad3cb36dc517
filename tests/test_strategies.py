import pytest

from edgematch.data import load_builtin
from edgematch.strategies import (
    Phase,
    Strategy,
    StrategyError,
    auto_anchor_positions,
    categorize_positions,
    generate_placement_strategies,
    spiral_order,
    validate_strategy,
)

def test_every_strategy_covers_the_board_once():
    for size in range(3, 11):
        for hints in ((), (0,), (size * size - 1, size + 1)):
            strategies = generate_placement_strategies(size, hints, "all")
            assert set(strategies) == {"original", "optimized", "sequential", "spiral", "checkerboard"}
            for s in strategies.values():
                assert sorted(s.order) == list(range(size * size))

def test_tiers_for_corner_hint():
    cats = categorize_positions(4, [3])
    assert cats.hints == (3,)
    assert cats.orthogonal == (2, 7)
    assert cats.diagonal == (6,)
    # remaining cells split by (row + col) parity
    assert cats.checkerboard == (0, 5, 8, 10, 13, 15)
    assert cats.surrounded == (1, 4, 9, 11, 12, 14)

def test_orthogonal_wins_over_diagonal():
    # 6 is diagonal to 1 but orthogonal to 2
    cats = categorize_positions(4, [1, 2])
    assert 6 in cats.orthogonal
    assert 6 not in cats.diagonal

def test_hint_only_in_hints_phase():
    puzzle = load_builtin("hard_4x4")
    strategies = generate_placement_strategies(puzzle.size, puzzle.hint_positions, "all")
    for s in strategies.values():
        assert s.phases[0].name == "hints"
        assert s.phases[0].positions == (3,)
        assert s.phase_of(3) == "hints"
        assert sum(3 in ph.positions for ph in s.phases) == 1
        assert s.order[0] == 3

def test_no_hints_uses_auto_anchors():
    assert auto_anchor_positions(3) == []
    assert auto_anchor_positions(5) == [12]
    assert len(auto_anchor_positions(8)) == 5
    cats = categorize_positions(5, [])
    assert cats.auto_anchors and cats.hints == (12,)
    # 3x3 has no anchors: plain parity split
    s = generate_placement_strategies(3, [])["optimized"]
    assert [ph.name for ph in s.phases] == ["checkerboard", "surrounded"]

def test_sequential_is_row_major_after_hints():
    s = generate_placement_strategies(4, [3])["sequential"]
    assert s.order == (3, 0, 1, 2) + tuple(range(4, 16))

def test_spiral_starts_at_centre():
    order = spiral_order(5)
    assert order[0] == 12
    assert order[1:3] == [13, 18]
    assert sorted(order) == list(range(25))

def test_validate_rejects_duplicates_and_gaps():
    dup = Strategy("bad", "Bad", "", (Phase("x", "", (0, 1, 2, 2), "low"),))
    with pytest.raises(StrategyError, match="more than once"):
        validate_strategy(dup, 2)
    short = Strategy("short", "Short", "", (Phase("x", "", (0, 1, 2), "low"),))
    with pytest.raises(StrategyError, match="expected 4"):
        validate_strategy(short, 2)
    with pytest.raises(StrategyError):
        generate_placement_strategies(4, [], "zigzag")

import pytest

from edgematch.data import PUZZLES, available_puzzles, load_builtin
from edgematch.pieces import Hint
from edgematch.puzzle import (
    PuzzleConfigError,
    build_puzzle,
    detect_corner_hints,
    export_puzzle_text,
    load_puzzle_file,
    parse_puzzle_text,
    with_hints,
)

TEXT_3x3 = """3 3
0 1 1 0
0 2 1 1
0 0 2 2
1 1 2 0
1 2 2 1
2 0 2 2
2 1 0 0
2 2 0 1
2 0 0 2
"""

def test_parse_good_file():
    p = parse_puzzle_text(TEXT_3x3, "tiny_three.txt")
    assert p.name == "Tiny Three"
    assert p.size == 3 and len(p.pieces) == 9
    assert p.pieces[4].edges == (1, 2, 2, 1)
    assert p.hints == {}
    assert p.metadata["edge_color_count"] == 3

def test_malformed_dimension_line_is_rejected():
    bad = TEXT_3x3.replace("3 3", "3 4", 1)
    with pytest.raises(PuzzleConfigError, match="equal"):
        parse_puzzle_text(bad, "bad.txt")

def test_parse_errors_name_the_file_and_counts():
    with pytest.raises(PuzzleConfigError) as exc:
        parse_puzzle_text("3 3\n0 1 1 0\n", "short.txt")
    msg = str(exc.value)
    assert '"short.txt"' in msg and "expected 9 pieces" in msg and "found 1" in msg
    with pytest.raises(PuzzleConfigError, match="between 3 and 20"):
        parse_puzzle_text("2 2\n0 0 1 1\n0 0 1 1\n0 0 1 1\n0 0 1 1\n")
    with pytest.raises(PuzzleConfigError, match="expected 4 edges"):
        parse_puzzle_text(TEXT_3x3.replace("1 2 2 1", "1 2 2"))
    with pytest.raises(PuzzleConfigError, match="0-23"):
        parse_puzzle_text(TEXT_3x3.replace("1 2 2 1", "1 2 24 1"))
    with pytest.raises(PuzzleConfigError, match="empty"):
        parse_puzzle_text("   \n")

def test_hint_validation():
    pieces = PUZZLES["hard_4x4"]["pieces"]
    with pytest.raises(PuzzleConfigError, match="invalid hint position 16"):
        build_puzzle("x", 4, pieces, {16: (1, 0)})
    with pytest.raises(PuzzleConfigError, match="non-existent piece 99"):
        build_puzzle("x", 4, pieces, {3: (99, 0)})
    with pytest.raises(PuzzleConfigError, match="rotation 45"):
        build_puzzle("x", 4, pieces, {3: (1, 45)})
    with pytest.raises(PuzzleConfigError, match="pinned by hints"):
        build_puzzle("x", 4, pieces, {3: (1, 0), 0: (1, 0)})

def test_piece_count_mismatch():
    with pytest.raises(PuzzleConfigError, match="expected 16 for 4x4 board, got 9"):
        build_puzzle("x", 4, PUZZLES["simple_3x3"]["pieces"])

def test_export_round_trip(tmp_path):
    puzzle = load_builtin("hard_5x5")
    path = tmp_path / "hard_5x5.txt"
    path.write_text(export_puzzle_text(puzzle), encoding="utf-8")
    again = load_puzzle_file(str(path), hints={12: Hint(12, 24, 0)})
    assert again.pieces == puzzle.pieces
    assert again.hints[12].piece_id == 24

def test_detect_corner_hints():
    puzzle = load_builtin("hard_4x4")
    hints = detect_corner_hints(puzzle.pieces, 4)
    # every corner piece here is shaped (0, 0, x, y): they all point top-right, last wins
    assert list(hints) == [3]
    assert hints[3].piece_id == 3 and hints[3].rotation == 0
    p = parse_puzzle_text(TEXT_3x3, detect_hints=True)
    assert p.hints[0].piece_id == 0
    assert p.hints[2].piece_id == 2
    assert p.hints[6].piece_id == 6
    assert p.hints[8].piece_id == 8

def test_builtin_registry():
    ids = {info["id"] for info in available_puzzles()}
    assert ids == {"simple_3x3", "hard_4x4", "hard_5x5"}
    p = load_builtin("hard_4x4")
    assert p.hints[3] == Hint(3, 1, 0)
    assert with_hints(p, {}).hints == {}
    with pytest.raises(PuzzleConfigError):
        load_builtin("nope")

# edgematch/data.py
# Bundled puzzle definitions. Edges are (N, E, S, W); hints map
# position -> (piece_id, rotation).

from __future__ import annotations
from typing import Dict, List

from edgematch.puzzle import Puzzle, PuzzleConfigError, build_puzzle

PUZZLES: Dict[str, Dict] = {
    "simple_3x3": {
        "name": "Simple 3x3 Puzzle",
        "size": 3,
        "pieces": [
            (0, 1, 1, 0),
            (0, 2, 1, 1),
            (0, 0, 2, 2),
            (1, 1, 2, 0),
            (1, 2, 2, 1),
            (2, 0, 2, 2),
            (2, 1, 0, 0),
            (2, 2, 0, 1),
            (2, 0, 0, 2),
        ],
        "hints": {},
        "difficulty": "Easy",
    },
    "hard_4x4": {
        "name": "Hard 4x4 Puzzle",
        "size": 4,
        "pieces": [
            (0, 0, 1, 1),
            (0, 0, 1, 2),
            (0, 0, 2, 1),
            (0, 0, 2, 2),
            (0, 1, 3, 1),
            (0, 1, 3, 2),
            (0, 1, 4, 1),
            (0, 1, 5, 2),
            (0, 2, 4, 1),
            (0, 2, 4, 2),
            (0, 2, 5, 1),
            (0, 2, 5, 2),
            (3, 3, 5, 5),
            (3, 4, 3, 5),
            (3, 4, 4, 4),
            (3, 5, 5, 4),
        ],
        "hints": {3: (1, 0)},
        "difficulty": "Hard",
    },
    "hard_5x5": {
        "name": "Hard 5x5 Puzzle",
        "size": 5,
        "pieces": [
            (0, 0, 1, 1),
            (0, 0, 2, 1),
            (0, 0, 2, 3),
            (0, 0, 3, 1),
            (0, 1, 4, 1),
            (0, 1, 4, 3),
            (0, 1, 5, 2),
            (0, 1, 5, 3),
            (0, 1, 6, 2),
            (0, 2, 5, 2),
            (0, 2, 6, 3),
            (0, 2, 7, 3),
            (0, 3, 4, 1),
            (0, 3, 6, 1),
            (0, 3, 6, 2),
            (0, 3, 7, 2),
            (4, 4, 5, 6),
            (4, 5, 4, 6),
            (4, 5, 5, 6),
            (4, 5, 7, 7),
            (4, 6, 5, 6),
            (4, 6, 7, 7),
            (4, 7, 5, 5),
            (5, 6, 7, 7),
            (6, 7, 7, 7),
        ],
        "hints": {},
        "difficulty": "Hard",
    },
}

DEFAULT_PUZZLE = "hard_4x4"


def available_puzzles() -> List[Dict]:
    out = []
    for key, d in PUZZLES.items():
        out.append({
            "id": key,
            "name": d["name"],
            "board_size": d["size"],
            "total_pieces": len(d["pieces"]),
            "difficulty": d.get("difficulty", "Unknown"),
            "hint_count": len(d["hints"]),
        })
    return out


def load_builtin(key: str = DEFAULT_PUZZLE) -> Puzzle:
    d = PUZZLES.get(key)
    if d is None:
        raise PuzzleConfigError(f"puzzle {key!r} not found (available: {sorted(PUZZLES)})")
    return build_puzzle(d["name"], d["size"], d["pieces"], d["hints"],
                        metadata={"id": key, "difficulty": d.get("difficulty", "Unknown")})

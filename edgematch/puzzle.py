# edgematch/puzzle.py
# Puzzle definition: pieces + hints, the "N N" text interchange format, and
# eager validation of everything a run relies on.

from __future__ import annotations
import os
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from edgematch.fit import check_border_feasibility, fits_border
from edgematch.pieces import BORDER, ROTATIONS, Hint, Piece

MIN_BOARD_SIZE = 3
MAX_BOARD_SIZE = 20
MAX_EDGE_CODE = 23

HintSpec = Union[Hint, Tuple[int, int], Mapping[str, int]]


class PuzzleConfigError(ValueError):
    """Bad puzzle or strategy configuration; raised at load time, never mid-run."""


@dataclass(frozen=True)
class Puzzle:
    name: str
    size: int
    pieces: Tuple[Piece, ...]
    hints: Dict[int, Hint] = field(default_factory=dict)
    metadata: Dict = field(default_factory=dict)

    @property
    def total_pieces(self) -> int:
        return self.size * self.size

    @property
    def piece_map(self) -> Dict[int, Piece]:
        return {p.id: p for p in self.pieces}

    @property
    def hint_positions(self) -> Tuple[int, ...]:
        return tuple(sorted(self.hints))

    def edge_colors(self) -> List[int]:
        return sorted({e for p in self.pieces for e in p.edges})

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "board_size": self.size,
            "total_pieces": self.total_pieces,
            "pieces": [p.to_dict() for p in self.pieces],
            "hints": {str(pos): {"id": h.piece_id, "rotation": h.rotation}
                      for pos, h in sorted(self.hints.items())},
        }


# --------------------------
# Construction / validation
# --------------------------
def _coerce_hint(pos, spec: HintSpec) -> Hint:
    pos = int(pos)
    if isinstance(spec, Hint):
        return Hint(pos, int(spec.piece_id), int(spec.rotation))
    if isinstance(spec, Mapping):
        return Hint(pos, int(spec["id"]), int(spec.get("rotation", 0)))
    piece_id, rotation = spec
    return Hint(pos, int(piece_id), int(rotation))


def puzzle_errors(size: int, pieces: Sequence[Piece], hints: Mapping[int, Hint]) -> List[str]:
    errors: List[str] = []
    expected = size * size
    if size < 1:
        errors.append(f"invalid board size {size}")
    if len(pieces) != expected:
        errors.append(f"piece count mismatch: expected {expected} for {size}x{size} board, got {len(pieces)}")
    for index, p in enumerate(pieces):
        if p.id != index:
            errors.append(f"piece {index} has id {p.id}, expected {index}")
        if len(p.edges) != 4:
            errors.append(f"piece {p.id}: expected 4 edges, found {len(p.edges)}")
        elif any(e < 0 or e > MAX_EDGE_CODE for e in p.edges):
            errors.append(f"piece {p.id}: edge codes must be integers between 0-{MAX_EDGE_CODE}, got {list(p.edges)}")
    ids = {p.id for p in pieces}
    used: Dict[int, int] = {}
    for pos, h in sorted(hints.items()):
        if pos < 0 or pos >= expected:
            errors.append(f"invalid hint position {pos}: expected 0..{expected - 1}")
        if h.piece_id not in ids:
            errors.append(f"hint at {pos} references non-existent piece {h.piece_id}")
        if h.rotation not in ROTATIONS:
            errors.append(f"hint at {pos} has rotation {h.rotation}, expected one of {ROTATIONS}")
        if h.piece_id in used:
            errors.append(f"piece {h.piece_id} is pinned by hints at both {used[h.piece_id]} and {pos}")
        used[h.piece_id] = pos
    return errors


def build_puzzle(name: str,
                 size: int,
                 pieces: Iterable[Union[Piece, Sequence[int]]],
                 hints: Optional[Mapping[int, HintSpec]] = None,
                 metadata: Optional[Dict] = None,
                 check_borders: bool = True) -> Puzzle:
    """
    Normalize and validate a puzzle. `pieces` may be Piece objects or bare
    edge tuples (ids are then assigned by position). Raises PuzzleConfigError
    listing every problem found.
    """
    plist: List[Piece] = []
    for i, p in enumerate(pieces):
        if isinstance(p, Piece):
            plist.append(Piece(int(p.id), tuple(int(e) for e in p.edges)))
        else:
            plist.append(Piece(i, tuple(int(e) for e in p)))
    hint_map = {int(pos): _coerce_hint(pos, spec) for pos, spec in (hints or {}).items()}

    errors = puzzle_errors(int(size), plist, hint_map)
    if errors:
        raise PuzzleConfigError(f"invalid puzzle {name!r}: " + "; ".join(errors))

    puzzle = Puzzle(name=name, size=int(size), pieces=tuple(plist), hints=hint_map,
                    metadata=dict(metadata or {}))
    if check_borders:
        check_border_feasibility(puzzle.pieces, puzzle.size, name)
    return puzzle


def with_hints(puzzle: Puzzle, hints: Mapping[int, HintSpec]) -> Puzzle:
    return build_puzzle(puzzle.name, puzzle.size, puzzle.pieces, hints, puzzle.metadata,
                        check_borders=False)


# --------------------------
# Corner-hint detection
# --------------------------
def corner_position(edges: Sequence[int], size: int) -> int:
    """Board corner matching an unrotated corner piece's border pattern, or -1."""
    zeros = [i for i, e in enumerate(edges) if e == BORDER]
    if len(zeros) != 2:
        return -1
    pattern = tuple(zeros)
    if pattern == (0, 1):
        return size - 1
    if pattern == (1, 2):
        return size * size - 1
    if pattern == (2, 3):
        return size * (size - 1)
    if pattern == (0, 3):
        return 0
    return -1


def required_rotation(piece: Piece, pos: int, size: int) -> int:
    for rotation in ROTATIONS:
        if fits_border(pos, piece.rotated(rotation), size):
            return rotation
    return 0


def detect_corner_hints(pieces: Iterable[Piece], size: int) -> Dict[int, Hint]:
    """Pin each corner piece to the corner its unrotated pattern points at (later pieces win)."""
    hints: Dict[int, Hint] = {}
    for p in pieces:
        pos = corner_position(p.edges, size)
        if pos >= 0:
            hints[pos] = Hint(pos, p.id, required_rotation(p, pos, size))
    return hints


# --------------------------
# Text format
# --------------------------
def puzzle_name_from_filename(filename: str) -> str:
    stem = os.path.splitext(os.path.basename(filename))[0]
    return " ".join(w[:1].upper() + w[1:] for w in stem.split("_"))


def _parse(text: str) -> Tuple[int, List[Piece]]:
    lines = [ln.strip() for ln in text.strip().splitlines() if ln.strip()]
    if not lines:
        raise PuzzleConfigError("empty file")

    dims = lines[0].split()
    if len(dims) != 2:
        raise PuzzleConfigError(f"first line must contain exactly two numbers (N N), got {lines[0]!r}")
    try:
        width, height = int(dims[0]), int(dims[1])
    except ValueError:
        raise PuzzleConfigError(f"board dimensions must be integers, got {lines[0]!r}") from None
    if width != height:
        raise PuzzleConfigError(f"board dimensions must be equal (NxN), got {width}x{height}")
    if width < MIN_BOARD_SIZE or width > MAX_BOARD_SIZE:
        raise PuzzleConfigError(f"board size must be between {MIN_BOARD_SIZE} and {MAX_BOARD_SIZE}, got {width}")

    size = width
    expected = size * size
    piece_lines = lines[1:]
    if len(piece_lines) != expected:
        raise PuzzleConfigError(
            f"expected {expected} pieces for {size}x{size} board, found {len(piece_lines)}"
        )

    pieces: List[Piece] = []
    for i, line in enumerate(piece_lines):
        tokens = line.split()
        if len(tokens) != 4:
            raise PuzzleConfigError(f"piece {i + 1}: expected 4 edges, found {len(tokens)}")
        try:
            edges = tuple(int(t) for t in tokens)
        except ValueError:
            raise PuzzleConfigError(f"piece {i + 1}: edge values must be integers, got {line!r}") from None
        if any(e < 0 or e > MAX_EDGE_CODE for e in edges):
            raise PuzzleConfigError(f"piece {i + 1}: edge values must be integers between 0-{MAX_EDGE_CODE}")
        pieces.append(Piece(i, edges))  # type: ignore[arg-type]
    return size, pieces


def parse_puzzle_text(text: str,
                      filename: str = "unknown",
                      hints: Optional[Mapping[int, HintSpec]] = None,
                      detect_hints: bool = False) -> Puzzle:
    try:
        size, pieces = _parse(text)
        if hints is None and detect_hints:
            hints = detect_corner_hints(pieces, size)
        return build_puzzle(
            puzzle_name_from_filename(filename),
            size,
            pieces,
            hints,
            metadata={"filename": filename, "edge_color_count": len({e for p in pieces for e in p.edges})},
        )
    except PuzzleConfigError as exc:
        raise PuzzleConfigError(f'Failed to parse puzzle file "{filename}": {exc}') from exc


def load_puzzle_file(path: str,
                     hints: Optional[Mapping[int, HintSpec]] = None,
                     detect_hints: bool = False) -> Puzzle:
    with open(path, "r", encoding="utf-8") as f:
        text = f.read()
    return parse_puzzle_text(text, os.path.basename(path), hints=hints, detect_hints=detect_hints)


def export_puzzle_text(puzzle: Puzzle) -> str:
    lines = [f"{puzzle.size} {puzzle.size}"]
    for p in puzzle.pieces:
        lines.append(" ".join(str(e) for e in p.edges))
    return "\n".join(lines) + "\n"

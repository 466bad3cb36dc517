# edgematch/fit.py
from __future__ import annotations
import sys
from typing import Iterable, List, Optional, Sequence, Tuple

from edgematch.geometry import OPPOSITE, row_col
from edgematch.pieces import BORDER, ROTATIONS, Piece, PlacedPiece

Board = List[Optional[PlacedPiece]]


def border_sides(pos: int, size: int) -> Tuple[bool, bool, bool, bool]:
    """(north, east, south, west): which board borders this cell touches."""
    row, col = row_col(pos, size)
    return (row == 0, col == size - 1, row == size - 1, col == 0)


def required_border_count(pos: int, size: int) -> int:
    return sum(border_sides(pos, size))


def fits_border(pos: int, edges: Sequence[int], size: int) -> bool:
    for on_border, edge in zip(border_sides(pos, size), edges):
        if on_border != (edge == BORDER):
            return False
    return True


def fits(board: Sequence[Optional[PlacedPiece]], pos: int, edges: Sequence[int], size: int) -> bool:
    """
    Admissibility of rotated `edges` at `pos`:
      - edge code 0 exactly on the sides that touch the board border
      - every filled neighbor's facing edge equals ours
    Pure; never mutates `board`.
    """
    if not fits_border(pos, edges, size):
        return False
    row, col = row_col(pos, size)
    # (side, has_neighbor, neighbor_pos)
    sides = (
        (0, row > 0, pos - size),
        (1, col < size - 1, pos + 1),
        (2, row < size - 1, pos + size),
        (3, col > 0, pos - 1),
    )
    for side, exists, npos in sides:
        if not exists:
            continue
        neighbor = board[npos]
        if neighbor is not None and neighbor.edges[OPPOSITE[side]] != edges[side]:
            return False
    return True


# --------------------------
# Data-integrity sanity pass
# --------------------------
def unfillable_positions(pieces: Iterable[Piece], size: int) -> List[int]:
    """Positions that no piece, in any rotation, can satisfy by the border rule alone."""
    plist = list(pieces)
    bad = []
    for pos in range(size * size):
        if not any(fits_border(pos, p.rotated(r), size) for p in plist for r in ROTATIONS):
            bad.append(pos)
    return bad


def check_border_feasibility(pieces: Iterable[Piece], size: int, name: str = "puzzle") -> List[int]:
    """Warn (never raise) about cells no piece could ever fill; returns them."""
    bad = unfillable_positions(pieces, size)
    for pos in bad:
        row, col = row_col(pos, size)
        sys.stderr.write(
            f"[puzzle] warning: {name}: no piece can fit at position {pos} (row {row}, col {col})\n"
        )
    return bad

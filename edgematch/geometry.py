# edgematch/geometry.py
from __future__ import annotations
from typing import Dict, Iterable, List, Set, Tuple

DIRECTIONS: Tuple[str, ...] = ("north", "east", "south", "west")

# index of the facing side on the neighbor (N<->S, E<->W)
OPPOSITE = (2, 3, 0, 1)


def row_col(pos: int, size: int) -> Tuple[int, int]:
    return pos // size, pos % size


def neighbor_offsets(size: int) -> Dict[str, int]:
    return {"north": -size, "east": 1, "south": size, "west": -1}


def neighbor_offset(direction: str, size: int) -> int:
    try:
        return neighbor_offsets(size)[direction]
    except KeyError:
        raise ValueError(f"unknown direction {direction!r} (expected one of {DIRECTIONS})") from None


def diagonal_offsets(size: int) -> Tuple[int, ...]:
    # NE, SE, SW, NW
    return (-size + 1, size + 1, size - 1, -size - 1)


def is_valid_step(from_pos: int, to_pos: int, size: int, offset: int, diagonal: bool = False) -> bool:
    """
    True if stepping `offset` from `from_pos` lands on the board without wrapping rows.
    On a 2x2 board diagonal and horizontal offsets coincide, so `diagonal` says which is meant.
    """
    if to_pos < 0 or to_pos >= size * size:
        return False
    fr, fc = row_col(from_pos, size)
    tr, tc = row_col(to_pos, size)
    if diagonal:
        return abs(tr - fr) == 1 and abs(tc - fc) == 1
    if abs(offset) == 1:
        return tr == fr and abs(tc - fc) == 1
    if size > 1 and abs(offset) in (size - 1, size + 1):
        return abs(tr - fr) == 1 and abs(tc - fc) == 1
    return True


def _stepped(positions: Iterable[int], size: int, offsets: Iterable[int], diagonal: bool = False) -> Set[int]:
    src = set(int(p) for p in positions)
    offs = tuple(offsets)
    out: Set[int] = set()
    for p in src:
        for off in offs:
            q = p + off
            if is_valid_step(p, q, size, off, diagonal):
                out.add(q)
    return out - src


def adjacent_positions(positions: Iterable[int], size: int) -> Set[int]:
    """Orthogonal neighbors of `positions`, minus the positions themselves."""
    return _stepped(positions, size, neighbor_offsets(size).values())


def diagonal_positions(positions: Iterable[int], size: int) -> Set[int]:
    return _stepped(positions, size, diagonal_offsets(size), diagonal=True)


def hint_adjacent_cells(size: int, hint_positions: Iterable[int]) -> Dict[int, List[Tuple[int, str]]]:
    """
    Map each non-hint cell touching a hint to the (hint_pos, direction) pairs it
    sits on. Direction is measured from the hint to the cell. Pairs are ordered
    by hint position, then N, E, S, W.
    """
    hints = sorted(set(int(h) for h in hint_positions))
    hint_set = set(hints)
    offsets = neighbor_offsets(size)
    cells: Dict[int, List[Tuple[int, str]]] = {}
    for h in hints:
        for direction in DIRECTIONS:
            off = offsets[direction]
            q = h + off
            if q in hint_set or not is_valid_step(h, q, size, off):
                continue
            cells.setdefault(q, []).append((h, direction))
    return cells

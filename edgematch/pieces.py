# edgematch/pieces.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Sequence, Tuple

Edges = Tuple[int, int, int, int]  # (north, east, south, west)

ROTATIONS: Tuple[int, ...] = (0, 90, 180, 270)
BORDER = 0

_KINDS = {0: "interior", 1: "edge", 2: "corner"}


def rotate(edges: Sequence[int], degrees: int) -> Edges:
    """
    Rotate an (N, E, S, W) tuple clockwise by `degrees` (multiples of 90).
    The edge at index (4 - steps) % 4 ends up facing north.
    """
    e = tuple(int(x) for x in edges)
    steps = int(round(degrees / 90.0)) % 4
    if steps == 0:
        return e  # type: ignore[return-value]
    return e[4 - steps:] + e[:4 - steps]  # type: ignore[return-value]


def piece_kind(edges: Sequence[int]) -> str:
    """corner / edge / interior by border-edge count; anything else is 'invalid'."""
    return _KINDS.get(sum(1 for x in edges if x == BORDER), "invalid")


@dataclass(frozen=True)
class Piece:
    id: int
    edges: Edges

    @property
    def border_count(self) -> int:
        return sum(1 for x in self.edges if x == BORDER)

    @property
    def kind(self) -> str:
        return piece_kind(self.edges)

    def rotated(self, rotation: int) -> Edges:
        return rotate(self.edges, rotation)

    def to_dict(self) -> Dict:
        return {"id": self.id, "edges": list(self.edges)}


@dataclass(frozen=True)
class Hint:
    position: int
    piece_id: int
    rotation: int = 0


@dataclass(frozen=True)
class PlacedPiece:
    id: int
    edges: Edges
    rotation: int
    is_hint: bool = False

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "edges": list(self.edges),
            "rotation": self.rotation,
            "is_hint": self.is_hint,
        }

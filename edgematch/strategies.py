# edgematch/strategies.py
# Placement-order generation: classify cells into constraint tiers and emit
# named total orderings of the board.
#
# Tier precedence (a cell belongs to the first tier it qualifies for):
#   hints -> orthogonal-adjacent -> diagonal-adjacent -> checkerboard -> surrounded

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from edgematch.geometry import adjacent_positions, diagonal_positions, row_col
from edgematch.puzzle import PuzzleConfigError

STRATEGY_TYPES = ("auto", "spiral", "checkerboard", "all")


class StrategyError(PuzzleConfigError):
    pass


@dataclass(frozen=True)
class Phase:
    name: str
    description: str
    positions: Tuple[int, ...]
    constraint_level: str


@dataclass(frozen=True)
class Strategy:
    key: str
    name: str
    description: str
    phases: Tuple[Phase, ...] = field(default_factory=tuple)

    @property
    def order(self) -> Tuple[int, ...]:
        out: List[int] = []
        for ph in self.phases:
            out.extend(ph.positions)
        return tuple(out)

    def phase_of(self, pos: int) -> Optional[str]:
        for ph in self.phases:
            if pos in ph.positions:
                return ph.name
        return None

    def to_dict(self) -> Dict:
        return {
            "key": self.key,
            "name": self.name,
            "description": self.description,
            "phases": [
                {
                    "name": ph.name,
                    "description": ph.description,
                    "positions": list(ph.positions),
                    "constraint_level": ph.constraint_level,
                }
                for ph in self.phases
            ],
        }


@dataclass(frozen=True)
class Categories:
    hints: Tuple[int, ...]
    orthogonal: Tuple[int, ...]
    diagonal: Tuple[int, ...]
    checkerboard: Tuple[int, ...]
    surrounded: Tuple[int, ...]
    auto_anchors: bool = False


# --------------------------
# Tiering
# --------------------------
def auto_anchor_positions(size: int) -> List[int]:
    """Centre cell (N >= 4) plus four cells around it (N >= 6); used when a puzzle has no hints."""
    anchors: List[int] = []
    center = size // 2
    if size >= 4:
        anchors.append(center * size + center)
        if size >= 6:
            off = size // 4
            anchors.append((center - off) * size + (center - off))
            anchors.append((center - off) * size + (center + off))
            anchors.append((center + off) * size + (center - off))
            anchors.append((center + off) * size + (center + off))
    return [p for p in anchors if 0 <= p < size * size]


def categorize_positions(size: int, hint_positions: Iterable[int] = ()) -> Categories:
    hints = sorted(set(int(p) for p in hint_positions))
    auto = False
    if not hints:
        hints = auto_anchor_positions(size)
        auto = bool(hints)
    ortho = adjacent_positions(hints, size)
    diag = diagonal_positions(hints, size) - ortho
    used = set(hints) | ortho | diag
    checker: List[int] = []
    surrounded: List[int] = []
    for pos in range(size * size):
        if pos in used:
            continue
        row, col = row_col(pos, size)
        if (row + col) % 2 == 0:
            checker.append(pos)
        else:
            surrounded.append(pos)
    return Categories(
        hints=tuple(hints),
        orthogonal=tuple(sorted(ortho)),
        diagonal=tuple(sorted(diag)),
        checkerboard=tuple(checker),
        surrounded=tuple(surrounded),
        auto_anchors=auto,
    )


def _tiered_phases(cats: Categories) -> Tuple[Phase, ...]:
    hint_desc = "Auto-selected anchor positions" if cats.auto_anchors else "Fixed hint pieces"
    spec = (
        ("hints", hint_desc, cats.hints, "fixed"),
        ("orthogonal-adjacent", "Directly adjacent to hints", cats.orthogonal, "high"),
        ("diagonal-adjacent", "Diagonally adjacent to hints", cats.diagonal, "medium"),
        ("checkerboard", "Alternating cells for two-sided constraints", cats.checkerboard, "medium"),
        ("surrounded", "Cells enclosed by already placed neighbors", cats.surrounded, "low"),
    )
    return tuple(Phase(n, d, tuple(p), lvl) for (n, d, p, lvl) in spec if p)


def _with_hints_first(name: str, description: str, order: Iterable[int],
                      hints: Tuple[int, ...], level: str = "mixed") -> Tuple[Phase, ...]:
    hint_set = set(hints)
    rest = tuple(p for p in order if p not in hint_set)
    phases = []
    if hints:
        phases.append(Phase("hints", "Fixed hint pieces", hints, "fixed"))
    if rest:
        phases.append(Phase(name, description, rest, level))
    return tuple(phases)


# --------------------------
# Plain orders
# --------------------------
def sequential_order(size: int) -> List[int]:
    return list(range(size * size))


def spiral_order(size: int) -> List[int]:
    """Outward square spiral from the centre cell (right, down, left, up)."""
    total = size * size
    if total == 0:
        return []
    row = col = size // 2
    order = [row * size + col]
    seen = set(order)
    directions = ((0, 1), (1, 0), (0, -1), (-1, 0))
    d = 0
    steps = 1
    while len(order) < total:
        for _ in range(2):
            dr, dc = directions[d]
            for _ in range(steps):
                row += dr
                col += dc
                if 0 <= row < size and 0 <= col < size:
                    pos = row * size + col
                    if pos not in seen:
                        seen.add(pos)
                        order.append(pos)
            d = (d + 1) % 4
        steps += 1
    return order


def checkerboard_order(size: int) -> List[int]:
    even = [p for p in range(size * size) if sum(row_col(p, size)) % 2 == 0]
    odd = [p for p in range(size * size) if sum(row_col(p, size)) % 2 == 1]
    return even + odd


# --------------------------
# Public API
# --------------------------
def generate_placement_strategies(size: int,
                                  hint_positions: Iterable[int] = (),
                                  strategy_type: str = "auto") -> Dict[str, Strategy]:
    if strategy_type not in STRATEGY_TYPES:
        raise StrategyError(f"unknown strategy type {strategy_type!r} (expected one of {STRATEGY_TYPES})")
    hints = tuple(sorted(set(int(p) for p in hint_positions)))
    cats = categorize_positions(size, hints)
    tiered = _tiered_phases(cats)

    strategies: Dict[str, Strategy] = {
        "original": Strategy("original", "Standard Strategy", "Traditional placement order", tiered),
        "optimized": Strategy("optimized", "Optimized Strategy",
                              "Constraint-based ordering for faster solving", tiered),
        "sequential": Strategy("sequential", "Sequential Strategy",
                               "Simple left-to-right, top-to-bottom placement",
                               _with_hints_first("sequential", "Row-major placement order",
                                                 sequential_order(size), hints)),
    }
    if strategy_type in ("spiral", "all"):
        strategies["spiral"] = Strategy("spiral", "Spiral Strategy", "Spiral outward from center",
                                        _with_hints_first("spiral", "Outward spiral",
                                                          spiral_order(size), hints))
    if strategy_type in ("checkerboard", "all"):
        strategies["checkerboard"] = Strategy("checkerboard", "Checkerboard Strategy",
                                              "Alternate black/white pattern",
                                              _with_hints_first("checkerboard", "Even cells, then odd",
                                                                checkerboard_order(size), hints))
    for s in strategies.values():
        validate_strategy(s, size)
    return strategies


def validate_strategy(strategy: Strategy, size: int) -> bool:
    """Raise StrategyError unless `strategy.order` covers 0..size*size-1 exactly once."""
    expected = size * size
    order = strategy.order
    if len(order) != expected:
        raise StrategyError(
            f"strategy {strategy.key!r} order has {len(order)} items, expected {expected}"
        )
    seen = set()
    for pos in order:
        if pos in seen:
            raise StrategyError(f"strategy {strategy.key!r} lists position {pos} more than once")
        seen.add(pos)
    for pos in range(expected):
        if pos not in seen:
            raise StrategyError(f"strategy {strategy.key!r} missing position {pos}")
    return True

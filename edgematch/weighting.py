# edgematch/weighting.py
# Learned hint-adjacency model: running score averages per
# (hint position, direction, piece id, rotation), turned into exponential
# sampling weights once calibration is over.

from __future__ import annotations
import math
import random
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar

DEFAULT_WEIGHTING_CONSTANT = 0.1
DEFAULT_CALIBRATION_RUNS = 1000
EXPLORATION_WEIGHT = 1.0

AdjKey = Tuple[int, str, int, int]  # (hint_pos, direction, piece_id, rotation)
T = TypeVar("T")


def calibration_runs_for(size: int) -> int:
    """Scale the 1000-run calibration window by board area relative to 16x16, clamped to 100..2000."""
    scaled = DEFAULT_CALIBRATION_RUNS * (size * size) / 256.0
    return max(100, min(2000, int(math.floor(scaled + 0.5))))


@dataclass
class MLParams:
    weighting_constant: float = DEFAULT_WEIGHTING_CONSTANT
    use_calibration: bool = True
    calibration_runs: int = DEFAULT_CALIBRATION_RUNS

    def __post_init__(self):
        if not self.weighting_constant > 0:
            raise ValueError(f"weighting_constant must be > 0, got {self.weighting_constant}")
        if self.calibration_runs < 0:
            raise ValueError(f"calibration_runs must be >= 0, got {self.calibration_runs}")

    @classmethod
    def for_board(cls, size: int, **overrides) -> "MLParams":
        overrides.setdefault("calibration_runs", calibration_runs_for(size))
        return cls(**overrides)

    def is_weighting_active(self, total_runs: int) -> bool:
        return (not self.use_calibration) or total_runs > self.calibration_runs


@dataclass
class AdjacencyEntry:
    avg_score: float = 0.0
    count: int = 0
    best_score: int = 0

    def record(self, score: int) -> None:
        self.avg_score += (score - self.avg_score) / (self.count + 1)
        self.count += 1
        self.best_score = max(self.best_score, score)


def weight_exponent(local_avg: float, global_avg: float, k: float) -> float:
    """Log of the sampling weight exp(k * (local - global))."""
    return k * (local_avg - global_avg)


def relative_weights(exponents: Sequence[float]) -> List[float]:
    """exp() of each exponent, shifted so the largest comes out as 1.0."""
    if not exponents:
        return []
    top = max(exponents)
    return [math.exp(x - top) for x in exponents]


class HintAdjacencyStats:
    """Flat map (hint_pos, direction, piece_id, rotation) -> AdjacencyEntry. Only grows."""

    def __init__(self):
        self._entries: Dict[AdjKey, AdjacencyEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key) -> bool:
        return key in self._entries

    def get(self, hint_pos: int, direction: str, piece_id: int, rotation: int) -> Optional[AdjacencyEntry]:
        return self._entries.get((hint_pos, direction, piece_id, rotation))

    def record(self, hint_pos: int, direction: str, piece_id: int, rotation: int, score: int) -> AdjacencyEntry:
        key = (int(hint_pos), direction, int(piece_id), int(rotation))
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = AdjacencyEntry()
        entry.record(score)
        return entry

    def entries_for(self, hint_pos: int, direction: str) -> List[Tuple[int, int, AdjacencyEntry]]:
        """(piece_id, rotation, entry) for one hint side, in insertion order."""
        return [(pid, rot, e) for (h, d, pid, rot), e in self._entries.items()
                if h == hint_pos and d == direction]

    def sides(self) -> List[Tuple[int, str]]:
        seen: Dict[Tuple[int, str], None] = {}
        for (h, d, _, _) in self._entries:
            seen[(h, d)] = None
        return list(seen)

    def exponent(self, hint_pos: int, direction: str, piece_id: int, rotation: int,
                 global_avg: float, k: float) -> float:
        entry = self.get(hint_pos, direction, piece_id, rotation)
        if entry is None:
            return math.log(EXPLORATION_WEIGHT)
        return weight_exponent(entry.avg_score, global_avg, k)

    def weights(self, hint_pos: int, direction: str, keys: Iterable[Tuple[int, int]],
                global_avg: float, k: float) -> List[float]:
        """Relative weights for (piece_id, rotation) keys, largest scaled to 1.0. Unseen keys explore."""
        return relative_weights([self.exponent(hint_pos, direction, pid, rot, global_avg, k)
                                 for pid, rot in keys])

    def selection_percentages(self, hint_pos: int, direction: str,
                              global_avg: float, k: float) -> Dict[int, Dict[int, float]]:
        """Share of sampling weight per piece/rotation among the entries known for this side."""
        entries = self.entries_for(hint_pos, direction)
        if not entries:
            return {}
        weights = relative_weights([weight_exponent(e.avg_score, global_avg, k) for _, _, e in entries])
        total = sum(weights)
        out: Dict[int, Dict[int, float]] = {}
        for (pid, rot, _), w in zip(entries, weights):
            out.setdefault(pid, {})[rot] = w / total * 100.0
        return out

    def best_for(self, hint_pos: int, direction: str) -> Optional[Tuple[int, int, AdjacencyEntry]]:
        best = None
        for pid, rot, e in self.entries_for(hint_pos, direction):
            if e.count > 0 and (best is None or e.avg_score > best[2].avg_score):
                best = (pid, rot, e)
        return best

    def to_dict(self) -> Dict[str, Dict[str, Dict[str, Dict]]]:
        """Nested `"<hint>-<direction>" -> piece -> rotation -> entry` view for reports."""
        out: Dict[str, Dict[str, Dict[str, Dict]]] = {}
        for (h, d, pid, rot), e in self._entries.items():
            out.setdefault(f"{h}-{d}", {}).setdefault(str(pid), {})[str(rot)] = {
                "avg_score": e.avg_score,
                "count": e.count,
                "best_score": e.best_score,
            }
        return out


def weighted_choice(options: Sequence[T], weights: Iterable[float], rng: random.Random) -> T:
    """Cumulative-weight draw; falls back to the last option on float round-off."""
    ws = list(weights)
    if not options:
        raise ValueError("weighted_choice() needs at least one option")
    total = sum(ws)
    u = rng.random() * total
    for opt, w in zip(options, ws):
        u -= w
        if u <= 0:
            return opt
    return options[-1]

# edgematch/stats.py
from __future__ import annotations
import math
from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Optional, Sequence

SCORE_WINDOW = 1000
DEFAULT_PERCENTILES = (25, 50, 75, 90, 95, 99)


@dataclass
class RunStats:
    total_runs: int = 0
    best_score: int = 0
    avg_score: float = 0.0
    completed_solutions: int = 0

    def record(self, score: int, total_cells: int) -> None:
        self.total_runs += 1
        self.avg_score += (score - self.avg_score) / self.total_runs
        self.best_score = max(self.best_score, score)
        if score == total_cells:
            self.completed_solutions += 1

    def to_dict(self) -> Dict:
        return {
            "total_runs": self.total_runs,
            "best_score": self.best_score,
            "avg_score": self.avg_score,
            "completed_solutions": self.completed_solutions,
        }


# --------------------------
# Score-distribution helpers
# --------------------------
def mean(scores: Sequence[float]) -> float:
    return sum(scores) / len(scores) if scores else 0.0


def std_dev(scores: Sequence[float]) -> float:
    """Population standard deviation; 0 for an empty sample."""
    if not scores:
        return 0.0
    m = mean(scores)
    return math.sqrt(sum((s - m) ** 2 for s in scores) / len(scores))


def percentiles(scores: Sequence[float], points: Sequence[int] = DEFAULT_PERCENTILES) -> Dict[int, float]:
    if not scores:
        return {}
    ordered = sorted(scores)
    out = {}
    for p in points:
        idx = math.ceil(p / 100.0 * len(ordered)) - 1
        out[p] = ordered[max(0, idx)]
    return out


def p_value(a: Sequence[float], b: Sequence[float]) -> float:
    """Coarse two-sample t-test banding (0.3 / 0.05 / 0.01 / 0.001)."""
    if not a or not b:
        return 1.0
    m1, m2 = mean(a), mean(b)
    s1, s2 = std_dev(a), std_dev(b)
    if s1 == 0 and s2 == 0:
        return 1.0 if m1 == m2 else 0.0
    dof = len(a) + len(b) - 2
    if dof <= 0:
        return 1.0
    pooled = math.sqrt(((len(a) - 1) * s1 * s1 + (len(b) - 1) * s2 * s2) / dof)
    if pooled == 0:
        return 1.0 if m1 == m2 else 0.0
    t = abs(m1 - m2) / (pooled * math.sqrt(1.0 / len(a) + 1.0 / len(b)))
    if t < 1:
        return 0.3
    if t < 2:
        return 0.05
    if t < 3:
        return 0.01
    return 0.001


def effect_size(a: Sequence[float], b: Sequence[float]) -> float:
    """Cohen's d with the simple averaged-variance pooled deviation."""
    if not a or not b:
        return 0.0
    pooled = math.sqrt((std_dev(a) ** 2 + std_dev(b) ** 2) / 2.0)
    if pooled == 0:
        return 0.0
    return abs(mean(a) - mean(b)) / pooled


# --------------------------
# Per-strategy tracking
# --------------------------
@dataclass
class StrategyStats:
    total_runs: int = 0
    scores: Deque[int] = field(default_factory=lambda: deque(maxlen=SCORE_WINDOW))
    best_score: int = 0
    avg_score: float = 0.0      # mean of the recent score window
    std_dev: float = 0.0
    dead_ends: int = 0
    total_pieces_placed: int = 0
    position_failures: Dict[int, int] = field(default_factory=lambda: defaultdict(int))
    total_time: float = 0.0
    total_options: int = 0

    def record(self, score: int, dead_end: bool, pieces_placed: int, elapsed: float,
               failure_position: Optional[int] = None, valid_options: int = 0) -> None:
        self.total_runs += 1
        self.scores.append(score)
        self.best_score = max(self.best_score, score)
        window = list(self.scores)
        self.avg_score = mean(window)
        self.std_dev = std_dev(window)
        if dead_end:
            self.dead_ends += 1
        if failure_position is not None:
            self.position_failures[failure_position] += 1
        self.total_pieces_placed += pieces_placed
        self.total_time += elapsed
        self.total_options += valid_options

    @property
    def avg_time_per_run(self) -> float:
        return self.total_time / self.total_runs if self.total_runs else 0.0

    @property
    def avg_options_per_position(self) -> float:
        return self.total_options / self.total_pieces_placed if self.total_pieces_placed else 0.0

    def to_dict(self) -> Dict:
        return {
            "total_runs": self.total_runs,
            "best_score": self.best_score,
            "avg_score": self.avg_score,
            "std_dev": self.std_dev,
            "dead_ends": self.dead_ends,
            "total_pieces_placed": self.total_pieces_placed,
            "position_failures": {str(k): v for k, v in sorted(self.position_failures.items())},
            "avg_time_per_run": self.avg_time_per_run,
            "avg_options_per_position": self.avg_options_per_position,
            "percentiles": {str(k): v for k, v in percentiles(list(self.scores)).items()},
        }


@dataclass
class ComparisonMetrics:
    """Head-to-head tally of the 'original' and 'optimized' strategies."""
    original_wins: int = 0
    optimized_wins: int = 0
    ties: int = 0
    avg_score_diff: float = 0.0
    efficiency_ratio: float = 0.0
    total_comparisons: int = 0

    def record(self, original_score: int, optimized_score: int) -> None:
        n = self.total_comparisons + 1
        if original_score > optimized_score:
            self.original_wins += 1
        elif optimized_score > original_score:
            self.optimized_wins += 1
        else:
            self.ties += 1
        self.avg_score_diff = (self.avg_score_diff * self.total_comparisons
                               + (optimized_score - original_score)) / n
        self.total_comparisons = n
        if self.original_wins == 0 and self.optimized_wins == 0:
            self.efficiency_ratio = 1.0
        elif self.original_wins == 0:
            self.efficiency_ratio = math.inf
        else:
            self.efficiency_ratio = self.optimized_wins / self.original_wins

    def to_dict(self) -> Dict:
        return {
            "original_wins": self.original_wins,
            "optimized_wins": self.optimized_wins,
            "ties": self.ties,
            "avg_score_diff": self.avg_score_diff,
            # JSON has no infinity
            "efficiency_ratio": None if math.isinf(self.efficiency_ratio) else self.efficiency_ratio,
            "total_comparisons": self.total_comparisons,
        }

import math
import random

import pytest

from edgematch.weighting import (
    HintAdjacencyStats,
    MLParams,
    calibration_runs_for,
    weighted_choice,
)

def test_calibration_window_scales_with_board():
    assert calibration_runs_for(16) == 1000
    assert calibration_runs_for(4) == 100
    assert calibration_runs_for(20) == 1563
    assert calibration_runs_for(30) == 2000

def test_weighting_gate():
    ml = MLParams(calibration_runs=10)
    assert not ml.is_weighting_active(0)
    assert not ml.is_weighting_active(10)
    assert ml.is_weighting_active(11)
    assert MLParams(use_calibration=False, calibration_runs=10).is_weighting_active(0)
    with pytest.raises(ValueError):
        MLParams(weighting_constant=0)

def test_running_average_entry():
    hs = HintAdjacencyStats()
    for score in (10, 14, 12):
        hs.record(3, "west", 5, 90, score)
    e = hs.get(3, "west", 5, 90)
    assert e.count == 3
    assert e.avg_score == pytest.approx(12.0)
    assert e.best_score == 14
    assert hs.get(3, "west", 5, 0) is None
    assert len(hs) == 1

def test_weights_default_to_exploration():
    hs = HintAdjacencyStats()
    keys = [(1, 0), (2, 0)]
    assert hs.weights(3, "south", keys, global_avg=7.0, k=0.1) == [1.0, 1.0]
    hs.record(3, "south", 1, 0, 12)
    w = hs.weights(3, "south", keys, global_avg=7.0, k=0.1)
    assert w[0] / w[1] == pytest.approx(math.exp(0.5))

def test_large_learning_rate_does_not_overflow():
    hs = HintAdjacencyStats()
    hs.record(3, "west", 4, 0, 16)
    hs.record(3, "west", 9, 0, 12)
    w = hs.weights(3, "west", [(4, 0), (9, 0), (5, 0)], global_avg=0.0, k=100.0)
    assert w[0] == 1.0
    assert w[1] < 1e-100 and w[2] < 1e-100
    pct = hs.selection_percentages(3, "west", global_avg=0.0, k=100.0)
    assert pct[4][0] == pytest.approx(100.0)
    assert sum(v for rots in pct.values() for v in rots.values()) == pytest.approx(100.0)

def test_selection_percentages_sum_to_100():
    hs = HintAdjacencyStats()
    hs.record(3, "west", 4, 0, 16)
    hs.record(3, "west", 4, 90, 8)
    hs.record(3, "west", 9, 0, 12)
    hs.record(3, "south", 2, 0, 4)
    pct = hs.selection_percentages(3, "west", global_avg=10.0, k=0.1)
    assert set(pct) == {4, 9}
    total = sum(v for rots in pct.values() for v in rots.values())
    assert total == pytest.approx(100.0)
    assert pct[4][0] > pct[9][0] > pct[4][90]
    assert hs.selection_percentages(7, "east", 10.0, 0.1) == {}

def test_best_for_side():
    hs = HintAdjacencyStats()
    hs.record(3, "west", 4, 0, 9)
    hs.record(3, "west", 6, 270, 13)
    pid, rot, entry = hs.best_for(3, "west")
    assert (pid, rot, entry.avg_score) == (6, 270, 13)
    assert hs.best_for(3, "north") is None

def test_weighted_choice_follows_weights():
    rng = random.Random(11)
    picks = [weighted_choice(["a", "b"], [1.0, 9.0], rng) for _ in range(2000)]
    assert 0.85 < picks.count("b") / len(picks) < 0.95

def test_weighted_choice_falls_back_to_last():
    class Edge:
        def random(self):
            return 1.0
    assert weighted_choice(["a", "b", "c"], [0.1, 0.2, 0.3], Edge()) == "c"

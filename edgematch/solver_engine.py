# edgematch/solver_engine.py
# Randomized, non-backtracking edge-matching engine.
# One run: seed hints -> walk the strategy order -> at each empty cell collect
# every admissible (piece, rotation) from the pool, pick one (learned weighting
# next to hints, uniform elsewhere), place it. No admissible option ends the
# run early; nothing is ever undone. Aggregates are committed once per run.

from __future__ import annotations
import random
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from edgematch.fit import fits, required_border_count
from edgematch.geometry import DIRECTIONS, hint_adjacent_cells, neighbor_offset, is_valid_step
from edgematch.pieces import ROTATIONS, Edges, Piece, PlacedPiece
from edgematch.puzzle import Puzzle
from edgematch.stats import ComparisonMetrics, RunStats, StrategyStats, effect_size, p_value
from edgematch.strategies import Strategy, generate_placement_strategies, validate_strategy
from edgematch.weighting import HintAdjacencyStats, MLParams, weighted_choice

# --------------------------
# Tunables (defaults; can be tweaked by caller after construction)
# --------------------------
DEFAULT_RNG_SEED        = 1337
DEFAULT_STRATEGY        = "optimized"
DEFAULT_YIELD_THRESHOLD = 0.016   # seconds of placing between yield-hook calls

# run states
SEEDING   = "seeding"
PLACING   = "placing"
COMPLETED = "completed"
TRUNCATED = "truncated"
STOPPED   = "stopped"
FINISHED  = (COMPLETED, TRUNCATED, STOPPED)

YieldHook = Callable[["RunState"], Optional[bool]]


@dataclass(frozen=True)
class Candidate:
    piece: Piece
    rotation: int
    edges: Edges


@dataclass
class RunState:
    """Private per-run board and pool. Discarding it never touches shared state."""
    strategy: str
    order: Tuple[int, ...]
    board: List[Optional[PlacedPiece]]
    pool: List[Piece]
    rng: random.Random
    status: str = SEEDING
    cursor: int = 0
    pieces_placed: int = 0
    valid_options: int = 0
    dead_end_position: Optional[int] = None
    started: float = field(default_factory=time.monotonic)

    @property
    def score(self) -> int:
        return sum(1 for c in self.board if c is not None)

    @property
    def finished(self) -> bool:
        return self.status in FINISHED


@dataclass(frozen=True)
class RunResult:
    strategy: str
    board: Tuple[Optional[PlacedPiece], ...]
    score: int
    status: str
    total_cells: int
    pieces_placed: int
    valid_options: int
    dead_end_position: Optional[int]
    elapsed: float

    @property
    def completed(self) -> bool:
        return self.status == COMPLETED

    def to_dict(self) -> Dict:
        return {
            "strategy": self.strategy,
            "score": self.score,
            "status": self.status,
            "completed": self.completed,
            "dead_end_position": self.dead_end_position,
            "pieces_placed": self.pieces_placed,
            "valid_options": self.valid_options,
            "elapsed": self.elapsed,
            "board": [c.to_dict() if c is not None else None for c in self.board],
        }


class SolverEngine:
    """
    Inputs:
      - puzzle:     validated Puzzle (pieces + hints)
      - ml_params:  weighting constant / calibration gate (defaults scale with board size)
      - rng:        injectable random.Random; otherwise seeded from rng_seed or DEFAULT_RNG_SEED

    Owns the strategies, run statistics and the hint-adjacency model. Every run
    gets a fresh board and pool; only commit() touches the aggregates.
    """

    # --------------------------
    # Construction
    # --------------------------
    def __init__(self,
                 puzzle: Puzzle,
                 ml_params: Optional[MLParams] = None,
                 rng: Optional[random.Random] = None,
                 rng_seed: Optional[int] = None,
                 strategy_type: str = "auto",
                 strategies: Optional[Dict[str, Strategy]] = None):
        self.puzzle = puzzle
        self.size = puzzle.size
        self.total_cells = self.size * self.size

        # Tunables (mutable; caller may update after construct)
        self.RNG_SEED         = DEFAULT_RNG_SEED if rng_seed is None else int(rng_seed)
        self.DEFAULT_STRATEGY = DEFAULT_STRATEGY
        self.YIELD_THRESHOLD  = DEFAULT_YIELD_THRESHOLD
        self.yield_hook: Optional[YieldHook] = None

        self.rng = rng if rng is not None else random.Random(self.RNG_SEED)
        self.ml_params = ml_params if ml_params is not None else MLParams.for_board(self.size)

        # Strategies (validated eagerly; configuration errors surface here)
        if strategies is None:
            strategies = generate_placement_strategies(self.size, puzzle.hint_positions, strategy_type)
        else:
            for s in strategies.values():
                validate_strategy(s, self.size)
        self.strategies: Dict[str, Strategy] = dict(strategies)

        # Precompute
        self.hint_adjacent = hint_adjacent_cells(self.size, puzzle.hint_positions)
        self._rotations = {p.id: tuple((r, p.rotated(r)) for r in ROTATIONS) for p in puzzle.pieces}
        # piece-kind index: border-edge count a cell demands
        self._needed_border = tuple(required_border_count(pos, self.size) for pos in range(self.total_cells))
        hint_ids = {h.piece_id for h in puzzle.hints.values()}
        self._base_pool = tuple(p for p in puzzle.pieces if p.id not in hint_ids)

        self._lock = threading.Lock()
        self.reset()

    def reset(self) -> None:
        """Forget every aggregate (stats, learned weights, best board)."""
        self.stats = RunStats()
        self.hint_stats = HintAdjacencyStats()
        self.strategy_stats: Dict[str, StrategyStats] = {k: StrategyStats() for k in self.strategies}
        self.comparison = ComparisonMetrics()
        self._last_scores: Dict[str, int] = {}
        self.best_board: Optional[Tuple[Optional[PlacedPiece], ...]] = None
        self.best_score = 0
        self.best_timestamp: Optional[float] = None
        self.last_result: Optional[RunResult] = None

    # --------------------------
    # Public helpers
    # --------------------------
    def weighting_active(self) -> bool:
        return self.ml_params.is_weighting_active(self.stats.total_runs)

    def strategy(self, key: Optional[str] = None) -> Strategy:
        key = key or self.DEFAULT_STRATEGY
        try:
            return self.strategies[key]
        except KeyError:
            raise KeyError(f"strategy {key!r} not found (known: {sorted(self.strategies)})") from None

    # --------------------------
    # Run lifecycle
    # --------------------------
    def new_run(self, strategy: Optional[str] = None, rng: Optional[random.Random] = None) -> RunState:
        strat = self.strategy(strategy)
        return RunState(
            strategy=strat.key,
            order=strat.order,
            board=[None] * self.total_cells,
            pool=list(self._base_pool),
            rng=rng if rng is not None else self.rng,
        )

    def _seed(self, run: RunState) -> None:
        pieces = self.puzzle.piece_map
        for pos, hint in sorted(self.puzzle.hints.items()):
            piece = pieces[hint.piece_id]
            run.board[pos] = PlacedPiece(piece.id, piece.rotated(hint.rotation), hint.rotation, is_hint=True)

    def _advance(self, run: RunState) -> None:
        order = run.order
        while run.cursor < len(order) and run.board[order[run.cursor]] is not None:
            run.cursor += 1
        if run.cursor >= len(order):
            run.status = COMPLETED

    def candidates_at(self, board: Sequence[Optional[PlacedPiece]], pos: int,
                      pool: Sequence[Piece]) -> List[Candidate]:
        """Every admissible (piece, rotation) for `pos`, pool order then rotation order."""
        need = self._needed_border[pos]
        out: List[Candidate] = []
        for piece in pool:
            # a piece can only fit where its border-edge count matches the cell's
            if piece.border_count != need:
                continue
            for rotation, edges in self._rotations[piece.id]:
                if fits(board, pos, edges, self.size):
                    out.append(Candidate(piece, rotation, edges))
        return out

    def choose(self, pos: int, candidates: Sequence[Candidate], rng: Optional[random.Random] = None) -> Candidate:
        rng = rng if rng is not None else self.rng
        sides = self.hint_adjacent.get(pos)
        if sides and self.weighting_active():
            hint_pos, direction = sides[0]
            k = self.ml_params.weighting_constant
            global_avg = self.stats.avg_score
            weights = self.hint_stats.weights(hint_pos, direction,
                                              [(c.piece.id, c.rotation) for c in candidates],
                                              global_avg, k)
            return weighted_choice(candidates, weights, rng)
        return rng.choice(candidates)

    def step_once(self, run: RunState) -> bool:
        """
        Advance `run` by one transition. Returns True while the run is still
        live (more cells to place), False once it is completed or truncated.
        """
        if run.finished:
            return False

        if run.status == SEEDING:
            self._seed(run)
            run.status = PLACING
            self._advance(run)
            return not run.finished

        pos = run.order[run.cursor]
        cands = self.candidates_at(run.board, pos, run.pool)
        run.valid_options += len(cands)
        if not cands:
            # dead end: this cell and everything after it stay empty
            run.status = TRUNCATED
            run.dead_end_position = pos
            return False

        chosen = self.choose(pos, cands, run.rng)
        run.board[pos] = PlacedPiece(chosen.piece.id, chosen.edges, chosen.rotation)
        run.pool.remove(chosen.piece)
        run.pieces_placed += 1
        run.cursor += 1
        self._advance(run)
        return not run.finished

    def result_of(self, run: RunState) -> RunResult:
        return RunResult(
            strategy=run.strategy,
            board=tuple(run.board),
            score=run.score,
            status=run.status,
            total_cells=self.total_cells,
            pieces_placed=run.pieces_placed,
            valid_options=run.valid_options,
            dead_end_position=run.dead_end_position,
            elapsed=time.monotonic() - run.started,
        )

    def run_once(self, strategy: Optional[str] = None, rng: Optional[random.Random] = None) -> RunResult:
        """
        Execute one full run and commit it. When a yield_hook is set it is called
        every YIELD_THRESHOLD seconds; returning False abandons the run (status
        'stopped', nothing committed).
        """
        run = self.new_run(strategy, rng)
        last_yield = time.monotonic()
        while self.step_once(run):
            hook = self.yield_hook
            if hook is None:
                continue
            now = time.monotonic()
            if now - last_yield >= self.YIELD_THRESHOLD:
                if hook(run) is False:
                    run.status = STOPPED
                    return self.result_of(run)
                last_yield = time.monotonic()
        result = self.result_of(run)
        self.commit(result)
        return result

    # --------------------------
    # Aggregation
    # --------------------------
    def commit(self, result: RunResult) -> None:
        """Fold one finished run into every aggregate as a single unit."""
        if result.status not in (COMPLETED, TRUNCATED):
            raise ValueError(f"cannot commit a run with status {result.status!r}")
        with self._lock:
            score = result.score
            self.stats.record(score, self.total_cells)

            sstats = self.strategy_stats.get(result.strategy)
            if sstats is None:
                sstats = self.strategy_stats[result.strategy] = StrategyStats()
            sstats.record(score,
                          dead_end=result.status == TRUNCATED,
                          pieces_placed=result.pieces_placed + len(self.puzzle.hints),
                          elapsed=result.elapsed,
                          failure_position=result.dead_end_position,
                          valid_options=result.valid_options)

            self._last_scores[result.strategy] = score
            if result.strategy == "original" and "optimized" in self._last_scores:
                self.comparison.record(score, self._last_scores["optimized"])
            elif result.strategy == "optimized" and "original" in self._last_scores:
                self.comparison.record(self._last_scores["original"], score)

            self._record_hint_adjacency(result.board, score)

            if score > self.best_score:
                self.best_score = score
                self.best_board = result.board
                self.best_timestamp = time.time()
            self.last_result = result

    def _record_hint_adjacency(self, board: Sequence[Optional[PlacedPiece]], score: int) -> None:
        for pos, sides in self.hint_adjacent.items():
            cell = board[pos]
            if cell is None or cell.is_hint:
                continue
            for hint_pos, direction in sides:
                self.hint_stats.record(hint_pos, direction, cell.id, cell.rotation, score)

    # --------------------------
    # Reporting
    # --------------------------
    def selection_percentages(self, hint_pos: int, direction: str) -> Dict[int, Dict[int, float]]:
        with self._lock:
            return self._selection_percentages(hint_pos, direction)

    def _selection_percentages(self, hint_pos: int, direction: str) -> Dict[int, Dict[int, float]]:
        # caller holds self._lock
        if not self.weighting_active():
            return {}
        return self.hint_stats.selection_percentages(
            hint_pos, direction, self.stats.avg_score, self.ml_params.weighting_constant
        )

    def hint_analysis(self) -> List[Dict]:
        """Best-scoring piece/rotation found so far on each side of each hint."""
        rows = []
        with self._lock:
            for hint_pos in self.puzzle.hint_positions:
                for direction in DIRECTIONS:
                    off = neighbor_offset(direction, self.size)
                    if not is_valid_step(hint_pos, hint_pos + off, self.size, off):
                        continue
                    best = self.hint_stats.best_for(hint_pos, direction)
                    row = {"hint_position": hint_pos, "direction": direction, "best": None}
                    if best is not None:
                        pid, rot, entry = best
                        pct = self._selection_percentages(hint_pos, direction).get(pid, {}).get(rot, 0.0)
                        row["best"] = {
                            "piece_id": pid,
                            "rotation": rot,
                            "avg_score": entry.avg_score,
                            "count": entry.count,
                            "best_score": entry.best_score,
                            "percentage": pct,
                        }
                    rows.append(row)
        return rows

    def comparison_report(self) -> Dict:
        """Head-to-head tally plus significance of original vs optimized over their score windows."""
        with self._lock:
            return self._comparison_report()

    def _comparison_report(self) -> Dict:
        out = self.comparison.to_dict()
        orig = self.strategy_stats.get("original")
        opt = self.strategy_stats.get("optimized")
        a = list(orig.scores) if orig is not None else []
        b = list(opt.scores) if opt is not None else []
        out["p_value"] = p_value(a, b)
        out["effect_size"] = effect_size(a, b)
        out["significant"] = out["p_value"] < 0.05
        return out

    def calibration_remaining(self) -> int:
        if not self.ml_params.use_calibration:
            return 0
        return max(0, self.ml_params.calibration_runs - self.stats.total_runs)

    def snapshot(self) -> Dict:
        """JSON-ready view of every aggregate."""
        with self._lock:
            return {
                "puzzle": self.puzzle.name,
                "board_size": self.size,
                "stats": self.stats.to_dict(),
                "ml_params": {
                    "weighting_constant": self.ml_params.weighting_constant,
                    "use_calibration": self.ml_params.use_calibration,
                    "calibration_runs": self.ml_params.calibration_runs,
                    "weighting_active": self.weighting_active(),
                },
                "strategy_stats": {k: v.to_dict() for k, v in self.strategy_stats.items()},
                "comparison": self._comparison_report(),
                "hint_adjacency_stats": self.hint_stats.to_dict(),
                "best": {
                    "score": self.best_score,
                    "timestamp": self.best_timestamp,
                    "board": ([c.to_dict() if c is not None else None for c in self.best_board]
                              if self.best_board is not None else None),
                },
            }

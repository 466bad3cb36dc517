# edgematch/driver.py: edge-matching solver host loop
# Runs many independent attempts against one puzzle with:
#   cooperative run-control (pause/resume/stop via logs/runctl.json, polled at
#   every engine yield point), JSON-lines progress stream + summary, concise
#   console echo, and an atomic results snapshot of the best board + stats.

from __future__ import annotations
import argparse
import json
import os
import sys
import time
from typing import Dict, List, Optional

from edgematch.data import PUZZLES, available_puzzles, load_builtin
from edgematch.pieces import Hint
from edgematch.puzzle import Puzzle, PuzzleConfigError, load_puzzle_file, with_hints
from edgematch.solver_engine import STOPPED, SolverEngine
from edgematch.strategies import STRATEGY_TYPES
from edgematch.weighting import MLParams, calibration_runs_for

# ---------- paths ----------
DEFAULT_RESULTS_DIR = "results"
DEFAULT_LOGS_DIR = "logs"
LOG_PERIOD = 5.0


def ensure_dir(p: str):
    if not os.path.isdir(p):
        os.makedirs(p, exist_ok=True)


# ---------- run control (pause/resume/stop) ----------
class RunControl:
    """Polls a small JSON file {"state": "run"|"pause"|"stop"}; re-reads only on mtime change."""

    def __init__(self, path: str):
        self.path = path
        self._mtime = -1.0
        self._state = "run"

    def init(self):
        """Create the control file with state=run if missing (idempotent)."""
        ensure_dir(os.path.dirname(self.path) or ".")
        if not os.path.exists(self.path):
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump({"state": "run", "ts": time.time()}, f, ensure_ascii=False)
        print(f"[runctl] RUNCTL_PATH = {self.path}", flush=True)

    def state(self) -> str:
        try:
            m = os.path.getmtime(self.path)
        except OSError:
            return self._state
        if m != self._mtime:
            self._mtime = m
            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    s = json.load(f)
                self._state = str(s.get("state", "run")).lower()
            except (OSError, ValueError):
                # half-written file; keep running and re-read on the next mtime change
                self._state = "run"
        return self._state


# ---------- progress emitters ----------
class ProgressLog:
    def __init__(self, logs_dir: str):
        ensure_dir(logs_dir)
        self.stream_path = os.path.join(logs_dir, "progress.jsonl")
        self.summary_path = os.path.join(logs_dir, "progress.json")

    def event(self, payload: dict, summary: bool = False):
        with open(self.stream_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(payload, ensure_ascii=False) + "\n")
        if summary:
            with open(self.summary_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False, indent=2)

    def progress(self, engine: SolverEngine, run_idx: int, rps: float, status: str = ""):
        st = engine.stats
        payload = {
            "event": "progress",
            "run": run_idx,
            "score": engine.last_result.score if engine.last_result else 0,
            "best_score": st.best_score,
            "avg_score": round(st.avg_score, 3),
            "completed_solutions": st.completed_solutions,
            "total": engine.total_cells,
            "total_runs": st.total_runs,
            "weighting_active": engine.weighting_active(),
            "runs_per_sec": round(rps, 1),
        }
        if status:
            payload["status"] = status
        self.event(payload, summary=True)

        line = (f"[run {run_idx}] best {st.best_score}/{engine.total_cells} | avg {st.avg_score:.2f}"
                f" | solved {st.completed_solutions} | rate {payload['runs_per_sec']}/s")
        if engine.ml_params.use_calibration and not engine.weighting_active():
            line += f" | calibrating ({engine.calibration_remaining()} left)"
        if status:
            line += f" | {status}"
        print(line, flush=True)


# ---------- atomic snapshot helpers (Windows-safe) ----------
def _atomic_replace(src, dst, retries=12, delay=0.1):
    """
    Replace with retries. Returns True on success, False on final failure.
    Retries PermissionError/OSError (file temporarily locked by another process).
    """
    for _ in range(retries):
        try:
            os.replace(src, dst)
            return True
        except OSError:
            time.sleep(delay)
    return False


def _atomic_write(path: str, data: str) -> bool:
    tmp = path + ".tmp"
    with open(tmp, "w", encoding="utf-8") as f:
        f.write(data)
    if _atomic_replace(tmp, path):
        return True
    try:
        os.remove(tmp)
    except OSError:
        pass
    return False


def results_path(results_dir: str, puzzle: Puzzle) -> str:
    key = puzzle.metadata.get("id") or puzzle.name.lower().replace(" ", "_")
    return os.path.join(results_dir, f"{key}.best.json")


def write_results(engine: SolverEngine, results_dir: str) -> str:
    ensure_dir(results_dir)
    data = engine.snapshot()
    data["schema"] = "edgematch_results/1.0"
    data["hint_analysis"] = engine.hint_analysis()
    data["timestamp"] = time.time()
    path = results_path(results_dir, engine.puzzle)
    if not _atomic_write(path, json.dumps(data, ensure_ascii=False, indent=2)):
        sys.stderr.write(f"[results] could not replace {path}; keeping previous snapshot\n")
    return path


# ---------- puzzle loading ----------
def parse_hint(text: str) -> Hint:
    """POS:ID or POS:ID:ROT"""
    parts = text.split(":")
    if len(parts) not in (2, 3):
        raise argparse.ArgumentTypeError(f"hint must look like POS:ID[:ROT], got {text!r}")
    try:
        nums = [int(p) for p in parts]
    except ValueError:
        raise argparse.ArgumentTypeError(f"hint fields must be integers, got {text!r}") from None
    pos, pid = nums[0], nums[1]
    rot = nums[2] if len(nums) == 3 else 0
    return Hint(pos, pid, rot)


def load_puzzle_arg(name: str, hints: Optional[List[Hint]], detect_hints: bool) -> Puzzle:
    hint_map = {h.position: h for h in hints} if hints else None
    if name in PUZZLES:
        puzzle = load_builtin(name)
        return with_hints(puzzle, hint_map) if hint_map is not None else puzzle
    return load_puzzle_file(name, hints=hint_map, detect_hints=detect_hints)


# ---------- CLI ----------
def build_argparser():
    p = argparse.ArgumentParser(
        description=(
            "Randomized edge-matching puzzle solver: many independent non-backtracking runs.\n\n"
            "Examples:\n"
            "  python run_solver.py hard_4x4\n"
            "  python run_solver.py hard_4x4 --runs 20000 --rng-seed 42\n"
            "  python run_solver.py puzzles/e2_8x8.txt --hint 27:12:90 --strategy sequential\n"
            "  python run_solver.py hard_5x5 --strategy compare --no-calibration\n"
        ),
        formatter_class=argparse.RawTextHelpFormatter
    )

    p.add_argument("puzzle", nargs="?", default="hard_4x4",
                   help="Bundled puzzle id or path to an 'N N' puzzle text file (default: hard_4x4)")

    p.add_argument("--list-puzzles", action="store_true",
                   help="List bundled puzzles and exit.")

    p.add_argument("--hint", action="append", type=parse_hint, default=None, metavar="POS:ID[:ROT]",
                   help="Pin piece ID at POS with rotation ROT (0/90/180/270). Repeatable; replaces bundled hints.")

    p.add_argument("--detect-hints", action="store_true",
                   help="For puzzle files without --hint: pin corner pieces by their border pattern.")

    p.add_argument("--runs", type=int, default=1000, metavar="N",
                   help="Number of runs to execute (default: 1000).")

    p.add_argument("--strategy", default="optimized",
                   help="Placement strategy key, or 'compare' to alternate original/optimized (default: optimized).")

    p.add_argument("--strategy-type", choices=STRATEGY_TYPES, default="auto",
                   help="Extra strategies to generate (spiral / checkerboard / all).")

    p.add_argument("--rng-seed", type=int, default=None,
                   help="Set RNG seed. Omit for default engine seed = 1337.")

    p.add_argument("--weighting-constant", type=float, default=0.1, metavar="K",
                   help="Learning rate k in weight = exp(k * (local_avg - global_avg)) (default: 0.1).")

    p.add_argument("--no-calibration", action="store_true",
                   help="Enable weighting from the first run instead of after the calibration window.")

    p.add_argument("--calibration-runs", type=int, default=None, metavar="N",
                   help="Calibration window (default: scaled by board size, 100..2000).")

    p.add_argument("--yield-ms", type=float, default=16.0, metavar="MS",
                   help="Placing time between run-control polls inside a run (default: 16).")

    p.add_argument("--snapshot-interval", type=float, default=None, metavar="SECONDS",
                   help="Rewrite results/<puzzle>.best.json every N seconds (always written at the end).")

    p.add_argument("--results-dir", default=DEFAULT_RESULTS_DIR)
    p.add_argument("--logs-dir", default=DEFAULT_LOGS_DIR)

    return p


def build_engine(puzzle: Puzzle, args) -> SolverEngine:
    ml = MLParams(
        weighting_constant=args.weighting_constant,
        use_calibration=not args.no_calibration,
        calibration_runs=(args.calibration_runs if args.calibration_runs is not None
                          else calibration_runs_for(puzzle.size)),
    )
    eng = SolverEngine(puzzle, ml_params=ml, rng_seed=args.rng_seed, strategy_type=args.strategy_type)
    eng.YIELD_THRESHOLD = max(0.0, args.yield_ms / 1000.0)
    if args.strategy != "compare":
        eng.strategy(args.strategy)  # unknown keys fail before the first run
    return eng


def strategy_for_run(args, run_idx: int) -> str:
    if args.strategy == "compare":
        return "original" if run_idx % 2 == 0 else "optimized"
    return args.strategy


def make_yield_hook(ctl: RunControl, progress: ProgressLog):
    """Engine yield hook: blocks while paused, returns False on stop."""
    def hook(run) -> bool:
        state = ctl.state()
        if state == "pause":
            progress.event({"event": "paused", "ts": time.time()})
            while state == "pause":
                time.sleep(0.05)
                state = ctl.state()
            if state != "stop":
                progress.event({"event": "resumed", "ts": time.time()})
        return state != "stop"
    return hook


# ---------- driver ----------
def main(argv=None) -> int:
    p = build_argparser()
    args = p.parse_args(argv)

    if args.list_puzzles:
        for info in available_puzzles():
            print(f"{info['id']:<12} {info['board_size']}x{info['board_size']}  "
                  f"hints={info['hint_count']}  {info['name']}")
        return 0

    try:
        puzzle = load_puzzle_arg(args.puzzle, args.hint, args.detect_hints)
        engine = build_engine(puzzle, args)
    except (PuzzleConfigError, KeyError, ValueError, OSError) as exc:
        sys.stderr.write(f"[config] {exc}\n")
        return 2

    ctl = RunControl(os.environ.get("RUNCTL_OVERRIDE") or os.path.join(args.logs_dir, "runctl.json"))
    ctl.init()
    progress = ProgressLog(args.logs_dir)
    engine.yield_hook = make_yield_hook(ctl, progress)

    print(f"[puzzle] {puzzle.name} {puzzle.size}x{puzzle.size} | hints {len(puzzle.hints)}"
          f" | strategies {', '.join(engine.strategies)}", flush=True)

    t0 = time.monotonic()
    last_log_t = t0
    last_snap_t = t0
    prev_runs = 0
    status = "finished"

    for run_idx in range(max(0, args.runs)):
        if ctl.state() == "stop":
            status = "stopped_by_user"
            break
        best_before = engine.stats.best_score
        result = engine.run_once(strategy_for_run(args, run_idx))
        if result.status == STOPPED:
            status = "stopped_by_user"
            break

        now = time.monotonic()
        improved = engine.stats.best_score > best_before
        if improved or now - last_log_t >= LOG_PERIOD:
            rps = (engine.stats.total_runs - prev_runs) / max(1e-6, now - last_log_t)
            progress.progress(engine, run_idx, rps, "solved" if result.completed and improved else "")
            last_log_t = now
            prev_runs = engine.stats.total_runs
        if args.snapshot_interval is not None and now - last_snap_t >= args.snapshot_interval:
            write_results(engine, args.results_dir)
            last_snap_t = now

    elapsed = max(1e-6, time.monotonic() - t0)
    progress.progress(engine, engine.stats.total_runs, engine.stats.total_runs / elapsed, status)
    path = write_results(engine, args.results_dir)
    print(f"[results] {path}", flush=True)
    return 0


if __name__ == "__main__":
    sys.exit(main())

import argparse
import json
import os

import pytest

from edgematch.driver import ProgressLog, main, parse_hint, results_path
from edgematch.data import load_builtin


def _argv(tmp_path, *extra):
    return ["--results-dir", str(tmp_path / "results"), "--logs-dir", str(tmp_path / "logs"), *extra]


def test_parse_hint():
    h = parse_hint("27:12:90")
    assert (h.position, h.piece_id, h.rotation) == (27, 12, 90)
    assert parse_hint("3:1").rotation == 0
    with pytest.raises(argparse.ArgumentTypeError):
        parse_hint("3")
    with pytest.raises(argparse.ArgumentTypeError):
        parse_hint("a:b")


def test_main_writes_results(tmp_path, monkeypatch):
    monkeypatch.setenv("RUNCTL_OVERRIDE", str(tmp_path / "ctl.json"))
    rc = main(["hard_4x4", "--runs", "25", "--rng-seed", "5", *_argv(tmp_path)])
    assert rc == 0
    path = results_path(str(tmp_path / "results"), load_builtin("hard_4x4"))
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    assert data["stats"]["total_runs"] == 25
    assert data["schema"] == "edgematch_results/1.0"
    assert os.path.exists(tmp_path / "logs" / "progress.jsonl")
    with open(tmp_path / "ctl.json", encoding="utf-8") as f:
        assert json.load(f)["state"] == "run"


def test_stop_state_skips_runs(tmp_path, monkeypatch):
    ctl = tmp_path / "ctl.json"
    ctl.write_text(json.dumps({"state": "stop"}), encoding="utf-8")
    monkeypatch.setenv("RUNCTL_OVERRIDE", str(ctl))
    assert main(["simple_3x3", "--runs", "50", *_argv(tmp_path)]) == 0
    with open(results_path(str(tmp_path / "results"), load_builtin("simple_3x3")), encoding="utf-8") as f:
        assert json.load(f)["stats"]["total_runs"] == 0


def test_compare_mode_alternates(tmp_path, monkeypatch):
    monkeypatch.setenv("RUNCTL_OVERRIDE", str(tmp_path / "ctl.json"))
    assert main(["hard_5x5", "--runs", "10", "--strategy", "compare", *_argv(tmp_path)]) == 0
    with open(results_path(str(tmp_path / "results"), load_builtin("hard_5x5")), encoding="utf-8") as f:
        data = json.load(f)
    assert data["strategy_stats"]["original"]["total_runs"] == 5
    assert data["strategy_stats"]["optimized"]["total_runs"] == 5
    assert data["comparison"]["total_comparisons"] == 9
    assert "p_value" in data["comparison"] and "effect_size" in data["comparison"]


def test_puzzle_file_with_hint(tmp_path, monkeypatch):
    monkeypatch.setenv("RUNCTL_OVERRIDE", str(tmp_path / "ctl.json"))
    src = tmp_path / "tiny.txt"
    src.write_text("3 3\n0 1 1 0\n0 2 1 1\n0 0 2 2\n1 1 2 0\n1 2 2 1\n"
                   "2 0 2 2\n2 1 0 0\n2 2 0 1\n2 0 0 2\n", encoding="utf-8")
    assert main([str(src), "--hint", "0:0", "--runs", "5", *_argv(tmp_path)]) == 0
    assert os.path.exists(tmp_path / "results" / "tiny.best.json")


def test_config_errors_return_2(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("RUNCTL_OVERRIDE", str(tmp_path / "ctl.json"))
    assert main([str(tmp_path / "missing.txt"), *_argv(tmp_path)]) == 2
    assert main(["hard_4x4", "--hint", "3:99", *_argv(tmp_path)]) == 2
    assert main(["hard_4x4", "--strategy", "zigzag", *_argv(tmp_path)]) == 2
    assert "[config]" in capsys.readouterr().err
    assert not os.path.exists(tmp_path / "results")


def test_list_puzzles(capsys):
    assert main(["--list-puzzles"]) == 0
    out = capsys.readouterr().out
    assert "hard_4x4" in out and "simple_3x3" in out


def test_progress_log_streams_and_summarizes(tmp_path):
    log = ProgressLog(str(tmp_path / "logs"))
    log.event({"event": "paused"})
    log.event({"event": "progress", "run": 3}, summary=True)
    with open(log.stream_path, encoding="utf-8") as f:
        lines = [json.loads(line) for line in f]
    assert [e["event"] for e in lines] == ["paused", "progress"]
    with open(log.summary_path, encoding="utf-8") as f:
        assert json.load(f) == {"event": "progress", "run": 3}

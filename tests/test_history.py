import asyncio
import csv
import json
from pathlib import Path

from opt.sa import Annealer, HistoryObserver, build_config


def test_history_files_written(tmp_path: Path, scripted_neighborhood, table_evaluator) -> None:
    observer = HistoryObserver(tmp_path / "opt", run_id="run1")
    annealer = Annealer(
        table_evaluator({(1.0,): 3.0, (2.0,): 1.0}),
        scripted_neighborhood([(1.0,), (2.0,)]),
        build_config(cooling_steps=3, steps_per_temp=2),
        observers=[observer],
    )
    report = asyncio.run(annealer.run())

    meta = json.loads(observer.meta_path.read_text(encoding="utf-8"))
    assert meta["run_id"] == "run1"
    assert meta["config"]["cooling_steps"] == 3
    assert meta["initial_solution"] == [1.0]

    with observer.history_path.open(encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert [int(r["step"]) for r in rows] == [0, 1, 2]
    assert json.loads(rows[-1]["best_solution"]) == [2.0]

    best = json.loads(observer.best_path.read_text(encoding="utf-8"))
    assert best["best_solution"] == [2.0]
    assert best["best_cost"] == 1.0
    assert best["attempts"] == report.attempts


def test_write_failures_do_not_interrupt_run(tmp_path: Path, scripted_neighborhood, table_evaluator) -> None:
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("", encoding="utf-8")
    observer = HistoryObserver(blocker, run_id="run2")
    annealer = Annealer(
        table_evaluator({"a": 1.0}),
        scripted_neighborhood(["a"]),
        build_config(cooling_steps=2, steps_per_temp=2),
        observers=[observer],
    )
    report = asyncio.run(annealer.run())
    assert report.best_solution == "a"

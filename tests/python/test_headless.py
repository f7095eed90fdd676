import csv
import json

from driftfish.config import FishConfig
from driftfish.headless import run_headless


def _read_csv(path):
    with path.open(newline="") as handle:
        return list(csv.reader(handle))


def test_headless_log_header(tmp_path):
    log_path = tmp_path / "frames.csv"
    run_headless(frames=3, seed=1, log_path=log_path, deterministic_log=True)
    rows = _read_csv(log_path)
    assert len(rows) == 4
    assert rows[0] == [
        "frame",
        "time_ms",
        "dt_ms",
        "population",
        "spawned",
        "removed",
        "max_concurrent",
        "spawn_pending",
        "tick_ms",
    ]
    assert [row[0] for row in rows[1:]] == ["1", "2", "3"]
    assert all(float(row[-1]) == 0.0 for row in rows[1:])


def test_headless_is_repeatable_with_seed(tmp_path):
    first = tmp_path / "a.csv"
    second = tmp_path / "b.csv"
    run_headless(frames=240, seed=11, log_path=first, deterministic_log=True)
    run_headless(frames=240, seed=11, log_path=second, deterministic_log=True)
    assert first.read_text() == second.read_text()


def test_headless_respects_small_viewport_capacity():
    history = run_headless(frames=600, seed=5, log_path=None, width=375, height=600)
    assert history
    assert all(m.max_concurrent == 2 for m in history)
    assert max(m.population for m in history) <= 2


def test_headless_summary_output(tmp_path):
    summary_path = tmp_path / "summary.json"
    config = FishConfig(min_speed=1.0, max_speed=1.5)
    run_headless(
        frames=600,
        seed=3,
        log_path=None,
        summary_path=summary_path,
        config=config,
    )
    payload = json.loads(summary_path.read_text())
    assert payload["frames"] == 600
    assert payload["seed"] == 3
    assert payload["viewport"] == {"width": 1280, "height": 800}
    assert payload["max_concurrent"] == 10
    assert payload["population"]["max"] <= 10
    assert payload["spawned"] >= payload["removed"] > 0
    assert payload["pointer_repulsion"] is False

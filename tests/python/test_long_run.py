import pytest

from driftfish.config import FishConfig
from driftfish.headless import run_headless


@pytest.mark.slow
def test_long_run_keeps_population_bounded():
    config = FishConfig(mouse_radius=160.0, mouse_force=0.35)
    history = run_headless(frames=60 * 60 * 5, seed=21, log_path=None, config=config)

    populations = [m.population for m in history]
    removed = sum(m.removed for m in history)
    spawned = sum(m.spawned for m in history)
    summary = f"peak={max(populations)}, spawned={spawned}, removed={removed}"

    assert max(populations) <= config.max_concurrent, summary
    assert removed > 50, summary
    assert spawned - removed == populations[-1], summary

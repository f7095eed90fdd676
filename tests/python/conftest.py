import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
src_root = ROOT / "src"
if str(src_root) not in sys.path:
    sys.path.insert(0, str(src_root))

from driftfish.config import FishConfig  # noqa: E402
from driftfish.sim.core.simulation import Simulation  # noqa: E402
from driftfish.sim.core.timers import ManualTimers  # noqa: E402


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="run long simulated runs that exercise many spawn/exit cycles",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "slow: marks long simulated runs (use --run-slow)",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if config.getoption("--run-slow"):
        return

    skip_marker = pytest.mark.skip(
        reason="Long simulated run (use --run-slow)",
    )

    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_marker)


@pytest.fixture
def timers() -> ManualTimers:
    return ManualTimers()


@pytest.fixture
def make_sim(timers: ManualTimers):
    def _make(width: float = 1280, height: float = 800, **overrides) -> Simulation:
        overrides.setdefault("seed", 1234)
        return Simulation(FishConfig(**overrides), timers, width, height)

    return _make

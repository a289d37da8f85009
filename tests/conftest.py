"""Pytest configuration for path setup and marker handling."""

import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parent.parent))

from plantree.common.validation import set_strict_validation  # noqa: E402


def pytest_addoption(parser):
    parser.addoption(
        "--runslow", action="store_true", default=False, help="run tests marked as slow"
    )


def pytest_collection_modifyitems(config, items):
    skip_slow = not config.getoption("--runslow")

    for item in items:
        if skip_slow and "slow" in item.keywords:
            item.add_marker(pytest.mark.skip(reason="need --runslow to run slow tests"))


@pytest.fixture(autouse=True)
def strict_validation(monkeypatch):
    """Validators raise on any violation while a test runs."""

    monkeypatch.delenv("PLANTREE_DEBUG", raising=False)
    set_strict_validation(True)
    yield
    set_strict_validation(False)

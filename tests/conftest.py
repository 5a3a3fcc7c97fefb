"""Shared test fixtures for Hookwise."""

import os
import sys
import textwrap

import pytest

from hookwise.analyzers import ProcessAnalyzer
from hookwise.models import DEFAULT_SEVERITY, Category, LineRange, Suggestion


def pytest_addoption(parser):
    """Add --run-slow option for slow tests."""
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="run slow tests",
    )


def pytest_configure(config):
    """Configure slow marker."""
    config.addinivalue_line("markers", "slow: mark test as slow to run")


def pytest_collection_modifyitems(config, items):
    """Skip slow tests unless --run-slow is given."""
    if config.getoption("--run-slow"):
        return
    skip_slow = pytest.mark.skip(reason="need --run-slow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep user config and HOOKWISE_* variables out of every test."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)
    for name in list(os.environ):
        if name.startswith("HOOKWISE_") or name == "HOOK_MODE":
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def make_suggestion():
    """Factory for Suggestions with sensible defaults."""
    counter = iter(range(10_000))

    def _make(
        start,
        original,
        replacement,
        end=None,
        analyzer="lint",
        category=Category.QUALITY,
        rationale="improve",
    ):
        span = LineRange(start, start + 1 if end is None else end)
        return Suggestion(
            id=f"{analyzer}-{span}-0-{next(counter)}",
            analyzer_name=analyzer,
            category=category,
            line_range=span,
            original_text=original,
            replacement_text=replacement,
            severity=DEFAULT_SEVERITY[category],
            rationale=rationale,
        )

    return _make


@pytest.fixture
def make_analyzer(tmp_path):
    """Factory for ProcessAnalyzers backed by small Python scripts.

    The script body receives the target path as ``sys.argv[1]``.
    """
    scripts = tmp_path / "analyzers"
    scripts.mkdir()

    def _make(name, body):
        script = scripts / f"{name}-hook.py"
        script.write_text(
            "import sys\n" + textwrap.dedent(body),
            encoding="utf-8",
        )
        return ProcessAnalyzer(name, [sys.executable, str(script)], cwd=tmp_path)

    return _make


@pytest.fixture
def sample_file(tmp_path):
    """A three-line source file."""
    path = tmp_path / "app.py"
    path.write_text("import os\nx = 1\nprint(x)\n", encoding="utf-8")
    return path

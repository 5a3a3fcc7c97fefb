"""Tests for coordinator.py - end-to-end runs over real files and analyzers."""

import io
import threading

import pytest
from rich.console import Console

from hookwise.config import EnhancerConfig
from hookwise.coordinator import TOO_LARGE, run
from hookwise.decisions import QueuePrompter
from hookwise.exceptions import UnknownAnalyzerError
from hookwise.models import Action, AnalyzerStatus, DropReason, Outcome

DOCSTRING_ANALYZER = r'''
print('SUGGESTION:documentation:0:Add docstring:def f()\\::def f()\\:\\n    """doc"""')
'''

# Marks every file it sees so tests can tell whether it ran
SPY_ANALYZER = """
from pathlib import Path
Path(sys.argv[1] + ".seen").write_text("")
"""


def _prompter(*answers):
    return QueuePrompter(answers, console=Console(file=io.StringIO(), width=120))


@pytest.fixture
def source(tmp_path):
    path = tmp_path / "a.py"
    path.write_text("def f():\n    return 1\n", encoding="utf-8")
    return path


class TestScenarios:
    """End-to-end behavior of a run."""

    def test_auto_applies_docstring(self, tmp_path, source, make_analyzer):
        docs = make_analyzer("docs", DOCSTRING_ANALYZER)
        summary = run([source], EnhancerConfig(mode="auto"), tmp_path, _prompter(), [docs])

        assert source.read_text() == 'def f():\n    """doc"""\n    return 1\n'
        backups = list((tmp_path / ".hookwise" / "backups").glob("*.backup"))
        assert len(backups) == 1
        assert backups[0].read_text() == "def f():\n    return 1\n"
        assert summary.applied == 1
        assert summary.suggestions_applied == 1

    def test_overlap_goes_to_first_analyzer(self, tmp_path, source, make_analyzer):
        first = make_analyzer("security", 'print("SUGGESTION:quality:0:Rename:def f()\\\\::def g()\\\\:")\n')
        second = make_analyzer("docs", 'print("SUGGESTION:quality:0:Rename:def f()\\\\::def h()\\\\:")\n')
        summary = run([source], EnhancerConfig(mode="auto"), tmp_path, _prompter(), [first, second])

        assert source.read_text().startswith("def g():")
        (outcome,) = summary.outcomes
        assert outcome.applied == 1
        assert [(d.suggestion.analyzer_name, d.reason) for d in outcome.dropped] == [
            ("docs", DropReason.OVERLAP)
        ]

    def test_analyzer_timeout_is_clean(self, tmp_path, source, make_analyzer):
        slow = make_analyzer("slow", "import time\ntime.sleep(30)\n")
        config = EnhancerConfig(mode="auto", analyzer_timeout_seconds=1)
        summary = run([source], config, tmp_path, _prompter(), [slow])

        (outcome,) = summary.outcomes
        assert outcome.state == Outcome.CLEAN
        assert outcome.results[0].status == AnalyzerStatus.TIMEOUT
        assert source.read_text() == "def f():\n    return 1\n"
        assert summary.clean == 1

    def test_prompt_timeout_skips(self, tmp_path, source, make_analyzer):
        docs = make_analyzer("docs", DOCSTRING_ANALYZER)
        config = EnhancerConfig(mode="interactive", timeout_seconds=10)
        summary = run([source], config, tmp_path, _prompter(None), [docs])

        (outcome,) = summary.outcomes
        assert outcome.state == Outcome.SKIPPED
        assert outcome.reason == "timeout"
        assert source.read_text() == "def f():\n    return 1\n"

    @pytest.mark.slow
    def test_prompt_timeout_is_bounded(self, tmp_path, source, make_analyzer):
        import time

        docs = make_analyzer("docs", DOCSTRING_ANALYZER)
        config = EnhancerConfig(mode="interactive", timeout_seconds=5)
        started = time.monotonic()
        summary = run([source], config, tmp_path, _prompter(), [docs])
        assert 5 <= time.monotonic() - started < 8
        assert summary.skipped == 1

    def test_too_large_never_analyzed(self, tmp_path, make_analyzer):
        big = tmp_path / "big.txt"
        big.write_text("x" * 2048)
        spy = make_analyzer("spy", SPY_ANALYZER)
        summary = run([big], EnhancerConfig(mode="auto", max_file_size=1024), tmp_path, _prompter(), [spy])

        (outcome,) = summary.outcomes
        assert outcome.state == Outcome.SKIPPED
        assert outcome.reason == TOO_LARGE
        assert not (tmp_path / "big.txt.seen").exists()


class TestRunBehavior:
    """Coordinator-level guarantees."""

    def test_skip_mode_never_invokes_analyzers(self, tmp_path, source, make_analyzer):
        spy = make_analyzer("spy", SPY_ANALYZER)
        summary = run([source], EnhancerConfig(mode="skip"), tmp_path, _prompter(), [spy])
        assert summary.skipped == 1
        assert not (tmp_path / "a.py.seen").exists()

    def test_failure_isolated_per_file(self, tmp_path, make_analyzer):
        good = tmp_path / "good.py"
        good.write_text("def f():\n")
        bad = tmp_path / "bad.py"
        bad.write_text("def f():\n")
        picky = make_analyzer(
            "picky",
            """
            if sys.argv[1].endswith("bad.py"):
                sys.exit("cannot handle this file")
            print("SUGGESTION:quality:0:Rename:def f()\\\\::def g()\\\\:")
            """,
        )
        summary = run([bad, good], EnhancerConfig(mode="auto", workers=2), tmp_path, _prompter(), [picky])

        states = {o.path.name: o.state for o in summary.outcomes}
        assert states == {"bad.py": Outcome.ERROR, "good.py": Outcome.APPLIED}
        assert good.read_text() == "def g():\n"
        assert bad.read_text() == "def f():\n"

    def test_missing_file_is_error(self, tmp_path, make_analyzer):
        spy = make_analyzer("spy", SPY_ANALYZER)
        summary = run([tmp_path / "gone.py"], EnhancerConfig(mode="auto"), tmp_path, _prompter(), [spy])
        assert summary.errored == 1

    def test_binary_file_skipped(self, tmp_path, make_analyzer):
        blob = tmp_path / "blob.bin"
        blob.write_bytes(b"\xff\xfe\x00")
        spy = make_analyzer("spy", SPY_ANALYZER)
        summary = run([blob], EnhancerConfig(mode="auto"), tmp_path, _prompter(), [spy])
        assert summary.skipped == 1

    def test_quit_marks_remaining_skipped(self, tmp_path, make_analyzer):
        files = []
        for name in ("one.py", "two.py", "three.py"):
            path = tmp_path / name
            path.write_text("def f():\n")
            files.append(path)
        analyzer = make_analyzer("rename", 'print("SUGGESTION:quality:0:Rename:def f()\\\\::def g()\\\\:")\n')

        summary = run(files, EnhancerConfig(mode="interactive"), tmp_path, _prompter("q"), [analyzer])

        assert summary.processed == 3
        assert summary.aborted == 1
        assert summary.skipped == 2
        assert all(o.reason == "quit" for o in summary.outcomes if o.state == Outcome.SKIPPED)
        assert all(p.read_text() == "def f():\n" for p in files)

    def test_cancelled_run_skips_everything(self, tmp_path, source, make_analyzer):
        cancel = threading.Event()
        cancel.set()
        spy = make_analyzer("spy", SPY_ANALYZER)
        summary = run([source], EnhancerConfig(mode="auto"), tmp_path, _prompter(), [spy], cancel=cancel)
        assert summary.outcomes[0].state == Outcome.SKIPPED
        assert summary.outcomes[0].action == Action.SKIP

    def test_duplicate_paths_processed_once(self, tmp_path, source, make_analyzer):
        docs = make_analyzer("docs", DOCSTRING_ANALYZER)
        summary = run([source, source], EnhancerConfig(mode="auto"), tmp_path, _prompter(), [docs])
        assert summary.processed == 1
        assert source.read_text().count('"""doc"""') == 1

    def test_relative_path_from_subdirectory(self, tmp_path, make_analyzer, monkeypatch):
        sub = tmp_path / "sub"
        sub.mkdir()
        target = sub / "a.py"
        target.write_text("def f():\n")
        monkeypatch.chdir(sub)
        # Reading the argument fails unless it names the file from the analyzer's cwd
        reader = make_analyzer(
            "reader",
            """
            open(sys.argv[1]).read()
            print("SUGGESTION:quality:0:Rename:def f()\\\\::def g()\\\\:")
            """,
        )
        summary = run(["a.py"], EnhancerConfig(mode="auto"), tmp_path, _prompter(), [reader])

        (outcome,) = summary.outcomes
        assert outcome.state == Outcome.APPLIED
        assert outcome.path == target.resolve()
        assert target.read_text() == "def g():\n"

    def test_ask_mode_remembered(self, tmp_path, source, make_analyzer):
        docs = make_analyzer("docs", DOCSTRING_ANALYZER)
        run([source], EnhancerConfig(mode="ask"), tmp_path, _prompter("p", "y"), [docs])
        prefs = (tmp_path / ".hookwise" / "preferences.conf").read_text()
        assert "mode=preview" in prefs

    def test_unknown_analyzer_fails_before_any_file(self, tmp_path, source):
        with pytest.raises(UnknownAnalyzerError):
            run([source], EnhancerConfig(analyzers=["nope"]), tmp_path, _prompter())
        assert source.read_text() == "def f():\n    return 1\n"

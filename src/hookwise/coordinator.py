"""Run coordinator: files -> analyzers -> reports -> decisions -> summary.

Files are analyzed on a thread pool (they share no state); every decision
is taken on the calling thread, in the order analyses complete. A failure
in one file never stops the others. Quitting or cancelling kills running
analyzers and marks every file not yet decided as skipped.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from .analyzers import Analyzer, resolve_analyzers
from .config import EnhancerConfig
from .decisions import ConsolePrompter, DecisionController, Prompter
from .logging_config import get_logger
from .models import (
    Action,
    AnalyzerResult,
    AnalyzerStatus,
    CandidateFile,
    FileOutcome,
    FileReport,
    FileStatus,
    Outcome,
    RunSummary,
)
from .patching import PatchEngine
from .preferences import PreferenceStore

logger = get_logger(__name__)

TOO_LARGE = "too large"

_MODE_BANNERS = {
    "interactive": "Found {n} file(s) that could be enhanced",
    "auto": "Auto-applying enhancements to {n} file(s)",
    "preview": "Preview mode - showing potential changes for {n} file(s)",
}


def _resolve(root_dir: Path, value: str) -> Path:
    path = Path(value).expanduser()
    return path if path.is_absolute() else root_dir / path


class RunCoordinator:
    """Sequences one enhancement run over a batch of files."""

    def __init__(
        self,
        config: EnhancerConfig,
        analyzers: Sequence[Analyzer],
        controller: DecisionController,
        cancel: Optional[threading.Event] = None,
    ):
        self.config = config
        self.analyzers = list(analyzers)
        self.controller = controller
        self.cancel = cancel or threading.Event()
        self._stop_reason = "cancelled"

    def run(self, files: Sequence[Path]) -> RunSummary:
        started = time.monotonic()
        # Analyzers run with the project root as their working directory
        files = list(dict.fromkeys(Path(f).resolve() for f in files))

        mode = self.controller.resolve_mode()
        summary = RunSummary(mode=mode)
        logger.info("Run started: mode=%s, %d file(s), %d analyzer(s)", mode, len(files), len(self.analyzers))

        if mode == "skip":
            summary.outcomes = [
                FileOutcome(path=p, state=Outcome.SKIPPED, action=Action.SKIP, reason="mode=skip")
                for p in files
            ]
            self.controller.prompter.show("[dim]Skipping hook execution[/dim]")
        elif files:
            banner = _MODE_BANNERS.get(mode)
            if banner:
                self.controller.prompter.show(f"[cyan]{banner.format(n=len(files))}[/cyan]")
            summary.outcomes = self._process(files, mode)

        summary.elapsed = time.monotonic() - started
        logger.info(
            "Run finished: %d processed, %d applied, %d skipped, %d errored in %.2fs",
            summary.processed,
            summary.applied,
            summary.skipped,
            summary.errored,
            summary.elapsed,
        )
        return summary

    def _process(self, files: List[Path], mode: str) -> List[FileOutcome]:
        decided: Dict[Path, FileOutcome] = {}
        executor = ThreadPoolExecutor(max_workers=self.config.workers, thread_name_prefix="hookwise")
        futures: Dict[Future, Path] = {executor.submit(self._analyze, p): p for p in files}
        try:
            for position, future in enumerate(as_completed(futures), 1):
                if self.cancel.is_set():
                    break
                path = futures[future]
                try:
                    outcome = self._decide(future.result(), mode, position, len(files))
                except Exception as e:
                    logger.exception("Unexpected failure on %s", path)
                    outcome = FileOutcome(path=path, state=Outcome.ERROR, reason=f"unexpected error: {e}")
                decided[path] = outcome
                if self.controller.quit_requested:
                    self._stop("quit")
                    break
        except KeyboardInterrupt:
            logger.warning("Run interrupted, skipping remaining files")
            self._stop("cancelled")
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

        outcomes = []
        for path in files:
            if path in decided:
                outcomes.append(decided[path])
            else:
                outcomes.append(
                    FileOutcome(path=path, state=Outcome.SKIPPED, action=Action.SKIP, reason=self._stop_reason)
                )
        return outcomes

    def _stop(self, reason: str) -> None:
        self._stop_reason = reason
        self.cancel.set()

    def _analyze(self, path: Path) -> Union[FileReport, FileOutcome]:
        """Snapshot a file and run every analyzer on it, one after another."""
        try:
            size = path.stat().st_size
        except OSError as e:
            return FileOutcome(path=path, state=Outcome.ERROR, reason=f"cannot read: {e}")

        if size > self.config.max_file_size:
            logger.info("Skipping %s: %d bytes exceeds %d", path, size, self.config.max_file_size)
            return FileOutcome(path=path, state=Outcome.SKIPPED, action=Action.SKIP, reason=TOO_LARGE)

        try:
            candidate = CandidateFile.capture(path)
        except UnicodeDecodeError:
            return FileOutcome(path=path, state=Outcome.SKIPPED, action=Action.SKIP, reason="not UTF-8 text")
        except OSError as e:
            return FileOutcome(path=path, state=Outcome.ERROR, reason=f"cannot read: {e}")

        results: List[AnalyzerResult] = []
        for analyzer in self.analyzers:
            if self.cancel.is_set():
                results.append(
                    AnalyzerResult(analyzer.name, path, AnalyzerStatus.SKIPPED, message="cancelled")
                )
                continue
            try:
                result = analyzer.invoke(candidate, self.config.analyzer_timeout_seconds, self.cancel)
            except Exception as e:
                logger.exception("Analyzer %s crashed on %s", analyzer.name, path)
                result = AnalyzerResult(analyzer.name, path, AnalyzerStatus.ERROR, message=str(e))
            results.append(result)
        return FileReport(candidate=candidate, results=tuple(results))

    def _decide(self, item: Union[FileReport, FileOutcome], mode: str, position: int, total: int) -> FileOutcome:
        if isinstance(item, FileOutcome):
            return item

        report = item
        status = report.status
        if status == FileStatus.CLEAN:
            notes = "; ".join(report.diagnostics) or None
            return FileOutcome(path=report.path, state=Outcome.CLEAN, reason=notes, results=report.results)
        if status == FileStatus.ERROR:
            return FileOutcome(
                path=report.path,
                state=Outcome.ERROR,
                reason="; ".join(report.diagnostics),
                results=report.results,
            )
        return self.controller.decide(report, mode, position, total)


def run(
    files: Sequence[Path],
    config: EnhancerConfig,
    root_dir: Optional[Path] = None,
    prompter: Optional[Prompter] = None,
    analyzers: Optional[Sequence[Analyzer]] = None,
    cancel: Optional[threading.Event] = None,
) -> RunSummary:
    """Run the enhancement pipeline over ``files``.

    Raises:
        ConfigurationError: before any file is touched, e.g. for an unknown
            analyzer name
    """
    root_dir = Path(root_dir or Path.cwd())
    cancel = cancel or threading.Event()
    if analyzers is None:
        analyzers = resolve_analyzers(config, root_dir)

    # Overlap ties go to the analyzer that runs first
    order = {analyzer.name: i for i, analyzer in enumerate(analyzers)}

    def priority(name: str) -> int:
        return order.get(name, len(order))

    preferences = PreferenceStore(_resolve(root_dir, config.preferences_file))
    engine = PatchEngine(_resolve(root_dir, config.backup_dir), priority=priority)
    controller = DecisionController(
        config,
        engine,
        prompter or ConsolePrompter(cancel=cancel),
        preferences=preferences,
        cancel=cancel,
    )
    return RunCoordinator(config, analyzers, controller, cancel=cancel).run(files)

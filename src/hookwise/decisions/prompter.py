"""Bounded-wait operator prompts.

The decision controller never reads input itself. It sends a PromptRequest
and gets back a PromptResponse: either an answer, a timeout, or a
cancellation. Answers travel over a queue, so the same controller works
with a terminal reader thread, a test script, or any other front end that
can put strings on the queue.
"""

from __future__ import annotations

import queue
import sys
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import IO, Any, Iterable, Optional

from rich.console import Console

from ..logging_config import get_logger

logger = get_logger(__name__)

_POLL_SECONDS = 0.1
_EOF = object()


@dataclass(frozen=True)
class PromptRequest:
    question: str
    choices: str
    default: str
    timeout_seconds: float


@dataclass(frozen=True)
class PromptResponse:
    answer: str
    timed_out: bool = False
    cancelled: bool = False


class Prompter(ABC):
    """Front end the decision controller talks to."""

    console: Console

    @abstractmethod
    def ask(self, request: PromptRequest) -> PromptResponse:
        """Wait at most ``request.timeout_seconds`` for an answer."""
        ...

    def show(self, *renderables: Any) -> None:
        self.console.print(*renderables)


class QueuePrompter(Prompter):
    """Prompter whose answers arrive on a queue.

    ``feed(None)`` signals end of input; every later prompt resolves to
    its default immediately, as a timeout.
    """

    def __init__(
        self,
        answers: Optional[Iterable[Optional[str]]] = None,
        console: Optional[Console] = None,
        cancel: Optional[threading.Event] = None,
    ):
        self.console = console or Console()
        self.cancel = cancel
        self.answers: "queue.Queue[Any]" = queue.Queue()
        self._closed = False
        for answer in answers or ():
            self.feed(answer)

    def feed(self, answer: Optional[str]) -> None:
        self.answers.put(_EOF if answer is None else answer)

    def _start(self) -> None:
        """Hook for subclasses that produce answers lazily."""

    def ask(self, request: PromptRequest) -> PromptResponse:
        self.console.print(f"[yellow]{request.question}[/yellow]")
        self.console.print(
            f"[dim]Choices: \\[{request.choices}] "
            f"(default: {request.default}, timeout: {request.timeout_seconds:g}s)[/dim]"
        )
        self._start()

        deadline = time.monotonic() + request.timeout_seconds
        while not self._closed:
            if self.cancel is not None and self.cancel.is_set():
                return PromptResponse(request.default, cancelled=True)
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            try:
                item = self.answers.get(timeout=min(_POLL_SECONDS, remaining))
            except queue.Empty:
                continue
            if item is _EOF:
                self._closed = True
                break
            answer = str(item).strip() or request.default
            logger.debug("Prompt %r answered %r", request.question, answer)
            return PromptResponse(answer)

        self.console.print(f"[dim]Timeout reached, using default: {request.default}[/dim]")
        return PromptResponse(request.default, timed_out=True)


def open_terminal_input() -> IO[str]:
    """The controlling terminal when stdin is redirected (as in git hooks)."""
    if sys.stdin is not None and sys.stdin.isatty():
        return sys.stdin
    try:
        return open("/dev/tty", encoding="utf-8")
    except OSError:
        return sys.stdin


class ConsolePrompter(QueuePrompter):
    """Reads answers line by line from a terminal on a daemon thread."""

    def __init__(
        self,
        stream: Optional[IO[str]] = None,
        console: Optional[Console] = None,
        cancel: Optional[threading.Event] = None,
    ):
        super().__init__(console=console, cancel=cancel)
        self._stream = stream
        self._reader: Optional[threading.Thread] = None

    def _start(self) -> None:
        if self._reader is not None:
            return
        self._reader = threading.Thread(target=self._read_lines, name="hookwise-input", daemon=True)
        self._reader.start()

    def _read_lines(self) -> None:
        stream = self._stream or open_terminal_input()
        if stream is None:
            self.feed(None)
            return
        while True:
            try:
                line = stream.readline()
            except (OSError, ValueError):
                line = ""
            if not line:
                self.feed(None)
                return
            self.feed(line.rstrip("\n"))

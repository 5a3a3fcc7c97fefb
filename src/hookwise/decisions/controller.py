"""Decision controller: what happens to a file's suggestions.

Per file the controller moves from PRESENTING to one of APPLYING,
PREVIEWING, SKIPPING or QUITTING and ends in APPLIED, SKIPPED or ABORTED.
In interactive mode every prompt is a bounded wait; a timeout resolves to
the configured default action, which is ``skip`` unless explicitly set to
``apply``.
"""

from __future__ import annotations

import re
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from ..config import EnhancerConfig
from ..exceptions import BackupFailureError, PatchError, StaleSuggestionError
from ..logging_config import get_logger
from ..models import Action, FileOutcome, FileReport, Outcome, Suggestion
from ..patching import PatchEngine
from ..preferences import MODE_ALIASES, PreferenceStore
from .prompter import PromptRequest, Prompter, PromptResponse
from .render import diff_view, report_header, suggestion_table

logger = get_logger(__name__)

FILE_CHOICES = "a)pply/p)ick/v)iew/s)kip/q)uit"
AFTER_PREVIEW_CHOICES = "a)pply/p)ick/s)kip"
MODE_CHOICES = "i)nteractive/a)uto/p)review/s)kip"
RUN_MODES = ("interactive", "auto", "preview", "skip")


class DecisionState(str, Enum):
    PRESENTING = "presenting"
    APPLYING = "applying"
    PREVIEWING = "previewing"
    SKIPPING = "skipping"
    QUITTING = "quitting"
    APPLIED = "applied"
    SKIPPED = "skipped"
    ABORTED = "aborted"


TERMINAL_STATES = {DecisionState.APPLIED, DecisionState.SKIPPED, DecisionState.ABORTED}

_TRANSITIONS = {
    DecisionState.PRESENTING: {
        DecisionState.APPLYING,
        DecisionState.PREVIEWING,
        DecisionState.SKIPPING,
        DecisionState.QUITTING,
    },
    DecisionState.PREVIEWING: {DecisionState.APPLYING, DecisionState.SKIPPING, DecisionState.SKIPPED},
    DecisionState.APPLYING: {DecisionState.APPLIED, DecisionState.SKIPPED},
    DecisionState.SKIPPING: {DecisionState.SKIPPED},
    DecisionState.QUITTING: {DecisionState.ABORTED},
}


@dataclass
class _Machine:
    """Tracks one file's walk through the states."""

    state: DecisionState = DecisionState.PRESENTING
    history: List[DecisionState] = field(default_factory=lambda: [DecisionState.PRESENTING])

    def move(self, target: DecisionState) -> None:
        if target not in _TRANSITIONS.get(self.state, set()):
            raise RuntimeError(f"illegal decision transition {self.state.value} -> {target.value}")
        self.state = target
        self.history.append(target)


_STATE_OUTCOMES = {
    DecisionState.APPLIED: Outcome.APPLIED,
    DecisionState.SKIPPED: Outcome.SKIPPED,
    DecisionState.ABORTED: Outcome.ABORTED,
}


class DecisionController:
    """Resolves an action for each FileReport and carries it out."""

    def __init__(
        self,
        config: EnhancerConfig,
        engine: PatchEngine,
        prompter: Prompter,
        preferences: Optional[PreferenceStore] = None,
        cancel: Optional[threading.Event] = None,
    ):
        self.config = config
        self.engine = engine
        self.prompter = prompter
        self.preferences = preferences
        self.cancel = cancel
        self.quit_requested = False

    # ── Run-level mode ────────────────────────────────────────────

    def resolve_mode(self) -> str:
        """The mode for the whole run; prompts once when configured as ``ask``."""
        if self.config.mode != "ask":
            return self.config.mode

        response = self._ask("How would you like to proceed?", MODE_CHOICES, "i")
        mode = MODE_ALIASES.get(response.answer.lower(), response.answer.lower())
        if mode not in RUN_MODES:
            logger.warning("Unknown mode %r, using interactive", response.answer)
            mode = "interactive"
        if response.timed_out or response.cancelled:
            return mode

        remember = self._ask("Remember this choice for future commits?", "y/n", "n")
        if remember.answer.lower() in ("y", "yes") and not remember.timed_out:
            if self.preferences is not None:
                self.preferences.set("mode", mode)
        return mode

    # ── Per-file decisions ────────────────────────────────────────

    def decide(self, report: FileReport, mode: str, position: int = 1, total: int = 1) -> FileOutcome:
        """Drive one file to a terminal state and return its outcome."""
        started = time.monotonic()
        machine = _Machine()
        suggestions = report.suggestions

        if mode == "auto":
            outcome = self._apply(report, suggestions, Action.APPLY_ALL, machine)
        elif mode == "preview":
            machine.move(DecisionState.PREVIEWING)
            self._show_preview(report, suggestions)
            machine.move(DecisionState.SKIPPED)
            outcome = self._outcome(report, machine, Action.PREVIEW)
        elif mode == "skip":
            machine.move(DecisionState.SKIPPING)
            machine.move(DecisionState.SKIPPED)
            outcome = self._outcome(report, machine, Action.SKIP, reason="mode=skip")
        elif mode == "interactive":
            outcome = self._interactive(report, machine, position, total)
        else:
            raise ValueError(f"mode {mode!r} cannot be used per file")

        outcome.elapsed = time.monotonic() - started
        logger.info(
            "%s: %s (%s), applied %d/%d suggestion(s), decided in %.2fs%s",
            report.path,
            outcome.state.value,
            outcome.action.value,
            outcome.applied,
            outcome.total,
            outcome.elapsed,
            f" [{outcome.reason}]" if outcome.reason else "",
        )
        return outcome

    def _interactive(self, report: FileReport, machine: _Machine, position: int, total: int) -> FileOutcome:
        suggestions = report.suggestions
        self.prompter.show(report_header(report, position, total))
        self.prompter.show(suggestion_table(suggestions))
        for diagnostic in report.diagnostics:
            self.prompter.show(f"[dim]{diagnostic}[/dim]")

        response = self._ask("What would you like to do?", FILE_CHOICES, self._default_choice())
        choice = response.answer.lower()
        reason = self._reason(response)

        if response.cancelled:
            machine.move(DecisionState.SKIPPING)
            machine.move(DecisionState.SKIPPED)
            return self._outcome(report, machine, Action.SKIP, reason=reason)

        if choice in ("v", "view"):
            machine.move(DecisionState.PREVIEWING)
            self._show_preview(report, suggestions)
            response = self._ask("Apply changes?", AFTER_PREVIEW_CHOICES, self._default_choice())
            choice = response.answer.lower()
            reason = self._reason(response)
            if response.cancelled or choice not in ("a", "apply", "p", "pick"):
                machine.move(DecisionState.SKIPPED)
                return self._outcome(report, machine, Action.PREVIEW, reason=reason)

        if choice in ("a", "apply"):
            return self._apply(report, suggestions, Action.APPLY_ALL, machine, reason=reason)

        if choice in ("p", "pick"):
            selected, pick_reason = self._pick(suggestions)
            if selected:
                action = Action.APPLY_ALL if len(selected) == len(suggestions) else Action.APPLY_PARTIAL
                return self._apply(report, selected, action, machine, reason=pick_reason)
            machine.move(DecisionState.SKIPPING)
            machine.move(DecisionState.SKIPPED)
            return self._outcome(report, machine, Action.SKIP, reason=pick_reason or "nothing selected")

        if choice in ("q", "quit") and machine.state == DecisionState.PRESENTING:
            self.quit_requested = True
            machine.move(DecisionState.QUITTING)
            machine.move(DecisionState.ABORTED)
            return self._outcome(report, machine, Action.QUIT, reason="quit")

        if machine.state == DecisionState.PRESENTING:
            machine.move(DecisionState.SKIPPING)
        machine.move(DecisionState.SKIPPED)
        return self._outcome(report, machine, Action.SKIP, reason=reason)

    def _pick(self, suggestions: List[Suggestion]) -> Tuple[List[Suggestion], Optional[str]]:
        """Ask which suggestions to apply, by 1-based number or id."""
        response = self._ask(
            "Which suggestions? (numbers or ids, separated by commas)",
            f"1-{len(suggestions)}",
            "",
        )
        if response.timed_out or response.cancelled:
            reason = self._reason(response)
            if self.config.default_action == "apply" and not response.cancelled:
                return list(suggestions), reason
            return [], reason

        by_id = {s.id: s for s in suggestions}
        chosen: List[Suggestion] = []
        for token in filter(None, re.split(r"[,\s]+", response.answer)):
            if token.isdigit() and 1 <= int(token) <= len(suggestions):
                suggestion = suggestions[int(token) - 1]
            elif token in by_id:
                suggestion = by_id[token]
            else:
                self.prompter.show(f"[dim]Ignoring unknown selection: {token}[/dim]")
                continue
            if suggestion not in chosen:
                chosen.append(suggestion)
        return chosen, None

    # ── Actions ───────────────────────────────────────────────────

    def _apply(
        self,
        report: FileReport,
        selected: List[Suggestion],
        action: Action,
        machine: _Machine,
        reason: Optional[str] = None,
    ) -> FileOutcome:
        machine.move(DecisionState.APPLYING)
        candidate = report.candidate
        result = self.engine.apply(candidate.path, candidate.content, selected)

        if not result.changed:
            machine.move(DecisionState.SKIPPED)
            if result.already_applied and not result.dropped:
                note = "already applied"
            else:
                note = f"nothing applicable ({len(result.dropped)} dropped)"
            return self._outcome(
                report, machine, action, dropped=result.dropped, reason=_join(reason, note)
            )

        try:
            backup = self.engine.commit(candidate.path, result.content, expected_content=candidate.content)
        except StaleSuggestionError:
            return self._error(report, action, "file changed since analysis; not modified", result.dropped)
        except BackupFailureError as e:
            return self._error(report, action, f"backup failed, file not modified: {e}", result.dropped)
        except PatchError as e:
            return self._error(report, action, str(e), result.dropped, backup_path=e.backup_path)

        machine.move(DecisionState.APPLIED)
        outcome = self._outcome(
            report, machine, action, applied=len(result.applied), dropped=result.dropped, reason=reason
        )
        outcome.backup_path = backup.path if backup else None
        self.prompter.show(
            f"[green]Applied {len(result.applied)} suggestion(s) to {candidate.path}[/green]"
            + (f" [dim](backup: {backup.path})[/dim]" if backup else "")
        )
        return outcome

    def _show_preview(self, report: FileReport, suggestions: List[Suggestion]) -> None:
        candidate = report.candidate
        result = self.engine.apply(candidate.path, candidate.content, suggestions)
        self.prompter.show(f"[blue]Proposed changes for[/blue] [bold]{candidate.path}[/bold]")
        self.prompter.show(diff_view(str(candidate.path), candidate.content, result.content))
        for dropped in result.dropped:
            self.prompter.show(
                f"[dim]Would drop {dropped.suggestion.id} ({dropped.reason.value})[/dim]"
            )

    # ── Helpers ───────────────────────────────────────────────────

    def _default_choice(self) -> str:
        return "a" if self.config.default_action == "apply" else "s"

    def _ask(self, question: str, choices: str, default: str) -> PromptResponse:
        return self.prompter.ask(
            PromptRequest(
                question=question,
                choices=choices,
                default=default,
                timeout_seconds=self.config.timeout_seconds,
            )
        )

    @staticmethod
    def _reason(response: PromptResponse) -> Optional[str]:
        if response.cancelled:
            return "cancelled"
        if response.timed_out:
            return "timeout"
        return None

    @staticmethod
    def _outcome(
        report: FileReport,
        machine: _Machine,
        action: Action,
        applied: int = 0,
        dropped=None,
        reason: Optional[str] = None,
    ) -> FileOutcome:
        if machine.state not in TERMINAL_STATES:
            raise RuntimeError(f"decision ended in non-terminal state {machine.state.value}")
        return FileOutcome(
            path=report.path,
            state=_STATE_OUTCOMES[machine.state],
            action=action,
            applied=applied,
            total=len(report.suggestions),
            dropped=list(dropped or []),
            reason=reason,
            results=report.results,
        )

    @staticmethod
    def _error(report: FileReport, action: Action, message: str, dropped, backup_path=None) -> FileOutcome:
        logger.error("%s: %s", report.path, message)
        return FileOutcome(
            path=report.path,
            state=Outcome.ERROR,
            action=action,
            total=len(report.suggestions),
            dropped=list(dropped),
            backup_path=backup_path,
            reason=message,
            results=report.results,
        )


def _join(*parts: Optional[str]) -> Optional[str]:
    joined = ", ".join(p for p in parts if p)
    return joined or None

"""Decision control: prompts, previews and the per-file state machine."""

from .controller import DecisionController, DecisionState, TERMINAL_STATES
from .prompter import (
    ConsolePrompter,
    Prompter,
    PromptRequest,
    PromptResponse,
    QueuePrompter,
)

__all__ = [
    "DecisionController",
    "DecisionState",
    "TERMINAL_STATES",
    "Prompter",
    "QueuePrompter",
    "ConsolePrompter",
    "PromptRequest",
    "PromptResponse",
]

"""Interactive prompting for username, password and one-time code.

:class:`Prompter` is the seam between the token flow and the terminal: it
reads one line for a given :class:`~ghtoken.models.PromptKind` and returns
it. :class:`TerminalPrompter` is the real implementation, built on
:func:`typer.prompt` with masked input for passwords.

The "answer must be non-empty" rule lives in :func:`prompt_value`, not in
the prompter, so any prompter (including test doubles) gets the same
re-prompt behaviour.
"""

from __future__ import annotations

import sys
from abc import ABC, abstractmethod
from typing import Optional

import typer

from ghtoken.exceptions import PromptAborted
from ghtoken.models import PromptKind
from ghtoken.output import get_output


class Prompter(ABC):
    """Reads a single line of user input."""

    @abstractmethod
    def prompt_line(self, kind: PromptKind, message: str) -> str:
        """Show *message* and return the user's answer.

        Args:
            kind: What is being asked for. ``PromptKind.PASSWORD`` must not
                echo the input.
            message: Prompt text.

        Returns:
            The raw answer, possibly empty.

        Raises:
            PromptAborted: If the user cancels the prompt.
        """
        ...


class TerminalPrompter(Prompter):
    """Prompt on the controlling terminal via :func:`typer.prompt`.

    Prompts are written to stderr so stdout stays clean for the token.

    Args:
        require_tty: Refuse to prompt when stdin is not a TTY instead of
            blocking on a pipe.
    """

    def __init__(self, require_tty: bool = True) -> None:
        self._require_tty = require_tty

    def prompt_line(self, kind: PromptKind, message: str) -> str:
        if self._require_tty and not sys.stdin.isatty():
            raise PromptAborted(
                f"Cannot prompt for {kind.value}: stdin is not a TTY"
            )
        try:
            answer = typer.prompt(
                message,
                default="",
                show_default=False,
                hide_input=(kind == PromptKind.PASSWORD),
                err=True,
            )
        except (typer.Abort, EOFError, KeyboardInterrupt):
            raise PromptAborted(f"Prompt for {kind.value} cancelled") from None
        return str(answer)


def prompt_value(
    prompter: Prompter,
    kind: PromptKind,
    message: Optional[str] = None,
) -> str:
    """Prompt until a non-empty answer is given and return it.

    Args:
        prompter: Where to read input from.
        kind: What is being asked for.
        message: Override text. Defaults to the kind's name.

    Raises:
        PromptAborted: If the prompt is cancelled.
    """
    if not isinstance(message, str):
        message = kind.value
    while True:
        answer = prompter.prompt_line(kind, message)
        if answer:
            return answer
        get_output().warning(f"{kind.value} is required")


def prompt_username(prompter: Prompter, message: Optional[str] = None) -> str:
    return prompt_value(prompter, PromptKind.USERNAME, message)


def prompt_password(prompter: Prompter, message: Optional[str] = None) -> str:
    return prompt_value(prompter, PromptKind.PASSWORD, message)


def prompt_code(prompter: Prompter, message: Optional[str] = None) -> str:
    return prompt_value(prompter, PromptKind.CODE, message)

"""
Confirmation gate — the one place the operator is asked yes/no.

Every prompt in a run (gated actions, "continue anyway?" after a
recoverable failure) goes through ``ConfirmationGate.confirm`` with an
explicit default, so the policy is the same everywhere.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

import click

logger = logging.getLogger(__name__)

AFFIRMATIVE = frozenset({"y", "yes"})
NEGATIVE = frozenset({"n", "no"})


def _stdin_reader(text: str) -> str:
    """Show ``text`` and read one line from stdin.

    End of input reads as an empty answer, so a run with stdin closed
    or redirected takes every prompt's default. Ctrl-C still aborts.
    """
    click.echo(text, nl=False)
    line = click.get_text_stream("stdin").readline()
    if not line:
        click.echo()
        logger.info("No input for %r; using the default", text.strip())
    return line.rstrip("\r\n")


def parse_answer(raw: str, *, default: bool) -> bool:
    """Interpret one line of operator input.

    ``y``/``yes`` (any case) → True, ``n``/``no`` → False, anything
    else, empty included, → ``default``.
    """
    answer = raw.strip().lower()
    if answer in AFFIRMATIVE:
        return True
    if answer in NEGATIVE:
        return False
    return default


class ConfirmationGate:
    """Blocking yes/no prompt with a caller-chosen default.

    Args:
        reader: Callable that shows a prompt and returns one line.
            Defaults to reading a line from stdin.
        assume_yes: Answer every prompt with yes without reading input
            (``--yes`` on the CLI).
    """

    def __init__(
        self,
        reader: Callable[[str], str] | None = None,
        *,
        assume_yes: bool = False,
    ):
        self._reader = reader or _stdin_reader
        self._assume_yes = assume_yes

    @property
    def assume_yes(self) -> bool:
        return self._assume_yes

    def confirm(self, prompt: str, *, default: bool = False) -> bool:
        """Ask once; never re-prompts."""
        if self._assume_yes:
            logger.info("Auto-confirmed: %s", prompt)
            return True

        suffix = " [Y/n] " if default else " [y/N] "
        raw = self._reader(prompt.rstrip() + suffix)
        decision = parse_answer(raw or "", default=default)
        logger.debug("Prompt %r answered %r → %s", prompt, raw, decision)
        return decision

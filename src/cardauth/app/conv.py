"""Conversation with the person at the terminal, and PIN entry on top of it."""

from __future__ import annotations

import logging
import string

import click

from cardauth.core.assuan import unescape
from cardauth.core.errors import BadPinError, ConversationAborted

lg = logging.getLogger(__name__)

MIN_PIN_LENGTH = 6
PIN_TRIES = 3


class Conversation:
    """Prompts and messages through click."""

    def ask(self, prompt: str, secret: bool = False) -> str:
        try:
            return click.prompt(prompt, hide_input=secret, default="", show_default=False)
        except click.Abort:
            raise ConversationAborted("prompt aborted") from None

    def tell(self, message: str) -> None:
        click.echo(message, err=True)


class ConversationPinProvider:
    """PinProvider that asks the user through a Conversation."""

    def __init__(self, conv: Conversation, tries: int = PIN_TRIES) -> None:
        self._conv = conv
        self._tries = tries

    @staticmethod
    def prompt(info: str) -> str:
        """Turn the daemon's NEEDPIN info into a prompt."""
        if info.startswith("||"):
            info = info[2:]
        elif info.startswith("|"):
            raise BadPinError("PIN prompt flags are not supported")
        text = unescape(info.encode("utf-8")).decode("utf-8", errors="replace").strip()
        return text or "PIN"

    def get_pin(self, info: str) -> str:
        prompt = self.prompt(info)
        for _ in range(self._tries):
            pin = self._conv.ask(prompt, secret=True)
            if len(pin) >= MIN_PIN_LENGTH and all(c in string.digits for c in pin):
                return pin
            self._conv.tell(f"PIN must consist of at least {MIN_PIN_LENGTH} digits")
        raise BadPinError("no acceptable PIN entered")

    def pinpad_open(self, info: str) -> None:
        self._conv.tell("Please enter PIN on keypad")

    def pinpad_close(self) -> None:
        lg.debug("keypad entry finished")

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from cardauth.core.base.session import DaemonSession

lg = logging.getLogger(__name__)


@dataclass
class Message:
    """A request for one daemon operation, dispatched on its type."""


@dataclass
class Result:
    """Typed outcome of a daemon operation."""


def handles(message_cls: type[Message]) -> Callable:
    """Decorator that registers a method as handler for a message type."""

    def decorator(method: Callable) -> Callable:
        method._handles_message = message_cls
        return method

    return decorator


class Terminal:
    """Base terminal that speaks to one daemon through a DaemonSession.

    Callers send Message objects via send() and receive Result objects.
    Subclasses register handlers with the @handles decorator; send()
    dispatches on the message type.
    """

    _handlers: dict[type[Message], str]

    def __init_subclass__(cls, **kwargs: object) -> None:
        super().__init_subclass__(**kwargs)
        cls._handlers = {}
        for base in reversed(cls.__mro__):
            if hasattr(base, "_handlers"):
                cls._handlers.update(base._handlers)
        for name in vars(cls):
            method = getattr(cls, name)
            if callable(method) and hasattr(method, "_handles_message"):
                cls._handlers[method._handles_message] = name

    def __init__(self, session: DaemonSession) -> None:
        self._session = session

    @property
    def session(self) -> DaemonSession:
        return self._session

    def connect(self) -> None:
        """Connect to the daemon."""
        self._session.connect()

    def disconnect(self) -> None:
        """Reset and release the daemon."""
        self._session.disconnect()

    def send(self, message: Message) -> Result:
        """Dispatch a message to the registered handler."""
        handler_name = self._handlers.get(type(message))
        if handler_name is None:
            raise ValueError(f"unsupported message: {message}")
        return getattr(self, handler_name)(message)

    @property
    def supported_messages(self) -> list[type[Message]]:
        """Return the message types this terminal can handle."""
        return list(self._handlers.keys())

    def on_error(self, error: Exception) -> None:
        """Log an error raised while the terminal was in use."""
        lg.error("terminal error: %s", error)

    def __enter__(self) -> Terminal:
        self.connect()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.disconnect()

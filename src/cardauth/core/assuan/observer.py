from __future__ import annotations

import logging
from typing import Protocol

from cardauth.core.assuan.logging import GREEN, RED, RESET, TRACE

lg = logging.getLogger(__name__)


MAX_LOGGED = 120


def _color_line(raw: bytes) -> str:
    """Return ANSI color for a server line: green for OK, red for ERR."""
    if raw == b"OK" or raw.startswith(b"OK "):
        return GREEN
    if raw.startswith(b"ERR "):
        return RED
    return ""


class LineObserver(Protocol):
    """Receives every line a connection sends or receives."""

    def sent(self, raw: bytes, secret: bool = False) -> None: ...
    def received(self, raw: bytes) -> None: ...


class LoggingLineObserver:
    """LineObserver that logs Assuan traffic via Python logging."""

    def _log(self, prefix: str, raw: bytes) -> None:
        text = raw[:MAX_LOGGED].decode("ascii", errors="backslashreplace")
        if len(raw) > MAX_LOGGED:
            text += f"... ({len(raw)} bytes)"
        color = _color_line(raw)
        if color:
            lg.log(TRACE, "%s%s%s%s", prefix, color, text, RESET)
        else:
            lg.log(TRACE, "%s%s", prefix, text)

    def sent(self, raw: bytes, secret: bool = False) -> None:
        if secret and raw.startswith(b"D "):
            lg.log(TRACE, ">> D [hidden]")
            return
        self._log(">> ", raw)

    def received(self, raw: bytes) -> None:
        self._log("<< ", raw)

"""Custom log levels and logging setup for the daemon protocol stack."""

from __future__ import annotations

import logging
import sys

TRACE = 15  # raw protocol lines
PROTOCOL = 18  # one line per command with its outcome
logging.addLevelName(TRACE, "TRACE")
logging.addLevelName(PROTOCOL, "PROTOCOL")

FORMAT = "%(levelname)-8s %(name)s: %(message)s"

GREEN = "\033[32m"
RED = "\033[31m"
RESET = "\033[0m"

lg = logging.getLogger(__name__)


def _trace(self, message, *args, **kwargs):
    if self.isEnabledFor(TRACE):
        self._log(TRACE, message, args, **kwargs)


logging.Logger.trace = _trace


def configure(verbose: bool = False, log_file: str | None = None) -> None:
    """Install the root handler. '-' or None for *log_file* means stderr."""
    kwargs: dict[str, object] = {}
    if log_file and log_file != "-":
        kwargs["filename"] = log_file
    logging.basicConfig(
        level=TRACE if verbose else PROTOCOL,
        format=FORMAT,
        force=True,
        **kwargs,
    )


def inherited_fds() -> tuple[int, ...]:
    """File descriptors a spawned daemon may keep: stderr and log files."""
    fds: set[int] = set()
    streams = [sys.stderr]
    for handler in logging.getLogger().handlers:
        streams.append(getattr(handler, "stream", None))
    for stream in streams:
        if stream is None or not hasattr(stream, "fileno"):
            continue
        try:
            fds.add(stream.fileno())
        except (OSError, ValueError):
            lg.debug("stream %r has no usable file descriptor", stream)
    return tuple(sorted(fds))


def log_outcome(logger: logging.Logger, label: str, code: int | None = None) -> None:
    """Log the outcome of one command at PROTOCOL level: OK, or ERR with its code."""
    if code is None:
        logger.log(PROTOCOL, "%s %sOK%s", label, GREEN, RESET)
    else:
        logger.log(PROTOCOL, "%s %sERR %d%s", label, RED, code, RESET)

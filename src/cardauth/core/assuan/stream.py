from __future__ import annotations

import logging
import os
import socket
import subprocess
from typing import BinaryIO, Protocol

from cardauth.core.errors import TransportError

lg = logging.getLogger(__name__)

GRACE_PERIOD = 2.0


class Transport(Protocol):
    """A byte stream to a daemon: opened, read/written, closed."""

    reader: BinaryIO
    writer: BinaryIO

    def open(self) -> None: ...
    def close(self) -> None: ...


def parse_infostr(infostr: str) -> tuple[str, int, int]:
    """Split a '<socket>:<pid>:<protocol>' info string.

    Only protocol version 1 is accepted.
    """
    path, sep, rest = infostr.partition(":")
    pid_str, sep2, version_str = rest.partition(":")
    if not path or not sep or not sep2:
        raise TransportError(f"malformed daemon info string: {infostr!r}")
    try:
        pid = int(pid_str)
        version = int(version_str)
    except ValueError:
        raise TransportError(f"malformed daemon info string: {infostr!r}") from None
    if version != 1:
        raise TransportError(f"daemon protocol version {version} not supported")
    return path, pid, version


class PipeTransport:
    """Daemon spawned as a child in --server mode, talking over its stdio."""

    def __init__(
        self,
        program: str,
        options: str | None = None,
        keep_fds: tuple[int, ...] = (),
    ) -> None:
        self.program = program
        self.options = options
        self.keep_fds = keep_fds
        self._process: subprocess.Popen | None = None

    @property
    def argv(self) -> list[str]:
        argv = [os.path.basename(self.program), "--server"]
        if self.options:
            argv += ["--options", self.options]
        return argv

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    def open(self) -> None:
        keep = tuple(fd for fd in self.keep_fds if fd > 2)
        try:
            self._process = subprocess.Popen(
                self.argv,
                executable=self.program,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                close_fds=True,
                pass_fds=keep,
            )
        except OSError as exc:
            raise TransportError(f"failed to spawn {self.program}: {exc}") from exc
        self.reader = self._process.stdout
        self.writer = self._process.stdin
        lg.debug("spawned %s (pid %d)", self.program, self._process.pid)

    def close(self) -> None:
        """Close the pipes and reap the child, terminating it if it lingers."""
        process = self._process
        if process is None:
            return
        self._process = None
        for stream in (process.stdin, process.stdout):
            try:
                stream.close()
            except OSError as exc:
                lg.debug("closing pipe: %s", exc)
        try:
            process.wait(timeout=GRACE_PERIOD)
            return
        except subprocess.TimeoutExpired:
            lg.warning("%s (pid %d) did not exit, terminating", self.program, process.pid)
        process.terminate()
        try:
            process.wait(timeout=GRACE_PERIOD)
        except subprocess.TimeoutExpired:
            lg.warning("%s (pid %d) ignored SIGTERM, killing", self.program, process.pid)
            process.kill()
            process.wait()


class SocketTransport:
    """Already running daemon reached through a local stream socket."""

    def __init__(self, path: str) -> None:
        self.path = path
        self._sock: socket.socket | None = None

    @classmethod
    def from_infostr(cls, infostr: str) -> SocketTransport:
        path, _, _ = parse_infostr(infostr)
        return cls(path)

    def open(self) -> None:
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.connect(self.path)
        except OSError as exc:
            sock.close()
            raise TransportError(f"failed to connect to {self.path}: {exc}") from exc
        self._sock = sock
        self.reader = sock.makefile("rb")
        self.writer = sock.makefile("wb")
        lg.debug("connected to %s", self.path)

    def close(self) -> None:
        sock = self._sock
        if sock is None:
            return
        self._sock = None
        for stream in (self.writer, self.reader):
            try:
                stream.close()
            except OSError as exc:
                lg.debug("closing socket stream: %s", exc)
        sock.close()

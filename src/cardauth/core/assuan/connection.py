"""Client side of the Assuan line protocol.

A transaction writes one command line and then reads server lines until
the terminating OK or ERR. Data lines accumulate into the result (or go to
a data callback), status lines go to a status callback, and inquiries are
answered synchronously through an inquiry callback. When a callback fails
or a reply line is malformed the connection cancels and drains the rest of
the reply so the daemon is left ready for the next command.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import BinaryIO

from cardauth.core.assuan.escape import escape
from cardauth.core.assuan.observer import LineObserver, LoggingLineObserver
from cardauth.core.assuan.types import LINE_LENGTH, Line, LineType, parse_line
from cardauth.core.errors import (
    DaemonError,
    DataError,
    DataTooLargeError,
    ProtocolError,
    TransportError,
    UnknownInquiryError,
)

lg = logging.getLogger(__name__)

DataCallback = Callable[[bytes | None], None]
InquiryCallback = Callable[[str, str], bytes | None]
StatusCallback = Callable[[str, str], None]

# Inquiries whose answers must never reach the trace log.
_SECRET_INQUIRIES = frozenset({"NEEDPIN", "NEEDPASSPHRASE"})


class Connection:
    """Line-oriented Assuan client over a pair of binary streams."""

    def __init__(
        self,
        reader: BinaryIO,
        writer: BinaryIO,
        observer: LineObserver | None = None,
    ) -> None:
        self._reader = reader
        self._writer = writer
        self._observer = observer or LoggingLineObserver()

    # -- lines --

    def write_line(self, line: str | bytes, *, secret: bool = False) -> None:
        raw = line.encode("utf-8") if isinstance(line, str) else line
        if b"\n" in raw or b"\r" in raw:
            raise DataError("line must not contain a line break")
        if len(raw) > LINE_LENGTH:
            raise DataTooLargeError(f"line of {len(raw)} bytes exceeds {LINE_LENGTH}")
        self._observer.sent(raw, secret)
        try:
            self._writer.write(raw + b"\n")
            self._writer.flush()
        except (OSError, ValueError) as exc:
            raise TransportError(f"write to daemon failed: {exc}") from exc

    def read_line(self) -> Line:
        return parse_line(self._read_raw())

    def _read_raw(self) -> bytes:
        try:
            raw = self._reader.readline(LINE_LENGTH + 2)
        except (OSError, ValueError) as exc:
            raise TransportError(f"read from daemon failed: {exc}") from exc
        if not raw:
            raise TransportError("connection closed by daemon")
        if not raw.endswith(b"\n"):
            if len(raw) >= LINE_LENGTH + 2:
                self._skip_line()
                raise ProtocolError("line from daemon too long")
            raise TransportError("connection closed in the middle of a line")
        raw = raw[:-1]
        if raw.endswith(b"\r"):
            raw = raw[:-1]
        if len(raw) > LINE_LENGTH:
            raise ProtocolError("line from daemon too long")
        self._observer.received(raw)
        return raw

    def _skip_line(self) -> None:
        """Discard the remainder of an overlong line."""
        while True:
            try:
                chunk = self._reader.readline(LINE_LENGTH + 2)
            except (OSError, ValueError) as exc:
                raise TransportError(f"read from daemon failed: {exc}") from exc
            if not chunk:
                raise TransportError("connection closed in the middle of a line")
            if chunk.endswith(b"\n"):
                return

    def _reply_line(self) -> Line:
        """Read the next line of a reply, draining the rest if it is malformed."""
        raw = b""
        try:
            raw = self._read_raw()
            return parse_line(raw)
        except ProtocolError:
            # a malformed ERR line still terminates the reply
            if not _is_err(raw):
                self._drain()
            raise

    def send_data(self, data: bytes, *, secret: bool = False) -> None:
        """Send *data* as D lines, splitting so every line fits."""
        escaped = escape(data)
        room = LINE_LENGTH - 2
        start = 0
        while start < len(escaped):
            end = min(start + room, len(escaped))
            # never split a %XX sequence
            if end < len(escaped):
                if escaped[end - 1] == 0x25:
                    end -= 1
                elif escaped[end - 2] == 0x25:
                    end -= 2
            self.write_line(b"D " + escaped[start:end], secret=secret)
            start = end

    # -- transactions --

    def read_greeting(self) -> str:
        """Consume the OK line a server sends when a connection opens."""
        while True:
            line = self.read_line()
            if line.type is LineType.COMMENT:
                continue
            if line.type is LineType.OK:
                return line.text
            if line.type is LineType.ERR:
                raise DaemonError.from_line(line.code, line.text)
            raise ProtocolError(f"unexpected greeting: {line!r}")

    def transact(
        self,
        command: str,
        data_cb: DataCallback | None = None,
        inquiry_cb: InquiryCallback | None = None,
        status_cb: StatusCallback | None = None,
    ) -> bytes:
        """Run one command and return the accumulated data.

        When *data_cb* is given it receives each data chunk instead, and
        None at every END separating data blocks.
        """
        self.write_line(command)
        buf = bytearray()
        while True:
            line = self._reply_line()
            if line.type is LineType.OK:
                return bytes(buf)
            if line.type is LineType.ERR:
                raise DaemonError.from_line(line.code, line.text)
            try:
                match line.type:
                    case LineType.DATA:
                        if data_cb is not None:
                            data_cb(line.data)
                        else:
                            buf.extend(line.data)
                    case LineType.END:
                        if data_cb is not None:
                            data_cb(None)
                    case LineType.STATUS:
                        if status_cb is not None:
                            status_cb(line.keyword, line.text)
                    case LineType.INQUIRE:
                        self._answer(line, inquiry_cb)
            except TransportError:
                raise
            except Exception:
                if line.type is LineType.INQUIRE:
                    self.write_line("CAN")
                self._drain()
                raise

    def _answer(self, line: Line, inquiry_cb: InquiryCallback | None) -> None:
        if inquiry_cb is None:
            raise UnknownInquiryError(line.keyword)
        reply = inquiry_cb(line.keyword, line.text)
        if reply:
            self.send_data(reply, secret=line.keyword in _SECRET_INQUIRIES)
        self.write_line("END")

    def _drain(self) -> None:
        """Read and discard the rest of a reply up to its OK or ERR."""
        while True:
            raw = b""
            try:
                raw = self._read_raw()
                line = parse_line(raw)
            except ProtocolError as exc:
                if _is_err(raw):
                    return
                lg.debug("skipping malformed line: %s", exc)
                continue
            if line.type in (LineType.OK, LineType.ERR):
                lg.debug("drained reply ends with %r", line)
                return
            if line.type is LineType.INQUIRE:
                self.write_line("CAN")


def _is_err(raw: bytes) -> bool:
    return raw == b"ERR" or raw.startswith(b"ERR ")

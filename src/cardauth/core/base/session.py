from __future__ import annotations

import logging

from cardauth.core.assuan import Connection
from cardauth.core.assuan.connection import DataCallback, InquiryCallback, StatusCallback
from cardauth.core.assuan.stream import PipeTransport, SocketTransport, Transport
from cardauth.core.errors import CardAuthError, ProtocolError, TransportError

lg = logging.getLogger(__name__)


class DaemonSession:
    """Session with one Assuan daemon, reached through a transport.

    Protocol-specific vocabularies (SCD, DirMngr) live in standalone
    protocol classes that receive session.transact as a callable.
    Terminals construct the protocol objects they need. A session runs one
    transaction at a time; callbacks may not start another.
    """

    def __init__(self, transport: Transport) -> None:
        self._transport = transport
        self._connection: Connection | None = None
        self._busy = False

    @classmethod
    def spawn(
        cls,
        program: str,
        options: str | None = None,
        keep_fds: tuple[int, ...] = (),
    ) -> DaemonSession:
        """Session with a private daemon started in --server mode."""
        return cls(PipeTransport(program, options, keep_fds))

    @classmethod
    def socket(cls, path: str) -> DaemonSession:
        return cls(SocketTransport(path))

    @classmethod
    def from_infostr(cls, infostr: str) -> DaemonSession:
        """Session with a running daemon named by '<socket>:<pid>:1'."""
        return cls(SocketTransport.from_infostr(infostr))

    @property
    def connected(self) -> bool:
        return self._connection is not None

    def connect(self) -> None:
        """Open the transport, take the greeting and check the daemon answers."""
        self._transport.open()
        connection = Connection(self._transport.reader, self._transport.writer)
        try:
            connection.read_greeting()
            connection.transact("NOP")
        except CardAuthError:
            self._transport.close()
            raise
        self._connection = connection
        lg.info("connected")

    def disconnect(self) -> None:
        """Reset the daemon (best effort) and release the transport."""
        if self._connection is None:
            return
        try:
            self._connection.transact("RESTART")
        except CardAuthError as exc:
            lg.debug("RESTART on disconnect failed: %s", exc)
        finally:
            self._connection = None
            self._transport.close()

    def transact(
        self,
        command: str,
        data_cb: DataCallback | None = None,
        inquiry_cb: InquiryCallback | None = None,
        status_cb: StatusCallback | None = None,
    ) -> bytes:
        """Run one command on the daemon and return its data."""
        if self._connection is None:
            raise TransportError("not connected to a daemon")
        if self._busy:
            raise ProtocolError("a transaction is already in progress")
        self._busy = True
        try:
            return self._connection.transact(command, data_cb, inquiry_cb, status_cb)
        finally:
            self._busy = False

    def __enter__(self) -> DaemonSession:
        self.connect()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.disconnect()

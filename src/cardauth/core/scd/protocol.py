from __future__ import annotations

import logging
from collections.abc import Callable

from cardauth.core.assuan import LINE_LENGTH
from cardauth.core.assuan.connection import InquiryCallback, StatusCallback
from cardauth.core.assuan.logging import log_outcome
from cardauth.core.errors import DaemonError, DataTooLargeError

lg = logging.getLogger(__name__)

# "SETDATA " plus slack for the command framing
_SETDATA_OVERHEAD = 50


class SCD:
    """Card daemon (scdaemon) command vocabulary."""

    def __init__(self, transact: Callable[..., bytes]) -> None:
        self._transact = transact

    def _send(
        self,
        label: str,
        command: str,
        *,
        inquiry_cb: InquiryCallback | None = None,
        status_cb: StatusCallback | None = None,
    ) -> bytes:
        try:
            data = self._transact(command, inquiry_cb=inquiry_cb, status_cb=status_cb)
        except DaemonError as exc:
            log_outcome(lg, label, exc.code)
            raise
        log_outcome(lg, label)
        return data

    # -- commands --

    def send_serialno(self, status_cb: StatusCallback) -> bytes:
        """SERIALNO: reports the card serial number as a status line."""
        return self._send("SERIALNO", "SERIALNO", status_cb=status_cb)

    def send_learn(self, status_cb: StatusCallback) -> bytes:
        """LEARN --force: reports card attributes as status lines."""
        return self._send("LEARN", "LEARN --force", status_cb=status_cb)

    def send_setdata(self, data: bytes) -> bytes:
        """SETDATA: stage the data the next PKSIGN signs."""
        if len(data) * 2 + _SETDATA_OVERHEAD > LINE_LENGTH:
            raise DataTooLargeError(f"{len(data)} bytes do not fit a SETDATA line")
        return self._send(f"SETDATA len={len(data)}", f"SETDATA {data.hex().upper()}")

    def send_pksign(self, key_id: str, inquiry_cb: InquiryCallback) -> bytes:
        """PKSIGN: sign the staged data, PIN inquiries go to *inquiry_cb*."""
        return self._send(f"PKSIGN {key_id}", f"PKSIGN {key_id}", inquiry_cb=inquiry_cb)

    def send_readkey(self, key_id: str) -> bytes:
        """READKEY: public key of a card key as a canonical S-expression."""
        return self._send(f"READKEY {key_id}", f"READKEY {key_id}")

    def send_getinfo(self, what: str) -> bytes:
        return self._send(f"GETINFO {what}", f"GETINFO {what}")

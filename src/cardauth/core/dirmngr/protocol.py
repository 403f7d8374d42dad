from __future__ import annotations

import logging
from collections.abc import Callable

from cardauth.core.assuan.logging import log_outcome
from cardauth.core.assuan.connection import DataCallback, InquiryCallback, StatusCallback
from cardauth.core.errors import DaemonError

lg = logging.getLogger(__name__)

# ISVALID revocation modes
USE_CRL = 0
USE_OCSP = 1
USE_OCSP_DEFAULT_RESPONDER = 2


class DirMngr:
    """Directory manager (dirmngr) command vocabulary."""

    def __init__(self, transact: Callable[..., bytes]) -> None:
        self._transact = transact

    def _send(self, label: str, command: str, **callbacks) -> bytes:
        try:
            data = self._transact(command, **callbacks)
        except DaemonError as exc:
            log_outcome(lg, label, exc.code)
            raise
        log_outcome(lg, label)
        return data

    # -- commands --

    def send_lookup_url(self, url: str, data_cb: DataCallback) -> bytes:
        """LOOKUP --url: fetch certificates; blocks are separated by END."""
        return self._send(f"LOOKUP {url}", f"LOOKUP --url {url}", data_cb=data_cb)

    def send_validate(self, inquiry_cb: InquiryCallback) -> bytes:
        """VALIDATE: the certificate is handed over through TARGETCERT."""
        return self._send("VALIDATE", "VALIDATE", inquiry_cb=inquiry_cb)

    def send_isvalid(
        self,
        certid: str,
        mode: int,
        inquiry_cb: InquiryCallback,
        status_cb: StatusCallback,
    ) -> bytes:
        """ISVALID: revocation status through CRL or OCSP."""
        flags = "--only-ocsp --force-default-responder " if mode == USE_OCSP_DEFAULT_RESPONDER else ""
        return self._send(
            f"ISVALID {certid}",
            f"ISVALID {flags}{certid}",
            inquiry_cb=inquiry_cb,
            status_cb=status_cb,
        )

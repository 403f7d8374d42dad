from __future__ import annotations

import logging

from cardauth.core.base import DaemonSession, Terminal, handles
from cardauth.core.errors import InvalidValueError, ProtocolError
from cardauth.core.scd.cardinfo import CardInfo, hex_prefix
from cardauth.core.scd.messages import (
    GetInfoMessage,
    GetInfoResult,
    LearnMessage,
    LearnResult,
    ReadKeyMessage,
    ReadKeyResult,
    SerialNoMessage,
    SerialNoResult,
    SignMessage,
    SignResult,
)
from cardauth.core.scd.pin import PinInquiry
from cardauth.core.scd.protocol import SCD
from cardauth.core.sexp import parse_canonical

lg = logging.getLogger(__name__)


def _parse_serialno(text: str) -> str:
    """Validate a SERIALNO status value: an even run of hex digits."""
    serialno = hex_prefix(text)
    n = len(serialno)
    if not n or n % 2 or (n < len(text) and text[n] != " "):
        raise InvalidValueError(f"malformed serial number: {text!r}")
    return serialno


class CardTerminal(Terminal):
    """Terminal for the card daemon: card attributes, keys and signing."""

    def __init__(self, session: DaemonSession) -> None:
        super().__init__(session)
        self._scd = SCD(session.transact)

    @handles(SerialNoMessage)
    def _serialno(self, message: SerialNoMessage) -> SerialNoResult:
        found: list[str] = []

        def on_status(keyword: str, text: str) -> None:
            if keyword != "SERIALNO":
                return
            if found:
                raise ProtocolError("card daemon reported two serial numbers")
            found.append(_parse_serialno(text))

        self._scd.send_serialno(on_status)
        if not found:
            raise ProtocolError("card daemon reported no serial number")
        return SerialNoResult(serialno=found[0])

    @handles(LearnMessage)
    def _learn(self, message: LearnMessage) -> LearnResult:
        info = message.info if message.info is not None else CardInfo()
        info.release()
        self._scd.send_learn(info.update)
        return LearnResult(info=info)

    @handles(SignMessage)
    def _sign(self, message: SignMessage) -> SignResult:
        inquiry = PinInquiry(message.pin_provider)
        self._scd.send_setdata(message.data)
        try:
            signature = self._scd.send_pksign(message.key_id, inquiry)
        finally:
            inquiry.wipe()
        return SignResult(signature=signature)

    @handles(ReadKeyMessage)
    def _read_key(self, message: ReadKeyMessage) -> ReadKeyResult:
        data = self._scd.send_readkey(message.key_id)
        return ReadKeyResult(key=parse_canonical(data))

    @handles(GetInfoMessage)
    def _get_info(self, message: GetInfoMessage) -> GetInfoResult:
        data = self._scd.send_getinfo(message.what)
        return GetInfoResult(value=data.decode("utf-8", errors="replace"))

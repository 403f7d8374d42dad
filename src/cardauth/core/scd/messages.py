from __future__ import annotations

from dataclasses import dataclass

from cardauth.core.base import Message, Result
from cardauth.core.scd.cardinfo import CardInfo
from cardauth.core.scd.pin import PinProvider
from cardauth.core.sexp import SExp

DEFAULT_KEY_ID = "OPENPGP.3"


@dataclass
class LearnMessage(Message):
    """Collect card attributes (LEARN). *info* is cleared and refilled."""

    info: CardInfo | None = None


@dataclass
class LearnResult(Result):
    info: CardInfo


@dataclass
class SerialNoMessage(Message):
    """Query the serial number of the inserted card."""


@dataclass
class SerialNoResult(Result):
    serialno: str


@dataclass
class SignMessage(Message):
    """Sign *data* with a card key (SETDATA + PKSIGN)."""

    data: bytes
    pin_provider: PinProvider
    key_id: str = DEFAULT_KEY_ID


@dataclass
class SignResult(Result):
    signature: bytes


@dataclass
class ReadKeyMessage(Message):
    """Read the public part of a card key."""

    key_id: str = DEFAULT_KEY_ID


@dataclass
class ReadKeyResult(Result):
    key: SExp


@dataclass
class GetInfoMessage(Message):
    """Diagnostic GETINFO passthrough."""

    what: str


@dataclass
class GetInfoResult(Result):
    value: str

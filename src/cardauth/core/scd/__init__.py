from cardauth.core.scd.cardinfo import CardInfo
from cardauth.core.scd.messages import (
    DEFAULT_KEY_ID,
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
from cardauth.core.scd.pin import PinInquiry, PinProvider
from cardauth.core.scd.protocol import SCD
from cardauth.core.scd.terminal import CardTerminal
from cardauth.core.scd.wait import wait_for_card

__all__ = [
    "CardInfo",
    "CardTerminal",
    "DEFAULT_KEY_ID",
    "GetInfoMessage",
    "GetInfoResult",
    "LearnMessage",
    "LearnResult",
    "PinInquiry",
    "PinProvider",
    "ReadKeyMessage",
    "ReadKeyResult",
    "SCD",
    "SerialNoMessage",
    "SerialNoResult",
    "SignMessage",
    "SignResult",
    "wait_for_card",
]

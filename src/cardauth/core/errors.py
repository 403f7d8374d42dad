"""Exception hierarchy shared by the protocol, card and application layers.

Daemon error codes follow the gpg-error layout: the error source lives in
the top byte and the error code in the low 16 bits.
"""

from __future__ import annotations

GPG_ERR_CARD_NOT_PRESENT = 112
GPG_ERR_SOURCE_SHIFT = 24
GPG_ERR_CODE_MASK = 0xFFFF


class CardAuthError(Exception):
    """Base class for all errors raised by cardauth."""


# -- transport ---------------------------------------------------------------


class TransportError(CardAuthError):
    """Spawning, connecting or talking to a daemon failed at the I/O level."""


# -- protocol ----------------------------------------------------------------


class ProtocolError(CardAuthError):
    """The daemon violated the line grammar or the command vocabulary."""


class UnknownInquiryError(ProtocolError):
    """The daemon asked for something no handler knows how to answer."""

    def __init__(self, keyword: str) -> None:
        super().__init__(f"unknown inquiry: {keyword}")
        self.keyword = keyword


class IntegrityError(ProtocolError):
    """A daemon reply was internally inconsistent."""


class DaemonError(ProtocolError):
    """The daemon answered a command with an ERR line."""

    def __init__(self, code: int, description: str = "") -> None:
        message = f"daemon error {code & GPG_ERR_CODE_MASK}"
        super().__init__(f"{message}: {description}" if description else message)
        self.raw_code = code
        self.description = description

    @property
    def code(self) -> int:
        return self.raw_code & GPG_ERR_CODE_MASK

    @property
    def source(self) -> int:
        return (self.raw_code >> GPG_ERR_SOURCE_SHIFT) & 0x7F

    @staticmethod
    def from_line(code: int, description: str = "") -> DaemonError:
        """Build the most specific error for an ERR line."""
        if code & GPG_ERR_CODE_MASK == GPG_ERR_CARD_NOT_PRESENT:
            return CardNotPresentError(code, description)
        return DaemonError(code, description)


# -- card absence ------------------------------------------------------------


class CardNotPresentError(DaemonError):
    """No card is inserted. Drives the card-presence loop."""

    def __init__(self, code: int = GPG_ERR_CARD_NOT_PRESENT, description: str = "card not present") -> None:
        super().__init__(code, description)


# -- data --------------------------------------------------------------------


class DataError(CardAuthError):
    """Malformed or oversized data."""


class InvalidValueError(DataError):
    """A value failed to parse: hex, fingerprint or S-expression."""


class DataTooLargeError(DataError):
    """A payload does not fit the protocol line length."""


class CertificateNotFoundError(DataError):
    """A lookup returned no usable certificate."""


# -- cryptographic -----------------------------------------------------------


class CryptoError(CardAuthError):
    """Base class for key and signature failures."""


class BadSignatureError(CryptoError):
    """The card's signature does not verify against the expected key."""


class PublicKeyError(CryptoError):
    """A public key could not be loaded or is of an unsupported type."""


# -- configuration -----------------------------------------------------------


class ConfigurationError(CardAuthError):
    """Configuration file, key file or users database problem."""


class NoAccountError(ConfigurationError):
    """No account is associated with a card (or no card with an account)."""


class AmbiguousAccountError(ConfigurationError):
    """A card serial number maps to more than one account."""

    def __init__(self, serialno: str, accounts: list[str]) -> None:
        super().__init__(f"serial number {serialno} maps to {len(accounts)} accounts")
        self.serialno = serialno
        self.accounts = accounts


# -- user --------------------------------------------------------------------


class BadPinError(CardAuthError):
    """No acceptable PIN could be obtained for the card."""


class AuthenticationFailed(CardAuthError):
    """Opaque failure reported to the host; details are in the log."""

    def __init__(self) -> None:
        super().__init__("authentication failed")


class ConversationAborted(CardAuthError):
    """The user closed the prompt instead of answering."""

from __future__ import annotations

from dataclasses import dataclass

from cryptography import x509

from cardauth.core.base import Message, Result
from cardauth.core.dirmngr.protocol import USE_OCSP


@dataclass
class LookupMessage(Message):
    """Fetch a certificate by URL; the first one returned wins."""

    url: str


@dataclass
class LookupResult(Result):
    certificate: x509.Certificate


@dataclass
class ValidateMessage(Message):
    """Have the directory manager validate a certificate chain."""

    certificate: x509.Certificate


@dataclass
class ValidateResult(Result):
    valid: bool


@dataclass
class IsValidMessage(Message):
    """Check the revocation status of a certificate."""

    certificate: x509.Certificate
    mode: int = USE_OCSP


@dataclass
class IsValidResult(Result):
    valid: bool
    depends_on: bytes | None = None

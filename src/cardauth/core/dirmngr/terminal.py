from __future__ import annotations

import hashlib
import logging

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.serialization import Encoding

from cardauth.core.base import DaemonSession, Terminal, handles
from cardauth.core.dirmngr.der import iter_objects
from cardauth.core.dirmngr.messages import (
    IsValidMessage,
    IsValidResult,
    LookupMessage,
    LookupResult,
    ValidateMessage,
    ValidateResult,
)
from cardauth.core.dirmngr.protocol import USE_CRL, DirMngr
from cardauth.core.errors import (
    CertificateNotFoundError,
    IntegrityError,
    InvalidValueError,
    UnknownInquiryError,
)
from cardauth.core.scd.cardinfo import parse_fingerprint

lg = logging.getLogger(__name__)

_EMPTY_ANSWER_INQUIRIES = frozenset({"SENDCERT", "SENDCERT_SKI", "SENDISSUERCERT"})


def fingerprint(certificate: x509.Certificate) -> str:
    """SHA-1 fingerprint of the certificate, upper-case hex."""
    return certificate.fingerprint(hashes.SHA1()).hex().upper()


def certid(certificate: x509.Certificate) -> str:
    """'<sha1 of issuer DN>.<serial>' identifier used for CRL checks."""
    try:
        issuer = certificate.issuer.rfc4514_string().encode("utf-8")
        serial = certificate.serial_number
        serial_bytes = serial.to_bytes(serial.bit_length() // 8 + 1, "big")
    except (OverflowError, ValueError) as exc:
        raise InvalidValueError(f"malformed certificate: {exc}") from exc
    return f"{hashlib.sha1(issuer).hexdigest().upper()}.{serial_bytes.hex().upper()}"


def _first_certificate(blocks: list[bytes]) -> x509.Certificate | None:
    for block in blocks:
        try:
            for blob in iter_objects(block):
                try:
                    return x509.load_der_x509_certificate(blob)
                except ValueError as exc:
                    lg.warning("skipping unparsable certificate: %s", exc)
        except InvalidValueError as exc:
            lg.warning("skipping malformed lookup data: %s", exc)
    return None


class DirmngrTerminal(Terminal):
    """Terminal for the directory manager: certificate lookup and checks."""

    def __init__(self, session: DaemonSession) -> None:
        super().__init__(session)
        self._dm = DirMngr(session.transact)

    @handles(LookupMessage)
    def _lookup(self, message: LookupMessage) -> LookupResult:
        blocks: list[bytes] = []
        current = bytearray()

        def on_data(chunk: bytes | None) -> None:
            if chunk is None:
                blocks.append(bytes(current))
                current.clear()
            else:
                current.extend(chunk)

        self._dm.send_lookup_url(message.url, on_data)
        if current:
            blocks.append(bytes(current))
        certificate = _first_certificate(blocks)
        if certificate is None:
            raise CertificateNotFoundError(f"no certificate found at {message.url}")
        lg.debug("found certificate %s at %s", fingerprint(certificate), message.url)
        return LookupResult(certificate=certificate)

    @handles(ValidateMessage)
    def _validate(self, message: ValidateMessage) -> ValidateResult:
        der = message.certificate.public_bytes(Encoding.DER)

        def on_inquiry(keyword: str, args: str) -> bytes | None:
            if keyword == "TARGETCERT":
                return der
            if keyword in _EMPTY_ANSWER_INQUIRIES:
                return None
            raise UnknownInquiryError(keyword)

        self._dm.send_validate(on_inquiry)
        return ValidateResult(valid=True)

    @handles(IsValidMessage)
    def _isvalid(self, message: IsValidMessage) -> IsValidResult:
        cert = message.certificate
        der = cert.public_bytes(Encoding.DER)
        ident = certid(cert) if message.mode == USE_CRL else fingerprint(cert)
        depends_on: list[bytes] = []

        def on_inquiry(keyword: str, args: str) -> bytes | None:
            if keyword == "SENDCERT":
                return None if args.strip() else der
            if keyword in _EMPTY_ANSWER_INQUIRIES:
                return None
            raise UnknownInquiryError(keyword)

        def on_status(keyword: str, text: str) -> None:
            if keyword != "ONLY_VALID_IF_CERT_VALID":
                return
            fpr = parse_fingerprint(text.strip().split(" ", 1)[0])
            if fpr is None:
                raise IntegrityError(f"malformed fingerprint in {keyword}")
            if depends_on:
                raise IntegrityError(f"{keyword} reported twice")
            depends_on.append(fpr)

        self._dm.send_isvalid(ident, message.mode, on_inquiry, on_status)
        if depends_on:
            lg.info(
                "validity of %s depends on certificate %s",
                fingerprint(cert), depends_on[0].hex().upper(),
            )
            return IsValidResult(valid=False, depends_on=depends_on[0])
        return IsValidResult(valid=True)

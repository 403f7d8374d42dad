"""X.509 authentication: the card points at a certificate naming the account.

The certificate is fetched from the card's public key URL, validated by
the directory manager, and its e-mail address within the configured
domain yields the account name. The card then has to prove possession of
the certificate's key.
"""

from __future__ import annotations

import logging

from cryptography import x509
from cryptography.x509.oid import NameOID

from cardauth.app.context import LoginContext, dirmngr_session
from cardauth.core.auth import Authenticator, digest_algorithm
from cardauth.core.dirmngr import DirmngrTerminal, LookupMessage
from cardauth.core.errors import (
    CertificateNotFoundError,
    ConfigurationError,
    InvalidValueError,
    NoAccountError,
)

lg = logging.getLogger(__name__)


def load_certificate_file(path: str) -> x509.Certificate:
    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as exc:
        raise CertificateNotFoundError(f"cannot read certificate {path}: {exc}") from exc
    try:
        return x509.load_der_x509_certificate(data)
    except ValueError as exc:
        raise InvalidValueError(f"{path} is not a DER certificate: {exc}") from exc


def lookup_certificate(url: str, dirmngr: DirmngrTerminal) -> x509.Certificate:
    """Fetch the certificate a card's public key URL points at."""
    if url.startswith("ldap://"):
        return dirmngr.send(LookupMessage(url=url)).certificate
    if url.startswith("file://"):
        return load_certificate_file(url[len("file://"):])
    raise InvalidValueError(f"unsupported public key URL: {url}")


def email_addresses(certificate: x509.Certificate) -> list[str]:
    """E-mail addresses from the subject and the subjectAltName extension."""
    try:
        addresses = [
            str(attr.value)
            for attr in certificate.subject.get_attributes_for_oid(NameOID.EMAIL_ADDRESS)
        ]
        san = certificate.extensions.get_extension_for_class(x509.SubjectAlternativeName)
    except x509.ExtensionNotFound:
        return addresses
    except ValueError as exc:
        raise InvalidValueError(f"malformed certificate: {exc}") from exc
    addresses += san.value.get_values_for_type(x509.RFC822Name)
    return addresses


def username_from_certificate(certificate: x509.Certificate, domain: str) -> str:
    """Local part of the first address within *domain*."""
    for address in email_addresses(certificate):
        local, _, addr_domain = address.rpartition("@")
        if local and addr_domain.lower() == domain.lower():
            return local
    raise NoAccountError(f"certificate has no e-mail address in domain {domain}")


def authenticate(ctx: LoginContext, username: str | None) -> str:
    domain = ctx.config.x509_domain
    if not domain:
        raise ConfigurationError("x509-domain is not configured")
    url = ctx.info.pubkey_url
    if not url:
        raise InvalidValueError("card carries no public key URL")

    with DirmngrTerminal(dirmngr_session(ctx.config)) as dirmngr:
        certificate = lookup_certificate(url, dirmngr)
        account = username_from_certificate(certificate, domain)
        if username is not None and username != account:
            raise NoAccountError(f"certificate belongs to {account}, not {username}")
        ctx.conv.tell(f"Trying authentication as user `{account}'...")

        authenticator = Authenticator(
            ctx.card,
            ctx.pin_provider,
            key_id=ctx.config.key_id,
            digest=digest_algorithm(ctx.config.digest),
            dirmngr=dirmngr,
        )
        result = authenticator.authenticate(certificate)
    if not result.authenticated:
        raise result.exception
    return account

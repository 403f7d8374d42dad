from __future__ import annotations

import datetime
import os
import sys
from pathlib import Path

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

sys.path.insert(0, os.path.dirname(__file__))

from fakes import FakeCard, FakeDaemon  # noqa: E402

from cardauth.core.base import DaemonSession  # noqa: E402
from cardauth.core.scd import CardTerminal  # noqa: E402


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def other_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def make_certificate(key: rsa.RSAPrivateKey, email: str, *, san: str | None = None) -> x509.Certificate:
    name = x509.Name([
        x509.NameAttribute(NameOID.COMMON_NAME, "Test User"),
        x509.NameAttribute(NameOID.EMAIL_ADDRESS, email),
    ])
    now = datetime.datetime.now(datetime.timezone.utc)
    builder = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(0x1234ABCD)
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=30))
    )
    if san is not None:
        builder = builder.add_extension(
            x509.SubjectAlternativeName([x509.RFC822Name(san)]), critical=False
        )
    return builder.sign(key, hashes.SHA256())


@pytest.fixture(scope="session")
def certificate(rsa_key) -> x509.Certificate:
    return make_certificate(rsa_key, "jane@example.org")


@pytest.fixture
def daemon() -> FakeDaemon:
    return FakeDaemon()


@pytest.fixture
def session(daemon) -> DaemonSession:
    s = DaemonSession(daemon)
    s.connect()
    return s


@pytest.fixture
def fake_card(rsa_key) -> FakeCard:
    return FakeCard(rsa_key)


@pytest.fixture
def card(fake_card) -> CardTerminal:
    terminal = CardTerminal(DaemonSession(fake_card.daemon))
    terminal.connect()
    return terminal


@pytest.fixture
def tmp_config(tmp_path: Path) -> Path:
    """Config file pointing the key directory and users db into tmp_path."""
    keys = tmp_path / "keys"
    keys.mkdir()
    path = tmp_path / "cardauth.conf"
    path.write_text(
        f"# test configuration\n"
        f"key-directory {keys}\n"
        f"users-db {tmp_path / 'users'}\n"
        f"wait-timeout 5\n"
    )
    return path

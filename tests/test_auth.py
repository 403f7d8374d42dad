import hashlib

import pytest
from conftest import make_certificate
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat
from fakes import FakeCard, FakeDaemon, Inquire, StaticPinProvider, raw_sign

from cardauth.core.auth import (
    AuthState,
    Authenticator,
    digest_algorithm,
    digest_info,
    generate_challenge,
    load_public_key,
    public_key_from_certificate,
    public_key_from_sexp,
    sexp_from_public_key,
    verify_challenge,
)
from cardauth.core.base import DaemonSession
from cardauth.core.dirmngr import DirmngrTerminal
from cardauth.core.errors import (
    BadPinError,
    BadSignatureError,
    ConfigurationError,
    DaemonError,
    InvalidValueError,
    PublicKeyError,
)
from cardauth.core.scd import CardTerminal, ReadKeyMessage
from cardauth.core.sexp import parse, parse_canonical


def validating_dirmngr() -> tuple[FakeDaemon, DirmngrTerminal]:
    """A directory manager that accepts every certificate."""

    def validate(args):
        yield Inquire("TARGETCERT")
        yield "OK"

    daemon = FakeDaemon({"VALIDATE": validate})
    dirmngr = DirmngrTerminal(DaemonSession(daemon))
    dirmngr.connect()
    return daemon, dirmngr


class TestChallenge:
    """Challenges, DigestInfo encoding and verification."""

    def test_challenge_size_follows_digest(self):
        assert len(generate_challenge()) == 20
        assert len(generate_challenge(hashes.SHA256())) == 32

    def test_challenges_differ(self):
        assert generate_challenge() != generate_challenge()

    def test_digest_info_prefix(self):
        value = hashlib.sha1(b"x").digest()
        assert digest_info(hashes.SHA1(), value).hex().startswith("3021300906052b0e03021a05000414")
        value = hashlib.sha256(b"x").digest()
        encoded = digest_info(hashes.SHA256(), value)
        assert encoded[:19].hex() == "3031300d060960864801650304020105000420"
        assert encoded[19:] == value

    def test_digest_info_wrong_length(self):
        with pytest.raises(InvalidValueError):
            digest_info(hashes.SHA1(), b"short")

    def test_digest_algorithm(self):
        assert isinstance(digest_algorithm("SHA256"), hashes.SHA256)
        with pytest.raises(ConfigurationError):
            digest_algorithm("md5")

    @pytest.mark.parametrize("algorithm", [hashes.SHA1(), hashes.SHA256()])
    def test_verify_card_signature(self, rsa_key, algorithm):
        challenge = generate_challenge(algorithm)
        signature = raw_sign(rsa_key, digest_info(algorithm, challenge))
        verify_challenge(rsa_key.public_key(), challenge, signature, algorithm)

    def test_wrong_key(self, rsa_key, other_key):
        challenge = generate_challenge()
        signature = raw_sign(rsa_key, digest_info(hashes.SHA1(), challenge))
        with pytest.raises(BadSignatureError):
            verify_challenge(other_key.public_key(), challenge, signature)

    def test_other_challenge(self, rsa_key):
        signature = raw_sign(rsa_key, digest_info(hashes.SHA1(), generate_challenge()))
        with pytest.raises(BadSignatureError):
            verify_challenge(rsa_key.public_key(), generate_challenge(), signature)


class TestKeys:
    """Public keys from S-expressions, PEM and certificates."""

    def test_sexp_round_trip(self, rsa_key):
        public = rsa_key.public_key()
        expr = sexp_from_public_key(public)
        assert public_key_from_sexp(expr).public_numbers() == public.public_numbers()
        assert expr.find(b"rsa").find(b"n").atom()[0] == 0

    def test_load_advanced_sexp(self, rsa_key):
        public = rsa_key.public_key()
        text = sexp_from_public_key(public).format().encode()
        assert load_public_key(text).public_numbers() == public.public_numbers()

    def test_load_pem(self, rsa_key):
        pem = rsa_key.public_key().public_bytes(Encoding.PEM, PublicFormat.SubjectPublicKeyInfo)
        assert load_public_key(pem).public_numbers() == rsa_key.public_key().public_numbers()

    def test_non_rsa_pem(self):
        key = ec.generate_private_key(ec.SECP256R1()).public_key()
        pem = key.public_bytes(Encoding.PEM, PublicFormat.SubjectPublicKeyInfo)
        with pytest.raises(PublicKeyError, match="unsupported"):
            load_public_key(pem)

    @pytest.mark.parametrize("data", [
        b"-----BEGIN PUBLIC KEY-----\ngarbage\n-----END PUBLIC KEY-----\n",
        b"not a key",
        b"(public-key (ecc (q #04#)))",
        b"(public-key (rsa (n #00C1#)))",
    ])
    def test_invalid(self, data):
        with pytest.raises(PublicKeyError):
            load_public_key(data)

    def test_nested_key_is_found(self, rsa_key):
        inner = sexp_from_public_key(rsa_key.public_key())
        wrapped = parse(b"(shadowed-private-key " + inner.to_canonical() + b")")
        assert public_key_from_sexp(wrapped).public_numbers() == rsa_key.public_key().public_numbers()

    def test_from_certificate(self, certificate, rsa_key):
        key = public_key_from_certificate(certificate)
        assert key.public_numbers() == rsa_key.public_key().public_numbers()

    def test_unreadable_certificate_key(self):
        class Unreadable:
            def public_key(self):
                raise ValueError("bad key encoding")

        with pytest.raises(PublicKeyError, match="cannot read certificate key"):
            public_key_from_certificate(Unreadable())

    def test_card_readkey_output(self, card, rsa_key):
        key = public_key_from_sexp(card.send(ReadKeyMessage()).key)
        assert key.public_numbers() == rsa_key.public_key().public_numbers()
        assert parse_canonical(sexp_from_public_key(key).to_canonical()) == sexp_from_public_key(key)


class TestAuthenticator:
    """Challenge-response against the inserted card."""

    def test_success(self, card, rsa_key):
        provider = StaticPinProvider()
        auth = Authenticator(card, provider)
        result = auth.authenticate(rsa_key.public_key())
        assert result.authenticated
        assert result.state is AuthState.AUTHENTICATED
        assert auth.state is AuthState.AUTHENTICATED
        assert [c[0] for c in provider.calls] == ["get_pin"]

    def test_sha256(self, card, fake_card, rsa_key):
        auth = Authenticator(card, StaticPinProvider(), digest=hashes.SHA256())
        assert auth.authenticate(rsa_key.public_key()).authenticated
        assert len(fake_card.setdata[-1]) == 19 + 32

    def test_fresh_challenge_every_time(self, card, fake_card, rsa_key):
        auth = Authenticator(card, StaticPinProvider())
        auth.authenticate(rsa_key.public_key())
        auth.authenticate(rsa_key.public_key())
        first, second = fake_card.setdata
        assert first[:15] == second[:15]
        assert first != second

    def test_wrong_key_fails_while_verifying(self, card, other_key):
        result = Authenticator(card, StaticPinProvider()).authenticate(other_key.public_key())
        assert not result.authenticated
        assert result.state is AuthState.FAILED
        assert isinstance(result.exception, BadSignatureError)
        assert result.error

    def test_wrong_pin(self, card, rsa_key):
        auth = Authenticator(card, StaticPinProvider("999999"))
        result = auth.authenticate(rsa_key.public_key())
        assert not result.authenticated
        assert isinstance(result.exception, DaemonError)
        assert result.exception.code == 87

    def test_pin_refused(self, card, rsa_key):
        class Refusing(StaticPinProvider):
            def get_pin(self, info):
                raise BadPinError("no")

        result = Authenticator(card, Refusing()).authenticate(rsa_key.public_key())
        assert isinstance(result.exception, BadPinError)

    def test_key_id(self, card, fake_card, rsa_key):
        Authenticator(card, StaticPinProvider(), key_id="OPENPGP.1").authenticate(rsa_key.public_key())
        assert "PKSIGN OPENPGP.1" in fake_card.daemon.commands

    def test_certificate_needs_dirmngr(self, card, fake_card, certificate):
        result = Authenticator(card, StaticPinProvider()).authenticate(certificate)
        assert not result.authenticated
        assert result.state is AuthState.FAILED
        assert isinstance(result.exception, ConfigurationError)
        assert fake_card.setdata == []

    def test_certificate_is_validated_first(self, card, certificate):
        daemon, dirmngr = validating_dirmngr()
        auth = Authenticator(card, StaticPinProvider(), dirmngr=dirmngr)
        assert auth.authenticate(certificate).authenticated
        assert daemon.commands[-1] == "VALIDATE"

    def test_invalid_certificate_is_not_challenged(self, rsa_key, certificate):
        fake = FakeCard(rsa_key)
        card = CardTerminal(DaemonSession(fake.daemon))
        card.connect()
        daemon = FakeDaemon({"VALIDATE": ["ERR 167772190 Certificate revoked"]})
        dirmngr = DirmngrTerminal(DaemonSession(daemon))
        dirmngr.connect()
        result = Authenticator(card, StaticPinProvider(), dirmngr=dirmngr).authenticate(certificate)
        assert not result.authenticated
        assert fake.setdata == []

    def test_certificate_for_other_key(self, card, other_key):
        cert = make_certificate(other_key, "john@example.org")
        _, dirmngr = validating_dirmngr()
        result = Authenticator(card, StaticPinProvider(), dirmngr=dirmngr).authenticate(cert)
        assert not result.authenticated
        assert isinstance(result.exception, BadSignatureError)

    def test_unsupported_key_type(self, card):
        result = Authenticator(card, StaticPinProvider()).authenticate("not a key")
        assert isinstance(result.exception, PublicKeyError)
        assert result.state is AuthState.FAILED

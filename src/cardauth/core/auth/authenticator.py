"""Challenge-response authentication of a card against a known public key.

The card proves possession of the private key by signing a fresh random
challenge, wrapped in a DigestInfo, with its authentication key. The
signature is verified locally. A certificate can stand in for the key; the
directory manager must then validate it before its key is used.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey

from cardauth.core.auth.challenge import digest_info, generate_challenge, verify_challenge
from cardauth.core.auth.keys import public_key_from_certificate
from cardauth.core.base import Result
from cardauth.core.dirmngr import DirmngrTerminal, ValidateMessage
from cardauth.core.errors import CardAuthError, ConfigurationError, PublicKeyError
from cardauth.core.scd import DEFAULT_KEY_ID, CardTerminal, PinProvider, SignMessage

lg = logging.getLogger(__name__)


class AuthState(Enum):
    IDLE = "idle"
    SIGNING = "signing"
    VERIFYING = "verifying"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


@dataclass
class AuthenticateResult(Result):
    authenticated: bool
    state: AuthState
    error: str | None = None
    exception: CardAuthError | None = None


class Authenticator:
    """Runs the challenge-response exchange with the inserted card."""

    def __init__(
        self,
        card: CardTerminal,
        pin_provider: PinProvider,
        *,
        key_id: str = DEFAULT_KEY_ID,
        digest: hashes.HashAlgorithm | None = None,
        dirmngr: DirmngrTerminal | None = None,
    ) -> None:
        self._card = card
        self._pin_provider = pin_provider
        self._key_id = key_id
        self._digest = digest or hashes.SHA1()
        self._dirmngr = dirmngr
        self.state = AuthState.IDLE

    def _trusted_key(self, key: RSAPublicKey | x509.Certificate) -> RSAPublicKey:
        if isinstance(key, x509.Certificate):
            if self._dirmngr is None:
                raise ConfigurationError("a certificate cannot be trusted without dirmngr")
            self._dirmngr.send(ValidateMessage(certificate=key))
            return public_key_from_certificate(key)
        if not isinstance(key, RSAPublicKey):
            raise PublicKeyError(f"unsupported key type: {type(key).__name__}")
        return key

    def authenticate(self, key: RSAPublicKey | x509.Certificate) -> AuthenticateResult:
        """Challenge the card. Every call draws a new challenge."""
        self.state = AuthState.IDLE
        try:
            public_key = self._trusted_key(key)
            challenge = generate_challenge(self._digest)
            self.state = AuthState.SIGNING
            result = self._card.send(
                SignMessage(
                    data=digest_info(self._digest, challenge),
                    pin_provider=self._pin_provider,
                    key_id=self._key_id,
                )
            )
            self.state = AuthState.VERIFYING
            verify_challenge(public_key, challenge, result.signature, self._digest)
        except CardAuthError as exc:
            lg.error("challenge-response failed while %s: %s", self.state.value, exc)
            self.state = AuthState.FAILED
            return AuthenticateResult(
                authenticated=False, state=self.state, error=str(exc), exception=exc
            )
        self.state = AuthState.AUTHENTICATED
        lg.info("challenge-response succeeded")
        return AuthenticateResult(authenticated=True, state=self.state)

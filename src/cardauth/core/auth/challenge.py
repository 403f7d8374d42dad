"""Challenge generation and PKCS#1 v1.5 signature verification."""

from __future__ import annotations

import os

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, utils
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey

from cardauth.core.errors import BadSignatureError, ConfigurationError, InvalidValueError

# DER prefix of DigestInfo ::= SEQUENCE { AlgorithmIdentifier, OCTET STRING }
_DIGEST_INFO_PREFIX: dict[str, bytes] = {
    "sha1": bytes.fromhex("3021300906052b0e03021a05000414"),
    "sha256": bytes.fromhex("3031300d060960864801650304020105000420"),
}

_ALGORITHMS: dict[str, type[hashes.HashAlgorithm]] = {
    "sha1": hashes.SHA1,
    "sha256": hashes.SHA256,
}


def digest_algorithm(name: str) -> hashes.HashAlgorithm:
    """Look up a supported digest by name ('sha1', 'sha256')."""
    try:
        return _ALGORITHMS[name.lower()]()
    except KeyError:
        raise ConfigurationError(f"unsupported digest algorithm: {name}") from None


def generate_challenge(algorithm: hashes.HashAlgorithm | None = None) -> bytes:
    """Fresh random challenge of the digest's size."""
    algorithm = algorithm or hashes.SHA1()
    return os.urandom(algorithm.digest_size)


def digest_info(algorithm: hashes.HashAlgorithm, value: bytes) -> bytes:
    """Wrap *value* in a DER DigestInfo for *algorithm*, as the card signs it."""
    if len(value) != algorithm.digest_size:
        raise InvalidValueError(
            f"{algorithm.name} value must be {algorithm.digest_size} bytes, got {len(value)}"
        )
    return _DIGEST_INFO_PREFIX[algorithm.name] + value


def verify_challenge(
    public_key: RSAPublicKey,
    challenge: bytes,
    signature: bytes,
    algorithm: hashes.HashAlgorithm | None = None,
) -> None:
    """Check the card's signature over *challenge*; raise BadSignatureError."""
    algorithm = algorithm or hashes.SHA1()
    try:
        public_key.verify(signature, challenge, padding.PKCS1v15(), utils.Prehashed(algorithm))
    except InvalidSignature as exc:
        raise BadSignatureError("signature does not match the challenge") from exc

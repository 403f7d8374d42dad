from __future__ import annotations

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import load_pem_public_key

from cardauth.core.errors import InvalidValueError, PublicKeyError
from cardauth.core.sexp import SExp, parse


def public_key_from_sexp(expr: SExp) -> rsa.RSAPublicKey:
    """Build an RSA key from ``(public-key (rsa (n ..) (e ..)))``."""
    node = expr.find_recursive(b"rsa")
    if node is None:
        raise PublicKeyError("S-expression does not hold an RSA key")
    n_node, e_node = node.find(b"n"), node.find(b"e")
    if n_node is None or e_node is None:
        raise PublicKeyError("RSA key lacks modulus or exponent")
    try:
        n = int.from_bytes(n_node.atom(), "big")
        e = int.from_bytes(e_node.atom(), "big")
        return rsa.RSAPublicNumbers(e, n).public_key()
    except (InvalidValueError, ValueError) as exc:
        raise PublicKeyError(f"invalid RSA key: {exc}") from exc


def sexp_from_public_key(key: rsa.RSAPublicKey) -> SExp:
    numbers = key.public_numbers()

    def mpi(value: int) -> bytes:
        # leading zero keeps the value unsigned
        return value.to_bytes(value.bit_length() // 8 + 1, "big")

    return SExp([
        b"public-key",
        SExp([b"rsa", SExp([b"n", mpi(numbers.n)]), SExp([b"e", mpi(numbers.e)])]),
    ])


def load_public_key(data: bytes) -> rsa.RSAPublicKey:
    """Load an RSA public key stored as PEM or as an S-expression."""
    if b"-----BEGIN" in data:
        try:
            key = load_pem_public_key(data)
        except (UnsupportedAlgorithm, ValueError) as exc:
            raise PublicKeyError(f"invalid PEM key: {exc}") from exc
        if not isinstance(key, rsa.RSAPublicKey):
            raise PublicKeyError(f"unsupported key type: {type(key).__name__}")
        return key
    try:
        expr = parse(data)
    except InvalidValueError as exc:
        raise PublicKeyError(f"invalid key S-expression: {exc}") from exc
    return public_key_from_sexp(expr)


def public_key_from_certificate(certificate: x509.Certificate) -> rsa.RSAPublicKey:
    try:
        key = certificate.public_key()
    except (UnsupportedAlgorithm, ValueError) as exc:
        raise PublicKeyError(f"cannot read certificate key: {exc}") from exc
    if not isinstance(key, rsa.RSAPublicKey):
        raise PublicKeyError(f"certificate key is not RSA: {type(key).__name__}")
    return key

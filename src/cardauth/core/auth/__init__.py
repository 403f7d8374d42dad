from cardauth.core.auth.authenticator import AuthenticateResult, Authenticator, AuthState
from cardauth.core.auth.challenge import (
    digest_algorithm,
    digest_info,
    generate_challenge,
    verify_challenge,
)
from cardauth.core.auth.keys import (
    load_public_key,
    public_key_from_certificate,
    public_key_from_sexp,
    sexp_from_public_key,
)

__all__ = [
    "AuthState",
    "AuthenticateResult",
    "Authenticator",
    "digest_algorithm",
    "digest_info",
    "generate_challenge",
    "load_public_key",
    "public_key_from_certificate",
    "public_key_from_sexp",
    "sexp_from_public_key",
    "verify_challenge",
]

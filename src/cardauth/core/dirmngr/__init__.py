from cardauth.core.dirmngr.messages import (
    IsValidMessage,
    IsValidResult,
    LookupMessage,
    LookupResult,
    ValidateMessage,
    ValidateResult,
)
from cardauth.core.dirmngr.protocol import (
    USE_CRL,
    USE_OCSP,
    USE_OCSP_DEFAULT_RESPONDER,
    DirMngr,
)
from cardauth.core.dirmngr.terminal import DirmngrTerminal, certid, fingerprint

__all__ = [
    "DirMngr",
    "DirmngrTerminal",
    "IsValidMessage",
    "IsValidResult",
    "LookupMessage",
    "LookupResult",
    "USE_CRL",
    "USE_OCSP",
    "USE_OCSP_DEFAULT_RESPONDER",
    "ValidateMessage",
    "ValidateResult",
    "certid",
    "fingerprint",
]

"""Directory of public key files, one per card serial number."""

from __future__ import annotations

import logging
import os
import string

from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey

from cardauth.core.auth import load_public_key
from cardauth.core.errors import ConfigurationError
from cardauth.core.sexp import SExp

lg = logging.getLogger(__name__)


class KeyStore:
    def __init__(self, directory: str) -> None:
        self.directory = directory

    def path(self, serialno: str) -> str:
        if not serialno or not all(c in string.hexdigits for c in serialno):
            raise ConfigurationError(f"invalid card serial number {serialno!r}")
        return os.path.join(self.directory, serialno)

    def read(self, serialno: str) -> bytes:
        path = self.path(serialno)
        try:
            with open(path, "rb") as f:
                return f.read()
        except FileNotFoundError:
            raise ConfigurationError(f"no key file for card {serialno}") from None
        except OSError as exc:
            raise ConfigurationError(f"cannot read key file {path}: {exc}") from exc

    def load(self, serialno: str) -> RSAPublicKey:
        return load_public_key(self.read(serialno))

    def store(self, serialno: str, key: SExp) -> str:
        """Write *key* for *serialno*, replacing any previous file."""
        path = self.path(serialno)
        try:
            with open(path, "w", encoding="ascii") as f:
                f.write(key.format() + "\n")
        except OSError as exc:
            raise ConfigurationError(f"cannot write key file {path}: {exc}") from exc
        lg.info("stored key for card %s in %s", serialno, path)
        return path

"""Flat-file database associating card serial numbers with accounts.

Each line holds a serial number and an account name separated by
whitespace. A serial number may appear with several accounts and an
account with several cards.
"""

from __future__ import annotations

import logging
import os

from cardauth.core.errors import AmbiguousAccountError, ConfigurationError, NoAccountError

lg = logging.getLogger(__name__)


class UsersDB:
    def __init__(self, path: str) -> None:
        self.path = path

    def entries(self) -> list[tuple[str, str]]:
        """Return (serialno, account) pairs in file order."""
        try:
            with open(self.path, encoding="utf-8") as f:
                lines = f.readlines()
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise ConfigurationError(f"cannot read users database {self.path}: {exc}") from exc
        entries = []
        for lineno, line in enumerate(lines, 1):
            fields = line.split("#", 1)[0].split()
            if not fields:
                continue
            if len(fields) != 2:
                lg.warning("%s:%d: expected serial number and account", self.path, lineno)
                continue
            entries.append((fields[0], fields[1]))
        return entries

    def lookup_by_serialno(self, serialno: str) -> str:
        accounts = list(dict.fromkeys(a for s, a in self.entries() if s == serialno))
        if not accounts:
            raise NoAccountError(f"no account for serial number {serialno}")
        if len(accounts) > 1:
            raise AmbiguousAccountError(serialno, accounts)
        return accounts[0]

    def lookup_by_username(self, account: str) -> str:
        serials = list(dict.fromkeys(s for s, a in self.entries() if a == account))
        if not serials:
            raise NoAccountError(f"no card for account {account}")
        if len(serials) > 1:
            raise ConfigurationError(f"account {account} has {len(serials)} cards")
        return serials[0]

    def check(self, serialno: str, account: str) -> bool:
        return (serialno, account) in self.entries()

    def add(self, serialno: str, account: str) -> bool:
        """Add a pair; returns False when it was already present."""
        entries = self.entries()
        if (serialno, account) in entries:
            return False
        entries.append((serialno, account))
        self._write(entries)
        return True

    def remove(self, serialno: str | None = None, account: str | None = None) -> int:
        """Remove pairs matching every given field; returns how many."""
        if serialno is None and account is None:
            raise ConfigurationError("need a serial number or an account to remove")
        entries = self.entries()
        kept = [
            (s, a) for s, a in entries
            if not ((serialno is None or s == serialno) and (account is None or a == account))
        ]
        removed = len(entries) - len(kept)
        if removed:
            self._write(kept)
        return removed

    def _write(self, entries: list[tuple[str, str]]) -> None:
        tmp = self.path + ".new"
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                for serialno, account in entries:
                    f.write(f"{serialno}\t{account}\n")
            os.replace(tmp, self.path)
        except OSError as exc:
            raise ConfigurationError(f"cannot write users database {self.path}: {exc}") from exc

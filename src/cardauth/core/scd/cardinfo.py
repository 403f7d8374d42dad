"""Card information collected from LEARN status lines."""

from __future__ import annotations

import logging
import string
from dataclasses import dataclass, field, fields

from cardauth.core.assuan import unescape_text

lg = logging.getLogger(__name__)

_HEXDIGITS = frozenset(string.hexdigits)
FPR_SLOTS = 3


def hex_prefix(text: str) -> str:
    """Return the run of hex digits *text* starts with."""
    n = 0
    while n < len(text) and text[n] in _HEXDIGITS:
        n += 1
    return text[:n]


def parse_fingerprint(text: str) -> bytes | None:
    """Decode a 40 digit hex fingerprint; anything else yields None."""
    if len(text) != 40 or not all(c in _HEXDIGITS for c in text):
        return None
    return bytes.fromhex(text)


def _empty_fprs() -> list[bytes | None]:
    return [None] * FPR_SLOTS


@dataclass
class CardInfo:
    """What the card daemon reported about the inserted card."""

    serialno: str | None = None
    disp_name: str | None = None
    disp_lang: str | None = None
    pubkey_url: str | None = None
    login_data: str | None = None
    fpr: list[bytes | None] = field(default_factory=_empty_fprs)

    def fpr_valid(self, slot: int) -> bool:
        """Whether key slot *slot* (1-based) carries a well-formed fingerprint."""
        return self.fpr[slot - 1] is not None

    def release(self) -> None:
        """Return every field to its empty state."""
        for f in fields(self):
            setattr(self, f.name, f.default_factory() if f.name == "fpr" else f.default)

    def update(self, keyword: str, text: str) -> None:
        """Status callback for LEARN."""
        match keyword:
            case "SERIALNO":
                self.serialno = hex_prefix(text) or None
            case "DISP-NAME":
                self.disp_name = unescape_text(text)
            case "DISP-LANG":
                self.disp_lang = unescape_text(text)
            case "PUBKEY-URL":
                self.pubkey_url = unescape_text(text)
            case "LOGIN-DATA":
                self.login_data = unescape_text(text)
            case "KEY-FPR":
                self._update_fpr(text)

    def _update_fpr(self, text: str) -> None:
        slot_str, _, rest = text.partition(" ")
        if not slot_str.isdigit() or not 1 <= int(slot_str) <= FPR_SLOTS:
            lg.debug("ignoring KEY-FPR for slot %r", slot_str)
            return
        slot = int(slot_str)
        fpr = parse_fingerprint(rest.strip().split(" ", 1)[0])
        if fpr is None:
            lg.warning("malformed fingerprint for key %d", slot)
        self.fpr[slot - 1] = fpr

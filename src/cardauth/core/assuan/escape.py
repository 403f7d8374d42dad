"""Percent escaping for Assuan data and status strings."""

from __future__ import annotations

from cardauth.core.errors import ProtocolError

_ESCAPED = frozenset(b"%\r\n+\x00")
_HEX = frozenset(b"0123456789abcdefABCDEF")


def escape(data: bytes) -> bytes:
    """Percent-escape bytes that may not appear verbatim on a line.

    '+' is escaped as well so the result decodes identically whether or not
    the receiver applies the status-string '+' to space rule.
    """
    out = bytearray()
    for b in data:
        if b in _ESCAPED:
            out += b"%%%02X" % b
        else:
            out.append(b)
    return bytes(out)


def unescape(raw: bytes, plus: bool = False) -> bytes:
    """Decode %XX sequences. With *plus*, '+' stands for a space."""
    out = bytearray()
    i = 0
    while i < len(raw):
        b = raw[i]
        if b == 0x25:
            pair = raw[i + 1 : i + 3]
            if len(pair) != 2 or not all(c in _HEX for c in pair):
                raise ProtocolError(f"bad escape sequence at offset {i}")
            out.append(int(pair, 16))
            i += 3
            continue
        out.append(0x20 if plus and b == 0x2B else b)
        i += 1
    return bytes(out)


def unescape_text(text: str) -> str:
    """Decode a percent/plus escaped status string into text."""
    return unescape(text.encode("utf-8"), plus=True).decode("utf-8", errors="replace")

"""S-expressions as exchanged with the card daemon and stored in key files.

Two encodings are understood: the canonical one (``(10:public-key(3:rsa``
...) that READKEY returns, and the advanced, human-editable one
(``(public-key (rsa (n #00C0...#) (e #010001#)))``) used in key files.
"""

from __future__ import annotations

import base64
import re
import string
from dataclasses import dataclass, field

from cardauth.core.errors import InvalidValueError

_TOKEN_CHARS = frozenset((string.ascii_letters + string.digits + "-./_:*+=").encode())
_TOKEN_START = frozenset((string.ascii_letters + "-./_:*+=").encode())
_WHITESPACE = frozenset(b" \t\r\n\f\v")
_ESCAPES = {b"n": b"\n", b"r": b"\r", b"t": b"\t", b"\\": b"\\", b'"': b'"', b"'": b"'"}

# Deepest list nesting either parser accepts.
MAX_DEPTH = 32


@dataclass
class SExp:
    """A list node. Atoms are bytes, sublists are SExp nodes."""

    items: list[bytes | SExp] = field(default_factory=list)

    @property
    def name(self) -> bytes | None:
        """The leading atom, which names the list by convention."""
        if self.items and isinstance(self.items[0], bytes):
            return self.items[0]
        return None

    def find(self, name: bytes) -> SExp | None:
        """Find the first direct sublist named *name*."""
        for item in self.items:
            if isinstance(item, SExp) and item.name == name:
                return item
        return None

    def find_recursive(self, name: bytes) -> SExp | None:
        """Find the first descendant list named *name* (depth-first)."""
        if self.name == name:
            return self
        for item in self.items:
            if isinstance(item, SExp):
                result = item.find_recursive(name)
                if result is not None:
                    return result
        return None

    def atom(self, index: int = 1) -> bytes:
        """Return the atom at *index*, e.g. the value of ``(n #..#)``."""
        try:
            item = self.items[index]
        except IndexError:
            raise InvalidValueError(f"list {self.name!r} has no element {index}") from None
        if not isinstance(item, bytes):
            raise InvalidValueError(f"element {index} of {self.name!r} is not an atom")
        return item

    def to_canonical(self) -> bytes:
        out = bytearray(b"(")
        for item in self.items:
            if isinstance(item, SExp):
                out += item.to_canonical()
            else:
                out += b"%d:%s" % (len(item), item)
        out += b")"
        return bytes(out)

    def format(self, indent: int = 0) -> str:
        """Format in the advanced encoding, one sublist per line."""
        out = " " * indent + "("
        for i, item in enumerate(self.items):
            if isinstance(item, SExp):
                out += "\n" + item.format(indent + 1)
            else:
                out += (" " if i else "") + _format_atom(item)
        return out + ")"

    def __repr__(self) -> str:
        return " ".join(self.format().split())


def _format_atom(atom: bytes) -> str:
    if atom and atom[0] in _TOKEN_START and all(b in _TOKEN_CHARS for b in atom):
        return atom.decode("ascii")
    return f"#{atom.hex().upper()}#"


# -- canonical encoding --


def _check_depth(depth: int, offset: int) -> None:
    if depth > MAX_DEPTH:
        raise InvalidValueError(f"S-expression nested deeper than {MAX_DEPTH} at offset {offset}")


def parse_canonical(data: bytes) -> SExp:
    """Parse a canonical S-expression that must span all of *data*."""
    if not data.startswith(b"("):
        raise InvalidValueError("canonical S-expression must start with '('")
    node, offset = _read_canonical(data, 1, 1)
    if offset != len(data):
        raise InvalidValueError(f"{len(data) - offset} trailing bytes after S-expression")
    return node


def _read_canonical(data: bytes, offset: int, depth: int) -> tuple[SExp, int]:
    """Read list items until the matching ')' and return (node, new_offset)."""
    _check_depth(depth, offset)
    node = SExp()
    while offset < len(data):
        b = data[offset]
        if b == 0x28:
            child, offset = _read_canonical(data, offset + 1, depth + 1)
            node.items.append(child)
        elif b == 0x29:
            return node, offset + 1
        elif 0x30 <= b <= 0x39:
            atom, offset = _read_verbatim(data, offset)
            node.items.append(atom)
        else:
            raise InvalidValueError(f"unexpected byte {b:#04x} at offset {offset}")
    raise InvalidValueError("unterminated S-expression")


def _read_verbatim(data: bytes, offset: int) -> tuple[bytes, int]:
    """Read a '<len>:<bytes>' atom and return (atom, new_offset)."""
    colon = data.find(b":", offset)
    digits = data[offset:colon] if colon >= 0 else b""
    if not digits.isdigit() or (len(digits) > 1 and digits[0] == 0x30):
        raise InvalidValueError(f"bad length prefix at offset {offset}")
    length = int(digits)
    start = colon + 1
    if start + length > len(data):
        raise InvalidValueError("atom runs past the end of the data")
    return data[start : start + length], start + length


# -- advanced encoding --

_HEX_RE = re.compile(rb"#([0-9A-Fa-f\s]*)#")
_B64_RE = re.compile(rb"\|([A-Za-z0-9+/=\s]*)\|")


def parse(text: str | bytes) -> SExp:
    """Parse an S-expression in either encoding."""
    data = text.encode("utf-8") if isinstance(text, str) else text
    data = data.strip()
    if not data.startswith(b"("):
        raise InvalidValueError("S-expression must start with '('")
    node, offset = _read_advanced(data, 1, 1)
    while offset < len(data) and data[offset] in _WHITESPACE:
        offset += 1
    if offset != len(data):
        raise InvalidValueError("trailing data after S-expression")
    return node


def _read_advanced(data: bytes, offset: int, depth: int) -> tuple[SExp, int]:
    _check_depth(depth, offset)
    node = SExp()
    while offset < len(data):
        b = data[offset]
        if b in _WHITESPACE:
            offset += 1
        elif b == 0x28:
            child, offset = _read_advanced(data, offset + 1, depth + 1)
            node.items.append(child)
        elif b == 0x29:
            return node, offset + 1
        elif 0x30 <= b <= 0x39:
            atom, offset = _read_verbatim(data, offset)
            node.items.append(atom)
        elif b == 0x23:
            match = _HEX_RE.match(data, offset)
            if match is None:
                raise InvalidValueError(f"bad hex atom at offset {offset}")
            digits = re.sub(rb"\s", b"", match.group(1))
            if len(digits) % 2:
                raise InvalidValueError(f"odd number of hex digits at offset {offset}")
            node.items.append(bytes.fromhex(digits.decode("ascii")))
            offset = match.end()
        elif b == 0x7C:
            match = _B64_RE.match(data, offset)
            if match is None:
                raise InvalidValueError(f"bad base64 atom at offset {offset}")
            try:
                node.items.append(base64.b64decode(re.sub(rb"\s", b"", match.group(1)), validate=True))
            except ValueError as exc:
                raise InvalidValueError(f"bad base64 atom at offset {offset}") from exc
            offset = match.end()
        elif b == 0x22:
            atom, offset = _read_quoted(data, offset + 1)
            node.items.append(atom)
        elif b in _TOKEN_START:
            end = offset
            while end < len(data) and data[end] in _TOKEN_CHARS:
                end += 1
            node.items.append(data[offset:end])
            offset = end
        else:
            raise InvalidValueError(f"unexpected byte {b:#04x} at offset {offset}")
    raise InvalidValueError("unterminated S-expression")


def _read_quoted(data: bytes, offset: int) -> tuple[bytes, int]:
    out = bytearray()
    while offset < len(data):
        b = data[offset : offset + 1]
        if b == b'"':
            return bytes(out), offset + 1
        if b == b"\\":
            esc = data[offset + 1 : offset + 2]
            if esc not in _ESCAPES:
                raise InvalidValueError(f"bad escape in string at offset {offset}")
            out += _ESCAPES[esc]
            offset += 2
            continue
        out += b
        offset += 1
    raise InvalidValueError("unterminated string")

"""Splitting of concatenated DER objects returned by certificate lookups."""

from __future__ import annotations

from collections.abc import Iterator

from cardauth.core.errors import InvalidValueError


def iter_objects(data: bytes) -> Iterator[bytes]:
    """Yield each complete DER object in *data*, in order.

    Raises InvalidValueError when the remainder is not a complete object,
    after every object before it has been yielded.
    """
    offset = 0
    while offset < len(data):
        start = offset
        offset = _read_tag(data, offset)
        length, offset = _read_length(data, offset)
        if offset + length > len(data):
            raise InvalidValueError(f"DER object at offset {start} is truncated")
        offset += length
        yield data[start:offset]


def _read_tag(data: bytes, offset: int) -> int:
    """Skip a DER tag and return the new offset."""
    b = data[offset]
    offset += 1
    if (b & 0x1F) == 0x1F:
        while True:
            if offset >= len(data):
                raise InvalidValueError("DER tag runs past the end of the data")
            b = data[offset]
            offset += 1
            if not (b & 0x80):
                break
    return offset


def _read_length(data: bytes, offset: int) -> tuple[int, int]:
    """Read a DER definite length and return (length, new_offset)."""
    if offset >= len(data):
        raise InvalidValueError("DER length missing")
    b = data[offset]
    offset += 1
    if b < 0x80:
        return b, offset
    num_bytes = b & 0x7F
    if num_bytes == 0 or num_bytes > 4:
        raise InvalidValueError("unsupported DER length encoding")
    if offset + num_bytes > len(data):
        raise InvalidValueError("DER length runs past the end of the data")
    length = 0
    for _ in range(num_bytes):
        length = (length << 8) | data[offset]
        offset += 1
    return length, offset

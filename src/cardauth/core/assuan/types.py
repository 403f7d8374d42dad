from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from cardauth.core.assuan.escape import unescape
from cardauth.core.errors import ProtocolError

LINE_LENGTH = 1000


class LineType(Enum):
    DATA = "D"
    STATUS = "S"
    INQUIRE = "INQUIRE"
    OK = "OK"
    ERR = "ERR"
    END = "END"
    COMMENT = "#"


@dataclass
class Line:
    """A single line received from an Assuan server."""

    type: LineType
    keyword: str = ""
    text: str = ""
    data: bytes = b""
    code: int = 0

    def __repr__(self) -> str:
        match self.type:
            case LineType.DATA:
                return f"D <{len(self.data)} bytes>"
            case LineType.ERR:
                return f"ERR {self.code} {self.text}".rstrip()
            case LineType.STATUS | LineType.INQUIRE:
                return f"{self.type.value} {self.keyword} {self.text}".rstrip()
        return f"{self.type.value} {self.text}".rstrip()


def _split(rest: bytes) -> tuple[str, str]:
    keyword, _, text = rest.decode("utf-8", errors="replace").partition(" ")
    return keyword, text.lstrip(" ")


def _word(raw: bytes, word: bytes) -> bool:
    return raw == word or raw.startswith(word + b" ")


def parse_line(raw: bytes) -> Line:
    """Classify a received line (without its terminating newline)."""
    if raw.startswith(b"#"):
        return Line(LineType.COMMENT, text=raw[1:].decode("utf-8", errors="replace"))
    if _word(raw, b"D"):
        return Line(LineType.DATA, data=unescape(raw[2:]))
    if _word(raw, b"OK"):
        return Line(LineType.OK, text=raw[3:].decode("utf-8", errors="replace"))
    if raw == b"END":
        return Line(LineType.END)
    if _word(raw, b"ERR"):
        code, text = _split(raw[4:])
        if not code.isdigit():
            raise ProtocolError(f"malformed ERR line: {raw!r}")
        return Line(LineType.ERR, code=int(code), text=text)
    if _word(raw, b"S") or _word(raw, b"INQUIRE"):
        kind = LineType.STATUS if raw.startswith(b"S") else LineType.INQUIRE
        keyword, text = _split(raw[len(kind.value) + 1 :])
        if not keyword:
            raise ProtocolError(f"{kind.value} line without keyword")
        return Line(kind, keyword=keyword, text=text)
    raise ProtocolError(f"unexpected line from server: {raw[:40]!r}")

from cardauth.core.assuan.connection import Connection
from cardauth.core.assuan.escape import escape, unescape, unescape_text
from cardauth.core.assuan.logging import PROTOCOL, TRACE
from cardauth.core.assuan.stream import PipeTransport, SocketTransport, parse_infostr
from cardauth.core.assuan.types import LINE_LENGTH, Line, LineType, parse_line

__all__ = [
    "Connection",
    "LINE_LENGTH",
    "Line",
    "LineType",
    "PROTOCOL",
    "PipeTransport",
    "SocketTransport",
    "TRACE",
    "escape",
    "parse_infostr",
    "parse_line",
    "unescape",
    "unescape_text",
]

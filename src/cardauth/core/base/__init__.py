from cardauth.core.base.session import DaemonSession
from cardauth.core.base.terminal import Message, Result, Terminal, handles

__all__ = ["DaemonSession", "Message", "Result", "Terminal", "handles"]

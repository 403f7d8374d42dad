"""PIN inquiries raised by the card daemon while signing."""

from __future__ import annotations

import logging
from typing import Protocol

from cardauth.core.errors import BadPinError, CardAuthError

lg = logging.getLogger(__name__)


class PinProvider(Protocol):
    """Source of PINs, and of pinpad prompts, for card operations."""

    def get_pin(self, info: str) -> str: ...
    def pinpad_open(self, info: str) -> None: ...
    def pinpad_close(self) -> None: ...


class PinInquiry:
    """Inquiry callback answering NEEDPIN and the pinpad prompts.

    PIN buffers handed to the connection are kept so they can be wiped
    once the transaction is over.
    """

    def __init__(self, provider: PinProvider) -> None:
        self._provider = provider
        self._buffers: list[bytearray] = []

    def __call__(self, keyword: str, info: str) -> bytes | None:
        try:
            match keyword:
                case "NEEDPIN":
                    pin = bytearray(self._provider.get_pin(info).encode("utf-8"))
                    self._buffers.append(pin)
                    return pin
                case "POPUPPINPADPROMPT" | "POPUPKEYPADPROMPT":
                    self._provider.pinpad_open(info)
                    return None
                case "DISMISSPINPADPROMPT" | "DISMISSKEYPADPROMPT":
                    self._provider.pinpad_close()
                    return None
        except BadPinError:
            raise
        except CardAuthError as exc:
            raise BadPinError(f"no PIN available: {exc}") from exc
        raise BadPinError(f"cannot answer inquiry {keyword}")

    def wipe(self) -> None:
        for buf in self._buffers:
            buf[:] = bytes(len(buf))
        self._buffers.clear()

"""Human-readable card information formatting."""

from __future__ import annotations

from cardauth.core.scd import CardInfo
from cardauth.core.sexp import SExp


def _fpr(fpr: bytes | None) -> str:
    return fpr.hex(" ", 2).upper() if fpr else "[none]"


def format_card_info(info: CardInfo, key: SExp | None = None) -> str:
    lines = [
        f"Serial number:  {info.serialno or '[none]'}",
        f"Name:           {info.disp_name or ''}",
        f"Language:       {info.disp_lang or ''}",
        f"Login data:     {info.login_data or ''}",
        f"Public key URL: {info.pubkey_url or ''}",
    ]
    for slot, fpr in enumerate(info.fpr, 1):
        lines.append(f"Key {slot} fpr:      {_fpr(fpr)}")
    if key is not None:
        lines.append("Authentication key:")
        lines.append(key.format(indent=1))
    return "\n".join(lines)

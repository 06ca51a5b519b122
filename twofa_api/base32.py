from __future__ import annotations

import base64


ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"
_INDEX = {ch: i for i, ch in enumerate(ALPHABET)}

# Copy-pasted secrets are often grouped ("ABCD EFGH" or "ABCD-EFGH").
_FORMATTING = set(" \t\r\n-=")


class Base32DecodeError(ValueError):
    pass


def base32_encode(data: bytes) -> str:
    return base64.b32encode(bytes(data)).decode("ascii").rstrip("=")


def base32_decode(text: str, *, strict: bool = True) -> bytes:
    """Decode an RFC 4648 Base32 string, padding optional.

    Formatting characters (whitespace, '-', '=') are skipped. Any other
    symbol outside the alphabet raises Base32DecodeError, or is skipped as
    well when strict is False. Trailing bits that do not fill a byte are
    dropped.
    """
    s = (text or "").rstrip("=").upper()

    out = bytearray()
    buf = 0
    bits = 0
    for ch in s:
        idx = _INDEX.get(ch)
        if idx is None:
            if strict and ch not in _FORMATTING:
                raise Base32DecodeError(f"invalid base32 character: {ch!r}")
            continue
        buf = ((buf << 5) | idx) & 0xFFF
        bits += 5
        if bits >= 8:
            bits -= 8
            out.append((buf >> bits) & 0xFF)
    return bytes(out)

from __future__ import annotations

from .sha1 import BLOCK_SIZE, sha1_digest


_IPAD = 0x36
_OPAD = 0x5C


def hmac_sha1(key: bytes, message: bytes) -> bytes:
    """HMAC (RFC 2104) over the pure-python SHA-1."""
    k = bytes(key)
    if len(k) > BLOCK_SIZE:
        k = sha1_digest(k)
    k = k.ljust(BLOCK_SIZE, b"\x00")

    inner_key = bytes(b ^ _IPAD for b in k)
    outer_key = bytes(b ^ _OPAD for b in k)

    inner = sha1_digest(inner_key + bytes(message))
    return sha1_digest(outer_key + inner)

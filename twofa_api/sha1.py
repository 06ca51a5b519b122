from __future__ import annotations

import struct


BLOCK_SIZE = 64
DIGEST_SIZE = 20

_MASK32 = 0xFFFFFFFF
_H0 = (0x67452301, 0xEFCDAB89, 0x98BADCFE, 0x10325476, 0xC3D2E1F0)


def _rotl(x: int, n: int) -> int:
    return ((x << n) | (x >> (32 - n))) & _MASK32


def _pad(message: bytes) -> bytes:
    bit_len = (len(message) * 8) & 0xFFFFFFFFFFFFFFFF
    zeros = (55 - len(message)) % BLOCK_SIZE
    return message + b"\x80" + (b"\x00" * zeros) + struct.pack(">Q", bit_len)


def _compress(state: tuple[int, ...], block: bytes) -> tuple[int, ...]:
    w = list(struct.unpack(">16I", block))
    for j in range(16, 80):
        w.append(_rotl(w[j - 3] ^ w[j - 8] ^ w[j - 14] ^ w[j - 16], 1))

    a, b, c, d, e = state
    for j in range(80):
        if j < 20:
            f = (b & c) | (~b & d)
            k = 0x5A827999
        elif j < 40:
            f = b ^ c ^ d
            k = 0x6ED9EBA1
        elif j < 60:
            f = (b & c) | (b & d) | (c & d)
            k = 0x8F1BBCDC
        else:
            f = b ^ c ^ d
            k = 0xCA62C1D6

        temp = (_rotl(a, 5) + (f & _MASK32) + e + k + w[j]) & _MASK32
        e = d
        d = c
        c = _rotl(b, 30)
        b = a
        a = temp

    return tuple((x + y) & _MASK32 for x, y in zip(state, (a, b, c, d, e)))


def sha1_digest(message: bytes) -> bytes:
    """SHA-1 (RFC 3174) of message as 20 raw bytes."""
    data = _pad(bytes(message))
    state = _H0
    for i in range(0, len(data), BLOCK_SIZE):
        state = _compress(state, data[i:i + BLOCK_SIZE])
    return struct.pack(">5I", *state)


def sha1_hexdigest(message: bytes) -> str:
    return sha1_digest(message).hex()

from __future__ import annotations

import hmac
import secrets
import struct
import time
from typing import Optional
from urllib.parse import quote

from .base32 import Base32DecodeError, base32_decode, base32_encode
from .hmac_sha1 import hmac_sha1


STEP_SECONDS = 30
DIGITS = 6
WINDOW_STEPS = 1


def generate_base32_secret(*, nbytes: int = 20) -> str:
    return base32_encode(secrets.token_bytes(nbytes))


def time_step(now: float, *, step_seconds: int = STEP_SECONDS) -> int:
    return int(now // int(step_seconds))


def _decode_secret(secret: str) -> bytes:
    key = base32_decode(secret)
    if not key:
        raise Base32DecodeError("empty secret")
    return key


def hotp(*, secret: str, counter: int, digits: int = DIGITS) -> str:
    key = _decode_secret(secret)
    msg = struct.pack(">Q", int(counter))
    digest = hmac_sha1(key, msg)
    off = digest[-1] & 0x0F
    code_int = struct.unpack(">I", digest[off:off + 4])[0] & 0x7FFFFFFF
    mod = 10**digits
    return str(code_int % mod).zfill(digits)


def generate_totp(secret: str, step: int, *, digits: int = DIGITS) -> str:
    """Code for a given time step; the step is the HOTP counter."""
    return hotp(secret=secret, counter=step, digits=digits)


def totp_now(*, secret: str, step_seconds: int = STEP_SECONDS, digits: int = DIGITS) -> str:
    counter = time_step(time.time(), step_seconds=step_seconds)
    return generate_totp(secret, counter, digits=digits)


def verify_totp(
    *,
    secret: str,
    code: str,
    now: Optional[float] = None,
    step_seconds: int = STEP_SECONDS,
    digits: int = DIGITS,
    window_steps: int = WINDOW_STEPS,
) -> bool:
    c = (code or "").strip().replace(" ", "")
    # str.isdigit() also admits non-ASCII digits, which compare_digest rejects
    if len(c) != digits or not (c.isascii() and c.isdigit()):
        return False

    if now is None:
        now = time.time()
    counter = time_step(now, step_seconds=step_seconds)
    for delta in range(-int(window_steps), int(window_steps) + 1):
        try:
            expected = generate_totp(secret, counter + delta, digits=digits)
        except Base32DecodeError:
            return False
        if hmac.compare_digest(expected, c):
            return True
    return False


def build_provisioning_uri(*, secret: str, account: str, issuer: str) -> str:
    a = quote((account or "").strip(), safe="")
    i = quote((issuer or "").strip(), safe="")
    return f"otpauth://totp/{i}:{a}?secret={secret}&issuer={i}"

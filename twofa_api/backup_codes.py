from __future__ import annotations

import secrets
from typing import Iterable


BACKUP_CODE_COUNT = 10


def generate_backup_codes(count: int = BACKUP_CODE_COUNT) -> list[str]:
    # 8 decimal digits shown as two groups of 4.
    codes: list[str] = []
    for _ in range(max(1, int(count))):
        raw = "".join(str(secrets.randbelow(10)) for __ in range(8))
        codes.append(f"{raw[0:4]}-{raw[4:8]}")
    return codes


def normalize_backup_code(code: str) -> str:
    return (code or "").strip()


def consume_backup_code(codes: Iterable[str], code: str) -> tuple[bool, list[str]]:
    """Remove one matching code; returns (matched, remaining codes)."""
    remaining = list(codes or [])
    c = normalize_backup_code(code)
    if not c:
        return (False, remaining)
    try:
        idx = remaining.index(c)
    except ValueError:
        return (False, remaining)
    del remaining[idx]
    return (True, remaining)

from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Any, Optional

from .db import data_dir


MAX_LOG_BYTES = 5 * 1024 * 1024

# Never written to the log, whatever the caller passes.
REDACTED_FIELDS = {"secret", "code", "backup_code", "backup_codes", "token"}


def _log_path() -> str:
    return os.path.join(data_dir(), "auth.log")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _clean(value: Any) -> str:
    s = str(value).strip()
    for ch in ("\r", "\n", "\t", " ", "="):
        s = s.replace(ch, "_")
    return s or "-"


def format_event(event: str, *, user_id: str, **fields: Any) -> str:
    parts = [_clean(event).upper(), f"user={_clean(user_id)}"]
    for key in sorted(fields):
        if key in REDACTED_FIELDS:
            continue
        parts.append(f"{_clean(key)}={_clean(fields[key])}")
    return " ".join(parts)


def _rotate(path: str, max_bytes: int) -> None:
    # One previous generation is kept as auth.log.1.
    try:
        if os.path.getsize(path) <= max_bytes:
            return
        os.replace(path, path + ".1")
    except OSError:
        return


def log_event(event: str, *, user_id: str, **fields: Any) -> None:
    """Append '<iso-utc> EVENT user=<id> key=value ...' to auth.log."""
    path = _log_path()
    line = f"{_now_iso()} {format_event(event, user_id=user_id, **fields)}\n"
    try:
        with open(path, "a", encoding="utf-8") as f:
            f.write(line)
    except OSError:
        return
    _rotate(path, MAX_LOG_BYTES)


def parse_event(line: str) -> Optional[dict[str, str]]:
    parts = line.split()
    if len(parts) < 3 or not parts[2].startswith("user="):
        return None
    out = {"ts": parts[0], "event": parts[1]}
    for p in parts[2:]:
        key, sep, value = p.partition("=")
        if sep:
            out["user_id" if key == "user" else key] = value
    return out


def recent_events(
    *,
    user_id: Optional[str] = None,
    max_bytes: int = 64 * 1024,
) -> list[dict[str, str]]:
    path = _log_path()
    try:
        size = os.path.getsize(path)
        with open(path, "rb") as f:
            f.seek(max(0, size - max_bytes))
            data = f.read()
    except OSError:
        return []

    lines = data.decode("utf-8", errors="replace").splitlines()
    if size > max_bytes and lines:
        lines = lines[1:]

    events = []
    for ln in lines:
        ev = parse_event(ln)
        if ev is None:
            continue
        if user_id is not None and ev.get("user_id") != _clean(user_id):
            continue
        events.append(ev)
    return events

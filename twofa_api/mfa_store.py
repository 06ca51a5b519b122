from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import json
from typing import Optional

from .db import store_conn


@dataclass(frozen=True)
class MfaSettings:
    user_id: str
    secret: Optional[str]
    backup_codes: Optional[list[str]]
    is_enabled: bool
    version: int


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _dump_codes(codes: Optional[list[str]]) -> Optional[str]:
    if codes is None:
        return None
    return json.dumps([str(c) for c in codes])


def _load_codes(raw: Optional[str]) -> Optional[list[str]]:
    if raw is None:
        return None
    try:
        data = json.loads(raw)
    except ValueError:
        return None
    if not isinstance(data, list):
        return None
    return [str(c) for c in data]


def get_mfa_settings(user_id: str) -> Optional[MfaSettings]:
    u = (user_id or "").strip()
    if not u:
        return None
    with store_conn() as conn:
        row = conn.execute(
            "select user_id, secret, backup_codes, is_enabled, version "
            "from user_mfa_settings where user_id = ?",
            (u,),
        ).fetchone()
    if row is None:
        return None
    return MfaSettings(
        user_id=str(row["user_id"]),
        secret=(str(row["secret"]) if row["secret"] else None),
        backup_codes=_load_codes(row["backup_codes"]),
        is_enabled=int(row["is_enabled"]) == 1,
        version=int(row["version"]),
    )


def save_pending_enrollment(user_id: str, *, secret: str, backup_codes: list[str]) -> None:
    u = (user_id or "").strip()
    now = _now_iso()
    with store_conn() as conn:
        conn.execute(
            "insert into user_mfa_settings("
            "user_id, secret, backup_codes, is_enabled, version, created_at, updated_at"
            ") values(?, ?, ?, 0, 1, ?, ?) "
            "on conflict(user_id) do update set "
            "secret = excluded.secret, backup_codes = excluded.backup_codes, "
            "is_enabled = 0, version = user_mfa_settings.version + 1, "
            "updated_at = excluded.updated_at",
            (u, secret, _dump_codes(backup_codes), now, now),
        )
        conn.commit()


def set_enabled(user_id: str, *, expected_version: int) -> bool:
    # Only enables the secret that was read at expected_version.
    u = (user_id or "").strip()
    with store_conn() as conn:
        cur = conn.execute(
            "update user_mfa_settings set is_enabled = 1, version = version + 1, "
            "updated_at = ? where user_id = ? and version = ? and secret is not null",
            (_now_iso(), u, int(expected_version)),
        )
        conn.commit()
        return cur.rowcount == 1


def replace_backup_codes(
    user_id: str,
    *,
    expected_version: int,
    backup_codes: list[str],
) -> bool:
    # Conditional write: fails if the record changed since it was read.
    u = (user_id or "").strip()
    with store_conn() as conn:
        cur = conn.execute(
            "update user_mfa_settings set backup_codes = ?, version = version + 1, "
            "updated_at = ? where user_id = ? and version = ?",
            (_dump_codes(backup_codes), _now_iso(), u, int(expected_version)),
        )
        conn.commit()
        return cur.rowcount == 1


def clear_mfa_settings(user_id: str) -> None:
    u = (user_id or "").strip()
    with store_conn() as conn:
        conn.execute(
            "update user_mfa_settings set secret = null, backup_codes = null, "
            "is_enabled = 0, version = version + 1, updated_at = ? "
            "where user_id = ?",
            (_now_iso(), u),
        )
        conn.commit()

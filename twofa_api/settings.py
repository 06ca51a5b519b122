from __future__ import annotations

from dataclasses import dataclass
import secrets

from .db import store_conn


@dataclass(frozen=True)
class AppSettings:
    issuer: str
    verify_rate_limit_per_minute: int
    backup_code_count: int
    bind_host: str
    bind_port: int


DEFAULTS = {
    "issuer": "GoldsPay",
    "verify_rate_limit_per_minute": "10",
    "backup_code_count": "10",
    "bind_host": "0.0.0.0",
    "bind_port": "2590",
    "token_secret": "",
}


def get_setting(key: str) -> str:
    with store_conn() as conn:
        row = conn.execute("select value from settings where key = ?", (key,)).fetchone()
        if row is None:
            return DEFAULTS.get(key, "")
        return str(row["value"])


def set_setting(key: str, value: str) -> None:
    with store_conn() as conn:
        conn.execute(
            "insert into settings(key, value) values(?, ?) on conflict(key) do update set value = excluded.value",
            (key, value),
        )
        conn.commit()


def get_or_create_token_secret() -> str:
    existing = get_setting("token_secret").strip()
    if existing:
        return existing
    value = secrets.token_urlsafe(48)
    set_setting("token_secret", value)
    return value


def _int_setting(key: str) -> int:
    raw = get_setting(key).strip() or DEFAULTS[key]
    try:
        return int(raw)
    except ValueError:
        return int(DEFAULTS[key])


def load_app_settings() -> AppSettings:
    return AppSettings(
        issuer=get_setting("issuer").strip() or DEFAULTS["issuer"],
        verify_rate_limit_per_minute=_int_setting("verify_rate_limit_per_minute"),
        backup_code_count=_int_setting("backup_code_count"),
        bind_host=get_setting("bind_host").strip() or DEFAULTS["bind_host"],
        bind_port=_int_setting("bind_port"),
    )

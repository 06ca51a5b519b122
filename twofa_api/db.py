import os
import sqlite3
from contextlib import contextmanager


def data_dir() -> str:
    base_dir = os.environ.get("TWOFA_API_DATA_DIR")
    if not base_dir:
        base_dir = os.path.join(os.getcwd(), "data")
    os.makedirs(base_dir, exist_ok=True)
    return base_dir


def _db_path() -> str:
    return os.path.join(data_dir(), "twofa_api.db")


def init_db() -> None:
    with get_conn() as conn:
        conn.execute(
            """
            create table if not exists settings (
                key text primary key,
                value text not null
            )
            """
        )
        conn.execute(
            """
            create table if not exists user_mfa_settings (
                user_id text primary key,
                secret text,
                backup_codes text,
                is_enabled integer not null default 0,
                version integer not null default 0,
                created_at text not null,
                updated_at text not null
            )
            """
        )
        conn.execute(
            """
            create table if not exists rate_limit_windows (
                scope text not null,
                key text not null,
                window_start integer not null,
                count integer not null,
                primary key (scope, key)
            )
            """
        )
        conn.execute(
            """
            create table if not exists audit_log (
                id integer primary key autoincrement,
                actor text not null,
                action text not null,
                details text not null,
                created_at text not null
            )
            """
        )
        conn.commit()


@contextmanager
def get_conn():
    conn = sqlite3.connect(_db_path(), timeout=10)
    try:
        conn.row_factory = sqlite3.Row
        yield conn
    finally:
        conn.close()


class StorageError(RuntimeError):
    pass


@contextmanager
def store_conn():
    """get_conn() that surfaces sqlite failures as StorageError."""
    try:
        with get_conn() as conn:
            yield conn
    except sqlite3.Error as e:
        raise StorageError(str(e)) from e

from __future__ import annotations

from datetime import datetime, timezone

from .db import store_conn


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def record_audit(actor: str, action: str, details: str = "") -> None:
    with store_conn() as conn:
        conn.execute(
            (
                "insert into audit_log(actor, action, details, created_at) "
                "values(?, ?, ?, ?)"
            ),
            (actor, action, details, _now_iso()),
        )
        conn.commit()


def list_audit(actor: str, *, limit: int = 100) -> list[dict]:
    with store_conn() as conn:
        rows = conn.execute(
            "select actor, action, details, created_at "
            "from audit_log where actor = ? "
            "order by id desc limit ?",
            (actor, int(limit)),
        ).fetchall()
        return [
            {
                "actor": str(r["actor"]),
                "action": str(r["action"]),
                "details": str(r["details"]),
                "created_at": str(r["created_at"]),
            }
            for r in rows
        ]

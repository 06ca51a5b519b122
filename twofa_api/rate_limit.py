from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable

from .db import store_conn


@dataclass
class RateLimitResult:
    ok: bool
    retry_after_seconds: int


class SqliteFixedWindowRateLimiter:
    """Counts hits per (scope, key) in fixed windows stored in sqlite.

    Shared by every worker process using the same data dir.
    """

    def __init__(
        self,
        *,
        scope: str,
        max_requests: int,
        window_seconds: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._scope = scope.strip() or "default"
        self._max = int(max_requests)
        self._window = int(window_seconds)
        self._clock = clock

    def check(self, *, key: str) -> RateLimitResult:
        now = int(self._clock())
        window_start = now - (now % self._window)
        k = (key or "").strip()
        if not k:
            return RateLimitResult(ok=False, retry_after_seconds=self._window)

        with store_conn() as conn:
            conn.execute("begin immediate")
            row = conn.execute(
                (
                    "select window_start, count "
                    "from rate_limit_windows where scope = ? and key = ?"
                ),
                (self._scope, k),
            ).fetchone()
            if row is None or int(row["window_start"]) != window_start:
                count = 1
            else:
                count = int(row["count"]) + 1
            conn.execute(
                (
                    "insert into rate_limit_windows(scope, key, window_start, count) "
                    "values(?, ?, ?, ?) on conflict(scope, key) do update set "
                    "window_start = excluded.window_start, count = excluded.count"
                ),
                (self._scope, k, window_start, count),
            )
            conn.execute("commit")

        if count > self._max:
            retry_after = (window_start + self._window) - now
            return RateLimitResult(ok=False, retry_after_seconds=max(1, int(retry_after)))

        return RateLimitResult(ok=True, retry_after_seconds=0)

    def reset(self, *, key: str) -> None:
        with store_conn() as conn:
            conn.execute(
                "delete from rate_limit_windows where scope = ? and key = ?",
                (self._scope, (key or "").strip()),
            )
            conn.commit()

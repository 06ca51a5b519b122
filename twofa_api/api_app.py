from __future__ import annotations

import io
from typing import Any, Optional

import segno
from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from .db import StorageError, init_db
from .mfa_service import (
    ERR_INVALID_ACTION,
    begin_enrollment,
    disable,
    get_status,
    verify_code,
)
from .mfa_store import get_mfa_settings
from .rate_limit import SqliteFixedWindowRateLimiter
from .security import TokenUser, parse_bearer, read_access_token
from .settings import load_app_settings
from .totp import build_provisioning_uri


def _require_user(authorization: Optional[str]) -> TokenUser:
    user = read_access_token(parse_bearer(authorization))
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


async def _read_json(request: Request) -> dict[str, Any]:
    try:
        payload = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="invalid json")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="invalid json")
    return payload


def create_api_app() -> FastAPI:
    init_db()
    cfg = load_app_settings()
    app = FastAPI(title="2FA API")

    limiter = SqliteFixedWindowRateLimiter(
        scope="verify",
        max_requests=cfg.verify_rate_limit_per_minute,
        window_seconds=60,
    )

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            {"error": str(exc.detail)},
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(StorageError)
    async def _storage_error(request: Request, exc: StorageError):
        return JSONResponse({"error": "storage unavailable"}, status_code=503)

    @app.get("/healthz")
    async def healthz():
        return {"ok": True}

    @app.get("/2fa/setup")
    async def setup_status(
        authorization: Optional[str] = Header(default=None),
    ):
        user = _require_user(authorization)
        status = get_status(user.user_id)
        return {
            "is_enabled": status.is_enabled,
            "state": status.state.value,
            "backup_codes_remaining": status.backup_codes_remaining,
        }

    @app.post("/2fa/setup")
    async def setup_action(
        request: Request,
        authorization: Optional[str] = Header(default=None),
    ):
        user = _require_user(authorization)
        payload = await _read_json(request)
        action = str(payload.get("action", "")).strip().lower()

        if action == "enable":
            r = begin_enrollment(user.user_id, account=user.email or user.user_id)
            return {
                "secret": r.secret,
                "qrCodeUrl": r.provisioning_uri,
                "backupCodes": r.backup_codes,
            }

        if action == "disable":
            disable(user.user_id)
            return {"message": "2FA disabled successfully"}

        raise HTTPException(status_code=400, detail=ERR_INVALID_ACTION)

    @app.get("/2fa/qr")
    async def setup_qr(
        authorization: Optional[str] = Header(default=None),
    ):
        user = _require_user(authorization)
        s = get_mfa_settings(user.user_id)
        if s is None or not s.secret:
            raise HTTPException(status_code=404, detail="no totp secret")

        uri = build_provisioning_uri(
            secret=s.secret,
            account=user.email or user.user_id,
            issuer=load_app_settings().issuer,
        )
        qr = segno.make(uri)
        buf = io.BytesIO()
        qr.save(buf, kind="svg", scale=6, border=2)
        return Response(content=buf.getvalue(), media_type="image/svg+xml")

    @app.post("/2fa/verify")
    async def verify(
        request: Request,
        authorization: Optional[str] = Header(default=None),
    ):
        user = _require_user(authorization)
        payload = await _read_json(request)

        rl = limiter.check(key=user.user_id)
        if not rl.ok:
            return JSONResponse(
                {"valid": False, "error": "rate limited"},
                status_code=429,
                headers={"Retry-After": str(rl.retry_after_seconds)},
            )

        code = payload.get("code")
        action = payload.get("action")
        result = verify_code(
            user.user_id,
            str(code) if code is not None else "",
            action=str(action) if action is not None else None,
        )
        if not result.valid:
            return JSONResponse(result.as_dict(), status_code=400)

        limiter.reset(key=user.user_id)
        return result.as_dict()

    return app

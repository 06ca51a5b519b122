from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from itsdangerous import BadSignature, URLSafeTimedSerializer

from .settings import get_or_create_token_secret


TOKEN_MAX_AGE_SECONDS = 12 * 3600


@dataclass(frozen=True)
class TokenUser:
    user_id: str
    email: str


def get_token_serializer() -> URLSafeTimedSerializer:
    secret = os.environ.get("TWOFA_API_TOKEN_SECRET")
    if not secret:
        secret = get_or_create_token_secret()
    return URLSafeTimedSerializer(secret, salt="twofa_api_access")


def issue_access_token(*, user_id: str, email: str) -> str:
    s = get_token_serializer()
    return s.dumps({"u": str(user_id), "e": str(email)})


def read_access_token(
    token: str,
    *,
    max_age_seconds: int = TOKEN_MAX_AGE_SECONDS,
) -> Optional[TokenUser]:
    t = (token or "").strip()
    if not t:
        return None
    s = get_token_serializer()
    try:
        data = s.loads(t, max_age=max_age_seconds)
    except BadSignature:
        return None
    if not isinstance(data, dict):
        return None
    user_id = str(data.get("u", "")).strip()
    if not user_id:
        return None
    return TokenUser(user_id=user_id, email=str(data.get("e", "")).strip())


def parse_bearer(authorization: Optional[str]) -> str:
    raw = (authorization or "").strip()
    if raw[:7].lower() != "bearer ":
        return ""
    return raw[7:].strip()

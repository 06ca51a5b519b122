from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .audit import record_audit
from .auth_log import log_event
from .backup_codes import consume_backup_code, generate_backup_codes
from .mfa_store import (
    MfaSettings,
    clear_mfa_settings,
    get_mfa_settings,
    replace_backup_codes,
    save_pending_enrollment,
    set_enabled,
)
from .settings import load_app_settings
from .totp import build_provisioning_uri, generate_base32_secret, verify_totp


ACTION_ENABLE = "enable"
ACTION_AUTHENTICATE = "authenticate"

ERR_CODE_REQUIRED = "Code is required"
ERR_NOT_CONFIGURED = "2FA not configured for this user"
ERR_INVALID_CODE = "Invalid code"
ERR_INVALID_ACTION = "Invalid action"

BACKUP_WRITE_ATTEMPTS = 2


class MfaState(str, Enum):
    NOT_CONFIGURED = "not_configured"
    PENDING = "pending"
    ENABLED = "enabled"


@dataclass(frozen=True)
class MfaStatus:
    state: MfaState
    is_enabled: bool
    backup_codes_remaining: int


@dataclass(frozen=True)
class EnrollmentResult:
    secret: str
    provisioning_uri: str
    backup_codes: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class VerificationResult:
    valid: bool
    message: str = ""
    error: str = ""

    def as_dict(self) -> dict:
        if self.valid:
            return {"valid": True, "message": self.message}
        return {"valid": False, "error": self.error}


def _state_of(s: Optional[MfaSettings]) -> MfaState:
    if s is None or not s.secret:
        return MfaState.NOT_CONFIGURED
    if s.is_enabled:
        return MfaState.ENABLED
    return MfaState.PENDING


def _fail(error: str) -> VerificationResult:
    return VerificationResult(valid=False, error=error)


def get_status(user_id: str) -> MfaStatus:
    s = get_mfa_settings(user_id)
    state = _state_of(s)
    remaining = len(s.backup_codes or []) if s is not None else 0
    return MfaStatus(
        state=state,
        is_enabled=state is MfaState.ENABLED,
        backup_codes_remaining=remaining,
    )


def begin_enrollment(
    user_id: str,
    *,
    account: str,
    issuer: Optional[str] = None,
) -> EnrollmentResult:
    """Provision a fresh secret and backup codes; 2FA stays disabled.

    Calling this again before confirmation replaces the pending secret.
    """
    cfg = load_app_settings()
    secret = generate_base32_secret()
    codes = generate_backup_codes(cfg.backup_code_count)
    save_pending_enrollment(user_id, secret=secret, backup_codes=codes)

    log_event("ENROLL", user_id=user_id)
    record_audit(user_id, "mfa_enroll")

    return EnrollmentResult(
        secret=secret,
        provisioning_uri=build_provisioning_uri(
            secret=secret,
            account=account,
            issuer=issuer or cfg.issuer,
        ),
        backup_codes=codes,
    )


def _confirm(s: MfaSettings, code: str, now: Optional[float]) -> VerificationResult:
    if not verify_totp(secret=s.secret or "", code=code, now=now):
        log_event("VERIFY_FAIL", user_id=s.user_id, action=ACTION_ENABLE)
        return _fail(ERR_INVALID_CODE)

    if not s.is_enabled:
        # The record was re-enrolled or disabled after it was read.
        if not set_enabled(s.user_id, expected_version=s.version):
            log_event("ENABLE_RACE", user_id=s.user_id)
            return _fail(ERR_INVALID_CODE)
        log_event("ENABLE", user_id=s.user_id)
        record_audit(s.user_id, "mfa_enable")
    return VerificationResult(valid=True, message="2FA enabled successfully")


def _authenticate(s: MfaSettings, code: str, now: Optional[float]) -> VerificationResult:
    if not s.is_enabled:
        return _fail(ERR_NOT_CONFIGURED)

    if verify_totp(secret=s.secret or "", code=code, now=now):
        log_event("VERIFY_OK", user_id=s.user_id, via="totp")
        return VerificationResult(valid=True, message="Code verified successfully")

    if _consume_backup(s, code):
        return VerificationResult(valid=True, message="Code verified successfully")

    log_event("VERIFY_FAIL", user_id=s.user_id, action=ACTION_AUTHENTICATE)
    return _fail(ERR_INVALID_CODE)


def _consume_backup(s: MfaSettings, code: str) -> bool:
    """Burn one backup code with a conditional write.

    A lost write is retried once against a fresh read, so a concurrent
    consumption of a different code does not reject this one.
    """
    current: Optional[MfaSettings] = s
    for attempt in range(BACKUP_WRITE_ATTEMPTS):
        if current is None or not current.is_enabled:
            return False
        matched, remaining = consume_backup_code(current.backup_codes or [], code)
        if not matched:
            return False
        if replace_backup_codes(
            current.user_id,
            expected_version=current.version,
            backup_codes=remaining,
        ):
            log_event("BACKUP_CONSUME", user_id=current.user_id, remaining=len(remaining))
            record_audit(current.user_id, "mfa_backup_consume", f"remaining={len(remaining)}")
            return True
        log_event("BACKUP_RACE", user_id=current.user_id, attempt=attempt + 1)
        current = get_mfa_settings(current.user_id)
    return False


def verify_code(
    user_id: str,
    code: str,
    *,
    action: Optional[str] = None,
    now: Optional[float] = None,
) -> VerificationResult:
    """Check a submitted code for a user.

    action "enable" confirms a pending enrollment (TOTP only). No action or
    "authenticate" is a login check against an enabled record: TOTP first,
    then a one-time backup code. Expected failures come back as results;
    only StorageError is raised.
    """
    c = (code or "").strip()
    if not c:
        return _fail(ERR_CODE_REQUIRED)

    act = (action or "").strip().lower() or ACTION_AUTHENTICATE
    if act not in {ACTION_ENABLE, ACTION_AUTHENTICATE}:
        return _fail(ERR_INVALID_ACTION)

    s = get_mfa_settings(user_id)
    if s is None or _state_of(s) is MfaState.NOT_CONFIGURED:
        return _fail(ERR_NOT_CONFIGURED)

    if act == ACTION_ENABLE:
        return _confirm(s, c, now)
    return _authenticate(s, c, now)


def disable(user_id: str) -> None:
    clear_mfa_settings(user_id)
    log_event("DISABLE", user_id=user_id)
    record_audit(user_id, "mfa_disable")

from __future__ import annotations
from typing import Any

SECRET_KEYS = {
    "password", "p_password",
    "access_token", "refresh_token",
    "apikey", "authorization",
}

# Contact fields stay recognizable in logs, but never in full
EMAIL_KEYS = {"email", "p_email"}
PHONE_KEYS = {"phone", "p_phone"}

REDACTED = "**********"


def mask_email(email: str) -> str:
    local, sep, domain = email.partition("@")
    if not sep:
        return REDACTED
    head = local[:1] if local else ""
    return f"{head}***@{domain}"


def mask_phone(phone: str) -> str:
    if len(phone) <= 4:
        return REDACTED
    return f"{'*' * (len(phone) - 4)}{phone[-4:]}"


def redact_payload(value: Any, *, extra_keys: set[str] | None = None) -> Any:
    """Copy of `value` safe to pass to log calls: secrets masked, contact data partially masked."""
    secrets = set(SECRET_KEYS)
    if extra_keys:
        secrets |= {k.lower() for k in extra_keys}

    def _walk(v: Any) -> Any:
        if isinstance(v, dict):
            out = {}
            for k, vv in v.items():
                key = k.lower() if isinstance(k, str) else k
                if key in secrets:
                    out[k] = REDACTED
                elif key in EMAIL_KEYS and isinstance(vv, str):
                    out[k] = mask_email(vv)
                elif key in PHONE_KEYS and isinstance(vv, str):
                    out[k] = mask_phone(vv)
                else:
                    out[k] = _walk(vv)
            return out
        if isinstance(v, (list, tuple)):
            return [_walk(x) for x in v]
        return v

    return _walk(value)

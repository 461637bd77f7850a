from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class BackendErrorKind(str, Enum):
    FUNCTION_NOT_FOUND = "function_not_found"
    FOREIGN_KEY_VIOLATION = "foreign_key_violation"
    IDENTITY_NOT_VISIBLE = "identity_not_visible"
    DUPLICATE_EMAIL = "duplicate_email"
    INVALID_EMAIL = "invalid_email"
    WEAK_PASSWORD = "weak_password"
    UNIQUE_VIOLATION = "unique_violation"
    TRANSPORT = "transport"
    UNKNOWN = "unknown"


# PostgREST: PGRST202 (no function matches); Postgres: 42883 (undefined_function)
FUNCTION_NOT_FOUND_CODES = {"PGRST202", "42883"}
FOREIGN_KEY_CODES = {"23503"}
UNIQUE_CODES = {"23505"}

# GoTrue error_code values
DUPLICATE_EMAIL_CODES = {"user_already_exists", "email_exists"}
INVALID_EMAIL_CODES = {"email_address_invalid"}
WEAK_PASSWORD_CODES = {"weak_password"}


@dataclass(frozen=True)
class BackendError:
    kind: BackendErrorKind
    message: str
    code: str | None = None
    status_code: int | None = None
    details: Any = None

    @property
    def is_function_not_found(self) -> bool:
        return self.kind is BackendErrorKind.FUNCTION_NOT_FOUND

    @property
    def is_consistency_lag(self) -> bool:
        return self.kind in (BackendErrorKind.IDENTITY_NOT_VISIBLE, BackendErrorKind.FOREIGN_KEY_VIOLATION)

    def as_log_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "code": self.code,
            "status_code": self.status_code,
            "message": self.message,
        }


def classify_backend_error(
    *,
    code: str | None,
    message: str | None,
    status_code: int | None = None,
) -> BackendErrorKind:
    """
    Map a raw backend error to a BackendErrorKind.

    Codes win over text. Message matching is kept here as a fallback for
    backends that return a bare message (e.g. a `{"success": false}` body from
    an RPC, or older auth servers without `error_code`).
    """
    c = (code or "").strip()
    msg = (message or "").lower()

    if c in FUNCTION_NOT_FOUND_CODES:
        return BackendErrorKind.FUNCTION_NOT_FOUND
    if c in FOREIGN_KEY_CODES:
        return BackendErrorKind.FOREIGN_KEY_VIOLATION
    if c in UNIQUE_CODES:
        return BackendErrorKind.UNIQUE_VIOLATION
    if c in DUPLICATE_EMAIL_CODES:
        return BackendErrorKind.DUPLICATE_EMAIL
    if c in WEAK_PASSWORD_CODES:
        return BackendErrorKind.WEAK_PASSWORD
    if c in INVALID_EMAIL_CODES:
        return BackendErrorKind.INVALID_EMAIL

    if "could not find the function" in msg:
        return BackendErrorKind.FUNCTION_NOT_FOUND
    if "does not exist in auth.users" in msg:
        return BackendErrorKind.IDENTITY_NOT_VISIBLE
    if "foreign key" in msg or "_fkey" in msg:
        return BackendErrorKind.FOREIGN_KEY_VIOLATION
    if "user already registered" in msg:
        return BackendErrorKind.DUPLICATE_EMAIL
    if "password should be at least" in msg:
        return BackendErrorKind.WEAK_PASSWORD
    if "invalid email" in msg or "unable to validate email address" in msg:
        return BackendErrorKind.INVALID_EMAIL
    if "duplicate key" in msg:
        return BackendErrorKind.UNIQUE_VIOLATION

    return BackendErrorKind.UNKNOWN


def backend_error_from_body(body: Any, *, status_code: int | None = None) -> BackendError:
    """
    Build a BackendError from a PostgREST or GoTrue error body.

    PostgREST: {"code", "message", "details", "hint"}
    GoTrue:    {"code": 422, "error_code", "msg"} or {"error", "error_description"}
    """
    if not isinstance(body, dict):
        message = str(body) if body else f"HTTP {status_code}"
        return BackendError(
            kind=classify_backend_error(code=None, message=message, status_code=status_code),
            message=message,
            status_code=status_code,
        )

    raw_code = body.get("error_code") or body.get("code")
    code = str(raw_code) if raw_code is not None else None
    message = (
        body.get("message")
        or body.get("msg")
        or body.get("error_description")
        or body.get("error")
        or f"HTTP {status_code}"
    )
    message = str(message)

    return BackendError(
        kind=classify_backend_error(code=code, message=message, status_code=status_code),
        message=message,
        code=code,
        status_code=status_code,
        details=body.get("details") or body.get("hint"),
    )

import random

from onboarding.backend.errors import BackendError, BackendErrorKind

RETRYABLE_STATUS = {408, 429, 500, 502, 503, 504}


def compute_backoff_seconds(attempt: int, base: int = 10, cap: int = 900) -> int:
    # exponential backoff with jitter; background work only, request paths use fixed delays
    exp = min(cap, base * (2 ** max(0, attempt - 1)))
    jitter = random.randint(0, min(30, exp // 3))
    return exp + jitter


def is_retryable(error: BackendError) -> bool:
    """Whether a background job should try the same call again later."""
    if error.kind in (BackendErrorKind.TRANSPORT, BackendErrorKind.FOREIGN_KEY_VIOLATION, BackendErrorKind.IDENTITY_NOT_VISIBLE):
        return True
    if error.kind is BackendErrorKind.FUNCTION_NOT_FOUND:
        return False
    return error.status_code in RETRYABLE_STATUS

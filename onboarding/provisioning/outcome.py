from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from onboarding.backend.errors import BackendError
from onboarding.provisioning.errors import MSG_DEGRADED, OutcomeKind, ProvisioningError, ValidationFailed


log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProvisioningOutcome:
    ok: bool
    kind: OutcomeKind
    user_id: str | None = None
    error: str | None = None
    field: str | None = None
    conflict: bool = False

    @property
    def is_degraded(self) -> bool:
        return self.kind is OutcomeKind.DEGRADED_SUCCESS

    def to_public(self) -> dict[str, Any]:
        # Wire shape: {ok, userId?, error?}
        out: dict[str, Any] = {"ok": self.ok}
        if self.user_id is not None:
            out["userId"] = self.user_id
        if self.error is not None:
            out["error"] = self.error
        return out


def success(user_id: str) -> ProvisioningOutcome:
    return ProvisioningOutcome(ok=True, kind=OutcomeKind.SUCCESS, user_id=user_id)


def degraded(user_id: str, *, entity: str, cause: BackendError | str | None = None) -> ProvisioningOutcome:
    """Identity exists but the domain entity is missing or incomplete."""
    raw = cause.as_log_dict() if isinstance(cause, BackendError) else cause
    log.error("provisioning degraded: user_id=%s entity=%s needs manual review cause=%s", user_id, entity, raw)
    return ProvisioningOutcome(ok=True, kind=OutcomeKind.DEGRADED_SUCCESS, user_id=user_id, error=MSG_DEGRADED)


def halted(exc: ProvisioningError) -> ProvisioningOutcome:
    if exc.cause is not None:
        log.warning("provisioning halted: kind=%s cause=%s", exc.kind.value, exc.cause.as_log_dict())
    else:
        log.info("provisioning halted: kind=%s message=%s", exc.kind.value, exc.message)
    if isinstance(exc, ValidationFailed):
        return ProvisioningOutcome(ok=False, kind=exc.kind, error=exc.message, field=exc.field, conflict=exc.conflict)
    return ProvisioningOutcome(ok=False, kind=exc.kind, error=exc.message)

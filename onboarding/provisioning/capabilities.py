from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from onboarding.backend.client import BackendClient, BackendResult
from onboarding.backend.errors import BackendError, BackendErrorKind


log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RpcCapability:
    """
    Ordered candidate RPC names for one stage.

    The first name is the canonical function; the rest are older/alternate
    names that backends deployed over time may expose instead. Precedence is
    list order.
    """
    stage: str
    candidates: tuple[str, ...]

    @property
    def canonical(self) -> str:
        return self.candidates[0]

    @property
    def fallbacks(self) -> tuple[str, ...]:
        return self.candidates[1:]

    def starting_at(self, name: str) -> "RpcCapability":
        idx = self.candidates.index(name)
        return RpcCapability(stage=self.stage, candidates=self.candidates[idx:])


@dataclass(frozen=True)
class RpcCallResult:
    ok: bool
    data: Any = None
    error: BackendError | None = None
    function_used: str | None = None
    # candidates that answered "function not found", in probe order
    missing: tuple[str, ...] = ()

    @property
    def unavailable(self) -> bool:
        """No candidate resolved on this backend."""
        return not self.ok and self.function_used is None


async def call_first_available(
    client: BackendClient,
    capability: RpcCapability,
    params: dict[str, Any],
) -> RpcCallResult:
    """
    Probe `capability.candidates` in order and return the first result whose
    function resolved, successful or not.

    Only FUNCTION_NOT_FOUND moves on to the next candidate; any other error
    belongs to the function that resolved and is returned as-is.
    """
    missing: list[str] = []
    last: BackendResult | None = None

    for name in capability.candidates:
        result = await client.rpc(name, params)
        last = result
        if result.ok:
            return RpcCallResult(ok=True, data=result.data, function_used=name, missing=tuple(missing))

        assert result.error is not None
        if result.error.is_function_not_found:
            missing.append(name)
            log.debug("rpc %s not available (stage=%s), trying next candidate", name, capability.stage)
            continue

        return RpcCallResult(ok=False, data=result.data, error=result.error, function_used=name, missing=tuple(missing))

    error = last.error if last is not None and last.error is not None else BackendError(
        kind=BackendErrorKind.FUNCTION_NOT_FOUND,
        message=f"None of the functions worked: {', '.join(capability.candidates)}",
    )
    return RpcCallResult(ok=False, error=error, missing=tuple(missing))

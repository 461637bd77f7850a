from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from onboarding.backend.client import BackendClient
from onboarding.backend.errors import BackendError
from onboarding.provisioning.capabilities import RpcCapability, call_first_available
from onboarding.provisioning.policy import ProvisioningPolicy, Sleep, default_sleep


log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProfileEnsureReport:
    ensured: bool
    attempts: int
    function_used: str | None = None
    last_error: BackendError | None = None


class ProfileProvisioner:
    """
    Makes sure a user profile row exists for a freshly created identity.

    The identity may not be visible yet to the profile function's foreign key
    check, so consistency-lag errors are retried on a fixed delay. This stage
    never fails the registration: the domain registrar re-runs ensure on a
    foreign key error and its fallback path writes the profile row itself.
    """

    def __init__(self, client: BackendClient, *, policy: ProvisioningPolicy, sleep: Sleep = default_sleep):
        self._client = client
        self._policy = policy
        self._sleep = sleep

    async def ensure(self, capability: RpcCapability, params: dict[str, Any]) -> ProfileEnsureReport:
        user_id = params.get("p_user_id")
        max_attempts = self._policy.profile_max_attempts
        attempts = 0
        last_error: BackendError | None = None

        while attempts < max_attempts:
            attempts += 1
            result = await call_first_available(self._client, capability, params)

            if result.ok:
                if result.missing:
                    log.info("ensure profile: %s unavailable, used %s", ", ".join(result.missing), result.function_used)
                return ProfileEnsureReport(ensured=True, attempts=attempts, function_used=result.function_used)

            assert result.error is not None
            last_error = result.error

            if result.unavailable:
                log.warning("ensure profile: no function available (%s) user_id=%s", ", ".join(result.missing), user_id)
                break

            # Stop probing names already known to be missing
            if result.function_used != capability.canonical:
                capability = capability.starting_at(result.function_used)

            if last_error.is_consistency_lag and attempts < max_attempts:
                log.warning(
                    "ensure profile: attempt %d/%d hit consistency lag user_id=%s, retrying in %.0fms",
                    attempts, max_attempts, user_id, self._policy.profile_retry_delay_s * 1000,
                )
                await self._sleep(self._policy.profile_retry_delay_s)
                continue

            log.warning("ensure profile: giving up after %d attempt(s) user_id=%s error=%s", attempts, user_id, last_error.as_log_dict())
            break

        return ProfileEnsureReport(ensured=False, attempts=attempts, last_error=last_error)

    async def ensure_once(self, capability: RpcCapability, params: dict[str, Any]) -> ProfileEnsureReport:
        """Single attempt through the fallback chain, no consistency retries."""
        result = await call_first_available(self._client, capability, params)
        if result.ok:
            return ProfileEnsureReport(ensured=True, attempts=1, function_used=result.function_used)

        log.warning("ensure profile (single attempt) failed user_id=%s error=%s", params.get("p_user_id"), result.error.as_log_dict() if result.error else None)
        return ProfileEnsureReport(ensured=False, attempts=1, function_used=result.function_used, last_error=result.error)

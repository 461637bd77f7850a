from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Literal

from onboarding.backend.client import BackendClient
from onboarding.backend.errors import BackendError, BackendErrorKind
from onboarding.provisioning.capabilities import call_first_available
from onboarding.provisioning.descriptors.base import (
    CREATE_ACCOUNT,
    EntityDescriptor,
    RegistrationContext,
    financial_account_params,
)
from onboarding.provisioning.policy import ProvisioningPolicy, Sleep, default_sleep
from onboarding.provisioning.profile import ProfileProvisioner


log = logging.getLogger(__name__)

RegistrationPath = Literal["atomic", "fallback"]

# (user_id, account_type) -> schedules a background retry
FinancialAccountReconciler = Callable[[str, str], Awaitable[None]]


@dataclass(frozen=True)
class DomainRegistration:
    registered: bool
    path: RegistrationPath | None = None
    function_used: str | None = None
    # None when the atomic RPC owns account creation
    financial_account_created: bool | None = None
    error: BackendError | None = None


class DomainRegistrar:
    """
    Registers the business entity and its financial account.

    Prefers the atomic register RPC. On an old backend without it, writes
    the entity directly and creates the financial account best-effort.
    """

    def __init__(
        self,
        client: BackendClient,
        *,
        profiles: ProfileProvisioner,
        policy: ProvisioningPolicy,
        sleep: Sleep = default_sleep,
        reconcile_financial_account: FinancialAccountReconciler | None = None,
    ):
        self._client = client
        self._profiles = profiles
        self._policy = policy
        self._sleep = sleep
        self._reconcile = reconcile_financial_account

    async def register(self, descriptor: EntityDescriptor, ctx: RegistrationContext, user_id: str) -> DomainRegistration:
        params = descriptor.register_params(ctx, user_id)
        result = await call_first_available(self._client, descriptor.register, params)

        if not result.ok and result.error is not None and result.error.kind is BackendErrorKind.FOREIGN_KEY_VIOLATION:
            # Profile row not visible yet: re-ensure once, then one more register attempt
            log.warning(
                "register %s: foreign key violation user_id=%s, retrying once in %.0fms",
                descriptor.kind, user_id, self._policy.domain_retry_delay_s * 1000,
            )
            await self._sleep(self._policy.domain_retry_delay_s)
            await self._profiles.ensure_once(descriptor.ensure_profile, descriptor.ensure_profile_params(ctx, user_id))

            assert result.function_used is not None
            result = await call_first_available(self._client, descriptor.register.starting_at(result.function_used), params)

        if result.ok:
            log.info("register %s: user_id=%s via %s data=%s", descriptor.kind, user_id, result.function_used, result.data)
            return DomainRegistration(registered=True, path="atomic", function_used=result.function_used)

        assert result.error is not None
        if result.unavailable:
            log.warning("register %s: no atomic function (%s), using fallback writes", descriptor.kind, ", ".join(result.missing))
            return await self._register_fallback(descriptor, ctx, user_id)

        log.error("register %s failed user_id=%s via %s error=%s", descriptor.kind, user_id, result.function_used, result.error.as_log_dict())
        return DomainRegistration(registered=False, path="atomic", function_used=result.function_used, error=result.error)

    async def _register_fallback(self, descriptor: EntityDescriptor, ctx: RegistrationContext, user_id: str) -> DomainRegistration:
        write = await descriptor.write_entity_fallback(self._client, ctx, user_id)
        if not write.ok:
            assert write.error is not None
            log.error("register %s fallback write failed user_id=%s error=%s", descriptor.kind, user_id, write.error.as_log_dict())
            return DomainRegistration(registered=False, path="fallback", error=write.error)

        created = await self.create_financial_account(user_id, descriptor.account_type)
        return DomainRegistration(registered=True, path="fallback", financial_account_created=created)

    async def create_financial_account(self, user_id: str, account_type: str) -> bool:
        """
        Best-effort. A missing account is fixed by the reconciliation worker,
        never by failing the interactive registration.
        """
        result = await call_first_available(self._client, CREATE_ACCOUNT, financial_account_params(user_id, account_type))
        if result.ok:
            return True

        log.warning(
            "financial account not created user_id=%s type=%s error=%s",
            user_id, account_type, result.error.as_log_dict() if result.error else None,
        )
        if self._reconcile is not None:
            try:
                await self._reconcile(user_id, account_type)
            except Exception:
                log.exception("financial account reconciliation could not be scheduled user_id=%s", user_id)
        return False

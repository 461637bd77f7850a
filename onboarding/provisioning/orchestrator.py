from __future__ import annotations

import logging

from onboarding.backend.client import BackendClient
from onboarding.core.config import settings
from onboarding.core.telemetry import get_tracer
from onboarding.provisioning import outcome as outcomes
from onboarding.provisioning.descriptors.base import EntityDescriptor, RegistrationContext
from onboarding.provisioning.descriptors.registry import get_descriptor
from onboarding.provisioning.domain import DomainRegistrar, FinancialAccountReconciler
from onboarding.provisioning.errors import MSG_UNEXPECTED, FatalProvisioningError, ProvisioningError
from onboarding.provisioning.identity import IdentityAccountCreator
from onboarding.provisioning.outcome import ProvisioningOutcome
from onboarding.provisioning.phone import normalize_phone_to_canonical
from onboarding.provisioning.policy import ProvisioningPolicy, Sleep, default_sleep
from onboarding.provisioning.precheck import AvailabilityPrechecker
from onboarding.provisioning.profile import ProfileProvisioner
from onboarding.schemas.registration import RegisterDeliveryAgentPayload, RegisterRestaurantPayload


log = logging.getLogger(__name__)
tracer = get_tracer(__name__)


class RegistrationOrchestrator:
    """
    Precheck -> signup -> ensure profile -> register domain entity.

    Everything before signup may halt with ok=False. Once the identity exists
    the request always runs to completion and ends in success or degraded
    success, never in a discarded account.
    """

    def __init__(
        self,
        client: BackendClient,
        *,
        policy: ProvisioningPolicy | None = None,
        sleep: Sleep = default_sleep,
        reconcile_financial_account: FinancialAccountReconciler | None = None,
        email_redirect_url: str | None = None,
        default_country_code: str | None = None,
    ):
        self._policy = policy or ProvisioningPolicy.from_settings()
        self._country_code = default_country_code or settings.default_country_code
        self.prechecker = AvailabilityPrechecker(client)
        self.identity = IdentityAccountCreator(client, redirect_to=email_redirect_url)
        self.profiles = ProfileProvisioner(client, policy=self._policy, sleep=sleep)
        self.registrar = DomainRegistrar(
            client,
            profiles=self.profiles,
            policy=self._policy,
            sleep=sleep,
            reconcile_financial_account=reconcile_financial_account,
        )

    def build_context(self, payload) -> RegistrationContext:
        return RegistrationContext(
            payload=payload,
            email=payload.email.strip(),
            canonical_phone=normalize_phone_to_canonical(payload.phone, default_country_code=self._country_code),
        )

    async def register(self, descriptor: EntityDescriptor, payload) -> ProvisioningOutcome:
        with tracer.start_as_current_span("provisioning.register") as span:
            span.set_attribute("entity.kind", descriptor.kind)
            result = await self._register(descriptor, payload)
            span.set_attribute("outcome.kind", result.kind.value)
            return result

    async def _register(self, descriptor: EntityDescriptor, payload) -> ProvisioningOutcome:
        try:
            ctx = self.build_context(payload)

            with tracer.start_as_current_span("provisioning.precheck"):
                await self.prechecker.run(descriptor.availability_checks(ctx))

            with tracer.start_as_current_span("provisioning.signup"):
                user_id = await self.identity.create(
                    email=ctx.email,
                    password=payload.password,
                    metadata=descriptor.signup_metadata(ctx),
                )
        except ProvisioningError as e:
            return outcomes.halted(e)
        except Exception:
            log.exception("registration %s crashed before signup", descriptor.kind)
            return outcomes.halted(FatalProvisioningError(MSG_UNEXPECTED))

        # Identity exists from here on: run to completion
        try:
            return await self._provision(descriptor, ctx, user_id)
        except Exception as e:
            log.exception("registration %s crashed after signup user_id=%s", descriptor.kind, user_id)
            return outcomes.degraded(user_id, entity=descriptor.kind, cause=f"{type(e).__name__}: {e}")

    async def _provision(self, descriptor: EntityDescriptor, ctx: RegistrationContext, user_id: str) -> ProvisioningOutcome:
        with tracer.start_as_current_span("provisioning.ensure_profile") as span:
            report = await self.profiles.ensure(descriptor.ensure_profile, descriptor.ensure_profile_params(ctx, user_id))
            span.set_attribute("profile.ensured", report.ensured)
            span.set_attribute("profile.attempts", report.attempts)

        with tracer.start_as_current_span("provisioning.register_entity") as span:
            registration = await self.registrar.register(descriptor, ctx, user_id)
            span.set_attribute("entity.registered", registration.registered)
            if registration.path:
                span.set_attribute("entity.path", registration.path)

        if not registration.registered:
            return outcomes.degraded(user_id, entity=descriptor.kind, cause=registration.error)

        log.info("registration %s complete user_id=%s path=%s", descriptor.kind, user_id, registration.path)
        return outcomes.success(user_id)


async def register_restaurant(
    client: BackendClient,
    payload: RegisterRestaurantPayload,
    **kwargs,
) -> ProvisioningOutcome:
    return await RegistrationOrchestrator(client, **kwargs).register(get_descriptor("restaurant"), payload)


async def register_delivery_agent(
    client: BackendClient,
    payload: RegisterDeliveryAgentPayload,
    **kwargs,
) -> ProvisioningOutcome:
    return await RegistrationOrchestrator(client, **kwargs).register(get_descriptor("delivery_agent"), payload)

from __future__ import annotations

from typing import Any

from onboarding.backend.client import BackendClient, BackendResult
from onboarding.provisioning.capabilities import RpcCapability
from onboarding.provisioning.descriptors.base import (
    CHECK_EMAIL,
    CHECK_PHONE,
    ENSURE_PROFILE,
    PENDING,
    AvailabilityCheck,
    EntityDescriptor,
    RegistrationContext,
)
from onboarding.provisioning.errors import MSG_EMAIL_TAKEN, MSG_PHONE_TAKEN
from onboarding.schemas.registration import RegisterDeliveryAgentPayload


REGISTER_DELIVERY_AGENT = RpcCapability(
    stage="register_delivery_agent",
    candidates=("register_delivery_agent_v2", "register_delivery_agent"),
)

USERS_TABLE = "users"
PROFILES_TABLE = "delivery_agent_profiles"
DEFAULT_VEHICLE_TYPE = "motocicleta"


class DeliveryAgentDescriptor(EntityDescriptor):
    kind = "delivery_agent"
    account_type = "delivery_agent"
    ensure_profile = ENSURE_PROFILE
    register = REGISTER_DELIVERY_AGENT

    def availability_checks(self, ctx: RegistrationContext) -> list[AvailabilityCheck]:
        return [
            AvailabilityCheck("email", CHECK_EMAIL, {"p_email": ctx.email}, MSG_EMAIL_TAKEN),
            AvailabilityCheck("phone", CHECK_PHONE, {"p_phone": ctx.canonical_phone}, MSG_PHONE_TAKEN),
        ]

    def signup_metadata(self, ctx: RegistrationContext) -> dict[str, Any]:
        p: RegisterDeliveryAgentPayload = ctx.payload
        return {
            "name": p.full_name,
            "first_name": p.first_name.strip(),
            "last_name": p.last_name.strip(),
            "phone": ctx.canonical_phone,
            "city": p.city.strip(),
            # backend normalizes this tag to delivery_agent
            "role": "repartidor",
        }

    def ensure_profile_params(self, ctx: RegistrationContext, user_id: str) -> dict[str, Any]:
        p: RegisterDeliveryAgentPayload = ctx.payload
        return {
            "p_user_id": user_id,
            "p_email": ctx.email,
            "p_phone": ctx.canonical_phone,
            "p_first_name": p.first_name.strip(),
            "p_last_name": p.last_name.strip(),
            "p_user_type": "delivery_agent",
        }

    def register_params(self, ctx: RegistrationContext, user_id: str) -> dict[str, Any]:
        p: RegisterDeliveryAgentPayload = ctx.payload
        return {
            "p_user_id": user_id,
            "p_email": ctx.email,
            "p_phone": ctx.canonical_phone,
            "p_first_name": p.first_name.strip(),
            "p_last_name": p.last_name.strip(),
            "p_city": p.city.strip(),
        }

    async def write_entity_fallback(self, client: BackendClient, ctx: RegistrationContext, user_id: str) -> BackendResult:
        p: RegisterDeliveryAgentPayload = ctx.payload

        # Profile row first: delivery_agent_profiles.user_id references users.id
        users = await client.upsert(
            USERS_TABLE,
            {
                "id": user_id,
                "email": ctx.email,
                "name": p.full_name,
                "phone": ctx.canonical_phone,
                "role": "delivery_agent",
            },
            on_conflict="id",
        )
        if not users.ok:
            return users

        return await client.upsert(
            PROFILES_TABLE,
            {
                "user_id": user_id,
                "status": PENDING,
                "account_state": PENDING,
                "vehicle_type": DEFAULT_VEHICLE_TYPE,
                "city": p.city.strip(),
            },
            on_conflict="user_id",
        )

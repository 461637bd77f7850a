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
from onboarding.provisioning.errors import MSG_EMAIL_TAKEN, MSG_PHONE_TAKEN, MSG_RESTAURANT_NAME_TAKEN
from onboarding.schemas.registration import RegisterRestaurantPayload


CHECK_RESTAURANT_NAME = RpcCapability(
    stage="check_restaurant_name",
    candidates=("check_restaurant_name_availability", "check_restaurant_name_available"),
)
REGISTER_RESTAURANT = RpcCapability(stage="register_restaurant", candidates=("register_restaurant_v2",))
CREATE_RESTAURANT = RpcCapability(stage="create_restaurant", candidates=("create_restaurant_public",))


class RestaurantDescriptor(EntityDescriptor):
    kind = "restaurant"
    account_type = "restaurant"
    ensure_profile = ENSURE_PROFILE
    register = REGISTER_RESTAURANT

    def availability_checks(self, ctx: RegistrationContext) -> list[AvailabilityCheck]:
        p: RegisterRestaurantPayload = ctx.payload
        return [
            AvailabilityCheck("email", CHECK_EMAIL, {"p_email": ctx.email}, MSG_EMAIL_TAKEN),
            AvailabilityCheck("phone", CHECK_PHONE, {"p_phone": ctx.canonical_phone}, MSG_PHONE_TAKEN),
            AvailabilityCheck("restaurant_name", CHECK_RESTAURANT_NAME, {"p_name": p.restaurant_name}, MSG_RESTAURANT_NAME_TAKEN),
        ]

    def signup_metadata(self, ctx: RegistrationContext) -> dict[str, Any]:
        p: RegisterRestaurantPayload = ctx.payload
        return {
            "name": p.owner_name,
            "phone": ctx.canonical_phone,
            "address": p.address,
            "role": "restaurant",
            "lat": p.location_lat,
            "lon": p.location_lon,
            "address_structured": p.address_structured,
        }

    def ensure_profile_params(self, ctx: RegistrationContext, user_id: str) -> dict[str, Any]:
        p: RegisterRestaurantPayload = ctx.payload
        return {
            "p_user_id": user_id,
            "p_email": ctx.email,
            "p_name": p.owner_name,
            "p_role": "restaurant",
            "p_phone": ctx.canonical_phone,
            "p_address": p.address,
            "p_lat": p.location_lat,
            "p_lon": p.location_lon,
            "p_address_structured": p.address_structured,
        }

    def register_params(self, ctx: RegistrationContext, user_id: str) -> dict[str, Any]:
        p: RegisterRestaurantPayload = ctx.payload
        return {
            "p_user_id": user_id,
            "p_email": ctx.email,
            "p_restaurant_name": p.restaurant_name,
            "p_phone": ctx.canonical_phone,
            "p_address": p.address,
            "p_location_lat": p.location_lat,
            "p_location_lon": p.location_lon,
            "p_location_place_id": p.location_place_id,
            "p_address_structured": p.address_structured,
        }

    async def write_entity_fallback(self, client: BackendClient, ctx: RegistrationContext, user_id: str) -> BackendResult:
        p: RegisterRestaurantPayload = ctx.payload
        return await client.rpc(
            CREATE_RESTAURANT.canonical,
            {
                "p_user_id": user_id,
                "p_name": p.restaurant_name,
                "p_status": PENDING,
                "p_location_lat": p.location_lat,
                "p_location_lon": p.location_lon,
                "p_location_place_id": p.location_place_id,
                "p_address": p.address,
                "p_address_structured": p.address_structured,
                "p_phone": ctx.canonical_phone,
                "p_online": False,
            },
        )

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from onboarding.backend.client import BackendClient, BackendResult
from onboarding.provisioning.capabilities import RpcCapability


ENSURE_PROFILE = RpcCapability(stage="ensure_profile", candidates=("ensure_user_profile_v2", "ensure_user_profile_public"))
CHECK_EMAIL = RpcCapability(stage="check_email", candidates=("check_email_availability",))
CHECK_PHONE = RpcCapability(stage="check_phone", candidates=("check_phone_availability",))
CREATE_ACCOUNT = RpcCapability(stage="create_account", candidates=("create_account_public",))

PENDING = "pending"


@dataclass(frozen=True)
class RegistrationContext:
    """Per-request values derived once and shared by every stage."""
    payload: Any
    email: str
    canonical_phone: str


@dataclass(frozen=True)
class AvailabilityCheck:
    field: str
    capability: RpcCapability
    params: dict[str, Any]
    taken_message: str


@runtime_checkable
class EntityDescriptor(Protocol):
    """
    Describes one registrable entity kind: its RPC capability tables and how
    a registration payload maps onto each call's parameters.
    """

    kind: str
    account_type: str
    ensure_profile: RpcCapability
    register: RpcCapability

    def availability_checks(self, ctx: RegistrationContext) -> list[AvailabilityCheck]:
        ...

    def signup_metadata(self, ctx: RegistrationContext) -> dict[str, Any]:
        ...

    def ensure_profile_params(self, ctx: RegistrationContext, user_id: str) -> dict[str, Any]:
        ...

    def register_params(self, ctx: RegistrationContext, user_id: str) -> dict[str, Any]:
        ...

    async def write_entity_fallback(
        self,
        client: BackendClient,
        ctx: RegistrationContext,
        user_id: str,
    ) -> BackendResult:
        """
        Used when no atomic register RPC exists. Writes the domain entity
        (status pending) without the financial account.
        """
        ...


def financial_account_params(user_id: str, account_type: str) -> dict[str, Any]:
    return {"p_user_id": user_id, "p_account_type": account_type, "p_balance": 0.0}

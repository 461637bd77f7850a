import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from onboarding.backend.client import BackendClient
from onboarding.backend.factory import get_backend_client
from onboarding.core.config import settings
from onboarding.provisioning.descriptors.registry import get_descriptor
from onboarding.provisioning.errors import OutcomeKind
from onboarding.provisioning.orchestrator import RegistrationOrchestrator
from onboarding.provisioning.outcome import ProvisioningOutcome
from onboarding.schemas.registration import (
    ProvisioningOutcomeOut,
    RegisterDeliveryAgentPayload,
    RegisterRestaurantPayload,
)
from onboarding.services.reconciliation import schedule_financial_account_reconciliation


router = APIRouter()
log = logging.getLogger(__name__)


def get_orchestrator(client: BackendClient = Depends(get_backend_client)) -> RegistrationOrchestrator:
    return RegistrationOrchestrator(
        client,
        reconcile_financial_account=schedule_financial_account_reconciliation,
        email_redirect_url=settings.email_redirect_url,
    )


def _status_code(outcome: ProvisioningOutcome) -> int:
    # Degraded success is still a success for the caller
    if outcome.ok:
        return 200
    if outcome.kind is OutcomeKind.VALIDATION:
        return 409 if outcome.conflict else 422
    return 502


def _respond(outcome: ProvisioningOutcome) -> JSONResponse:
    if outcome.is_degraded:
        log.warning("registration accepted in degraded state user_id=%s", outcome.user_id)
    return JSONResponse(status_code=_status_code(outcome), content=outcome.to_public())


@router.post("/registrations/restaurants", response_model=ProvisioningOutcomeOut, response_model_exclude_none=True)
async def register_restaurant(
    payload: RegisterRestaurantPayload,
    orchestrator: RegistrationOrchestrator = Depends(get_orchestrator),
):
    outcome = await orchestrator.register(get_descriptor("restaurant"), payload)
    return _respond(outcome)


@router.post("/registrations/delivery-agents", response_model=ProvisioningOutcomeOut, response_model_exclude_none=True)
async def register_delivery_agent(
    payload: RegisterDeliveryAgentPayload,
    orchestrator: RegistrationOrchestrator = Depends(get_orchestrator),
):
    outcome = await orchestrator.register(get_descriptor("delivery_agent"), payload)
    return _respond(outcome)

from fastapi import APIRouter

from onboarding.api.v1.endpoints.health import router as health_router
from onboarding.api.v1.endpoints.registrations import router as registrations_router


router = APIRouter(prefix="/v1")
router.include_router(health_router, tags=["health"])
router.include_router(registrations_router, tags=["registrations"])

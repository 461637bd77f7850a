import logging

from fastapi import FastAPI

from onboarding.api.v1.router import router as v1_router
from onboarding.core.telemetry import setup_telemetry

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = FastAPI(title="Onboarding API", version="0.1.0")

setup_telemetry(app)
app.include_router(v1_router)

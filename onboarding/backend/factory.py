from typing import AsyncIterator

from onboarding.backend.client import BackendClient
from onboarding.core.config import settings


def build_backend_client() -> BackendClient:
    return BackendClient(
        base_url=settings.backend_url,
        api_key=settings.backend_anon_key.get_secret_value(),
        timeout_seconds=settings.http_timeout_seconds,
    )


async def get_backend_client() -> AsyncIterator[BackendClient]:
    """
    FastAPI dependency: a fresh client per request, closed afterwards.
    Never cache this at module level.
    """
    client = build_backend_client()
    try:
        yield client
    finally:
        await client.aclose()

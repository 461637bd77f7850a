from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable

from onboarding.core.config import settings


Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class ProvisioningPolicy:
    """Fixed-delay retry budget. Worst case adds roughly 3s to a request."""
    profile_max_attempts: int = 10
    profile_retry_delay_s: float = 0.3
    domain_retry_delay_s: float = 0.35

    @classmethod
    def from_settings(cls) -> "ProvisioningPolicy":
        return cls(
            profile_max_attempts=settings.profile_ensure_max_attempts,
            profile_retry_delay_s=settings.profile_ensure_delay_ms / 1000,
            domain_retry_delay_s=settings.domain_retry_delay_ms / 1000,
        )


async def default_sleep(seconds: float) -> None:
    await asyncio.sleep(seconds)

from __future__ import annotations

import logging

from onboarding.backend.client import BackendClient
from onboarding.provisioning.capabilities import call_first_available
from onboarding.provisioning.descriptors.base import AvailabilityCheck
from onboarding.provisioning.errors import ValidationFailed


log = logging.getLogger(__name__)


class AvailabilityPrechecker:
    """
    Best-effort uniqueness checks run before signup.

    A check only blocks when its RPC answers `false`. Missing functions and
    errors are inconclusive: the backend's unique constraints remain the real
    guard, these checks only give earlier, field-specific feedback.
    """

    def __init__(self, client: BackendClient):
        self._client = client

    async def run(self, checks: list[AvailabilityCheck]) -> None:
        for check in checks:
            await self.check(check)

    async def check(self, check: AvailabilityCheck) -> bool | None:
        """Returns True/False when conclusive, None when inconclusive."""
        result = await call_first_available(self._client, check.capability, check.params)

        if result.unavailable:
            log.info("precheck %s inconclusive: no function available (%s)", check.field, ", ".join(result.missing))
            return None

        if not result.ok:
            assert result.error is not None
            log.warning("precheck %s inconclusive: %s failed: %s", check.field, result.function_used, result.error.as_log_dict())
            return None

        if result.data is False:
            raise ValidationFailed(check.taken_message, field=check.field, conflict=True)

        return True

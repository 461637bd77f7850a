from __future__ import annotations

import logging
from typing import Any

from onboarding.backend.client import BackendClient, extract_user_id
from onboarding.backend.errors import BackendErrorKind
from onboarding.provisioning.errors import (
    MSG_NO_USER_ID,
    MSG_SIGNUP_UNAVAILABLE,
    SIGNUP_VALIDATION_MESSAGES,
    FatalProvisioningError,
    ValidationFailed,
)
from onboarding.services.redaction import mask_email, redact_payload


log = logging.getLogger(__name__)


class IdentityAccountCreator:
    """
    Creates the auth identity. Never retried: signup is not idempotent from
    the client's side, a blind retry could create a second account.
    """

    def __init__(self, client: BackendClient, *, redirect_to: str | None = None):
        self._client = client
        self._redirect_to = redirect_to

    async def create(self, *, email: str, password: str, metadata: dict[str, Any]) -> str:
        log.info("signup: email=%s metadata=%s", mask_email(email), redact_payload(metadata))
        result = await self._client.sign_up(email=email, password=password, data=metadata, redirect_to=self._redirect_to)

        if not result.ok:
            assert result.error is not None
            err = result.error
            log.warning("signup failed: %s", err.as_log_dict())

            # Covers the race where the precheck passed and another request won
            message = SIGNUP_VALIDATION_MESSAGES.get(err.kind)
            if message is not None:
                raise ValidationFailed(
                    message,
                    field="email" if err.kind is not BackendErrorKind.WEAK_PASSWORD else "password",
                    conflict=err.kind is BackendErrorKind.DUPLICATE_EMAIL,
                    cause=err,
                )

            if err.kind is BackendErrorKind.TRANSPORT:
                raise FatalProvisioningError(MSG_SIGNUP_UNAVAILABLE, cause=err)
            raise FatalProvisioningError(err.message, cause=err)

        user_id = extract_user_id(result.data)
        if not user_id:
            log.error("signup returned no user id: data=%s", redact_payload(result.data))
            raise FatalProvisioningError(MSG_NO_USER_ID)

        log.info("signup: created user_id=%s", user_id)
        return user_id

from __future__ import annotations

import asyncio
import logging

from onboarding.backend.client import BackendClient
from onboarding.backend.errors import BackendErrorKind
from onboarding.core.config import settings
from onboarding.provisioning.capabilities import call_first_available
from onboarding.provisioning.descriptors.base import CREATE_ACCOUNT, financial_account_params
from onboarding.services.retry import is_retryable


log = logging.getLogger(__name__)

RECONCILE_TASK = "worker.tasks.reconcile_financial_account"


class ReconciliationRetry(Exception):
    """Raised when the account could not be created yet but a later attempt may succeed."""


PUBLISH_RETRY_POLICY = {"max_retries": 1, "interval_start": 0, "interval_step": 0.2, "interval_max": 0.5}


def _publish_reconciliation(user_id: str, account_type: str) -> None:
    # Imported lazily so the API process does not need a broker at import time
    from worker.celery_app import celery

    celery.send_task(
        RECONCILE_TASK,
        args=[user_id, account_type],
        queue="reconciliation",
        retry=True,
        retry_policy=PUBLISH_RETRY_POLICY,
    )


async def schedule_financial_account_reconciliation(user_id: str, account_type: str) -> None:
    """
    Enqueue a reconciliation task without blocking the event loop.

    The broker publish runs in a worker thread and is abandoned after
    `reconcile_publish_timeout_seconds`; the caller sees the TimeoutError.
    """
    await asyncio.wait_for(
        asyncio.to_thread(_publish_reconciliation, user_id, account_type),
        timeout=settings.reconcile_publish_timeout_seconds,
    )
    log.info("scheduled financial account reconciliation user_id=%s type=%s", user_id, account_type)


async def reconcile_financial_account(client: BackendClient, user_id: str, account_type: str) -> bool:
    """
    Create the missing financial account for `user_id`.

    Returns True when the account exists afterwards, False when retrying is
    pointless. Raises ReconciliationRetry for transient failures.
    """
    result = await call_first_available(client, CREATE_ACCOUNT, financial_account_params(user_id, account_type))
    if result.ok:
        log.info("reconciled financial account user_id=%s type=%s", user_id, account_type)
        return True

    assert result.error is not None
    if result.error.kind is BackendErrorKind.UNIQUE_VIOLATION:
        log.info("financial account already present user_id=%s", user_id)
        return True

    if is_retryable(result.error):
        raise ReconciliationRetry(result.error.message)

    log.error("financial account reconciliation failed user_id=%s error=%s", user_id, result.error.as_log_dict())
    return False

import asyncio
import logging

from worker.celery_app import celery
from onboarding.backend.factory import build_backend_client
from onboarding.services.reconciliation import ReconciliationRetry, reconcile_financial_account
from onboarding.services.retry import compute_backoff_seconds


log = logging.getLogger(__name__)


async def _reconcile_financial_account(user_id: str, account_type: str) -> bool:
    async with build_backend_client() as client:
        return await reconcile_financial_account(client, user_id, account_type)


@celery.task(name="worker.tasks.reconcile_financial_account", bind=True, max_retries=5)
def reconcile_financial_account_task(self, user_id: str, account_type: str) -> bool:
    try:
        return asyncio.run(_reconcile_financial_account(user_id, account_type))
    except ReconciliationRetry as e:
        countdown = compute_backoff_seconds(self.request.retries + 1)
        log.warning("reconcile user_id=%s: %s (retry in %ds)", user_id, e, countdown)
        raise self.retry(exc=e, countdown=countdown)

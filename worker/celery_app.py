from celery import Celery
from onboarding.core.config import settings

celery = Celery(
    "onboarding-worker",
    broker=settings.rabbitmq_url,
    backend=settings.redis_url,
    include=["worker.tasks"],
)

celery.conf.update(
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_default_queue="default",
    broker_connection_timeout=settings.broker_connection_timeout_seconds,
    task_routes={
        "worker.tasks.reconcile_financial_account": {"queue": "reconciliation"},
    },
)

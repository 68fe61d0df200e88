"""Celery beat schedule configuration."""
from __future__ import annotations

from core.config import settings


CELERY_BEAT_SCHEDULE = {
    # completed 但履约失败的交易定期补偿
    "payments-reconcile-fulfillments": {
        "task": "payments.reconcile_fulfillments",
        "schedule": float(settings.celery.reconcile_interval_seconds),
        "options": {"queue": "payments"},
    },
}

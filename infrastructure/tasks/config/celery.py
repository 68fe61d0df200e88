"""Celery 应用配置

补偿任务统一走 payments 队列；开发/测试环境下任务同步执行（eager）。
"""
from __future__ import annotations

from celery import Celery
from kombu import Queue

from core.config import Settings, settings
from core.logging_config import get_logger
from .beat import CELERY_BEAT_SCHEDULE


logger = get_logger(__name__)

CELERY_IMPORTS = ("infrastructure.tasks.tasks",)

_EAGER_ENVIRONMENTS = frozenset({"development", "dev", "test", "testing"})


def create_celery_app(config: Settings) -> Celery:
    app = Celery("temple_payments")
    app.conf.update(
        broker_url=config.celery.broker_url,
        result_backend=config.celery.result_backend,
        task_serializer="json",
        result_serializer="json",
        accept_content=["json"],
        timezone="UTC",
        enable_utc=True,
        # 执行完成后再 ack，worker 异常退出时任务重新投递
        task_acks_late=True,
        task_reject_on_worker_lost=True,
        result_expires=3600,
        worker_prefetch_multiplier=1,
        task_default_queue="default",
        task_queues=(Queue("default"), Queue("payments")),
        task_routes={"payments.*": {"queue": "payments"}},
        beat_schedule=CELERY_BEAT_SCHEDULE,
        imports=CELERY_IMPORTS,
        task_always_eager=(config.ENVIRONMENT or "").lower() in _EAGER_ENVIRONMENTS,
    )
    return app


celery_app = create_celery_app(settings)


@celery_app.on_after_configure.connect
def _log_configuration(sender, **kwargs):
    logger.info(
        "celery_configured",
        broker=sender.conf.broker_url,
        eager=sender.conf.task_always_eager,
        queues=[q.name for q in sender.conf.task_queues],
    )

"""Celery 配置：应用实例与周期任务表"""
from .beat import CELERY_BEAT_SCHEDULE
from .celery import CELERY_IMPORTS, celery_app, create_celery_app

__all__ = ["celery_app", "create_celery_app", "CELERY_IMPORTS", "CELERY_BEAT_SCHEDULE"]

"""Shared Celery task base classes."""
from .base_task import BaseTask

__all__ = ["BaseTask"]

"""Convenience entry point for running the Celery worker with beat embedded.

Most deployments will invoke the standard Celery CLI
(``celery -A infrastructure.tasks worker -B -Q default,payments``); this
script keeps Procfile-style runners straightforward.
"""
from __future__ import annotations

from .config.celery import celery_app


def main() -> None:
    celery_app.worker_main(
        argv=["worker", "--beat", "--hostname=payments@%h", "--queues=default,payments", "--loglevel=INFO"]
    )


if __name__ == "__main__":
    main()

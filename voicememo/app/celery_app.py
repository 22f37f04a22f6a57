"""
Celery app for background memo processing, kept free of Flask imports.
- Broker/Backend: Redis (from AppConfig.web)
- Tasks live in: voicememo.app.orchestration

Workers run with:
  celery -A voicememo.app.celery_app.celery worker --loglevel=info

Workers and the web process only share memos through the store, so the
backend must be redis or filesystem on a shared volume. FileSystemMemoStore
re-reads files whose mtime/size changed, so worker writes become visible to
the web process on the next read.
"""

from __future__ import annotations

from celery import Celery
from loguru import logger

from voicememo.config import AppConfig, get_config


def make_celery(cfg: AppConfig) -> Celery:
    """Build the Celery app from configuration."""
    app = Celery(
        "voice-memo",
        broker=cfg.web.celery_broker_url,
        backend=cfg.web.celery_result_backend,
        include=["voicememo.app.orchestration"],
    )
    app.conf.update(
        task_serializer="json",
        result_serializer="json",
        accept_content=["json"],
        timezone="UTC",
        enable_utc=True,
        task_time_limit=cfg.web.celery_task_time_limit,
    )
    if cfg.web.task_backend == "celery" and cfg.store.backend == "memory":
        logger.warning("Celery workers cannot see an in-memory store; use the filesystem or redis backend")
    return app


celery = make_celery(get_config())

import logging
from typing import Any

from arq import cron
from arq.connections import RedisSettings

from app.core.config import settings
from app.core.database import SessionLocal
from app.services.webhook_service import WebhookService

logger = logging.getLogger(__name__)


async def deliver_pending_webhooks_task(ctx: dict[str, Any]) -> int:
    """Background task: deliver webhooks recorded since the last run.

    Runs every minute.
    """
    db = SessionLocal()
    try:
        count = WebhookService(db).deliver_pending_webhooks()
        if count > 0:
            logger.info("Delivered %d pending webhooks", count)
        return count
    finally:
        db.close()


async def retry_failed_webhooks_task(ctx: dict[str, Any]) -> int:
    """Background task: retry failed webhooks with exponential backoff.

    Runs every 5 minutes.
    """
    db = SessionLocal()
    try:
        count = WebhookService(db).retry_failed_webhooks()
        if count > 0:
            logger.info("Retried %d failed webhooks", count)
        return count
    finally:
        db.close()


class WorkerSettings:
    functions = [
        deliver_pending_webhooks_task,
        retry_failed_webhooks_task,
    ]
    cron_jobs = [
        cron(deliver_pending_webhooks_task),  # every minute
        cron(
            retry_failed_webhooks_task,
            minute={0, 5, 10, 15, 20, 25, 30, 35, 40, 45, 50, 55},
        ),
    ]
    redis_settings = RedisSettings.from_dsn(settings.REDIS_URL)

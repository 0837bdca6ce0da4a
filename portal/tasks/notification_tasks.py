"""
Celery tasks for the admin notification bell
"""

import asyncio
import logging

from portal.celery_app import celery
from portal.db.session import AsyncSessionLocal, async_engine
from portal.services.admin_notifications import escalate_pending_notifications

logger = logging.getLogger(__name__)


async def run_notification_escalation() -> int:
    async with AsyncSessionLocal() as session:
        try:
            escalated = await escalate_pending_notifications(session)
            await session.commit()
            return escalated
        except Exception:
            await session.rollback()
            raise


@celery.task(bind=True, max_retries=3, default_retry_delay=600)
def escalate_notifications_task(self):
    async def _run():
        try:
            return await run_notification_escalation()
        finally:
            await async_engine.dispose()

    try:
        return asyncio.run(_run())
    except Exception as exc:
        logger.error(f"Error escalating admin notifications: {exc}")
        raise self.retry(exc=exc)

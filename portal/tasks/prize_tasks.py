"""
Celery tasks for prize draw housekeeping
"""

import asyncio
import logging

from portal.celery_app import celery
from portal.db.session import AsyncSessionLocal, async_engine
from portal.services.winner_selection import process_expired_prizes

logger = logging.getLogger(__name__)


async def run_expired_prize_sweep() -> dict:
    """Expire unclaimed prizes past their deadline and redraw replacements."""
    async with AsyncSessionLocal() as session:
        try:
            totals = await process_expired_prizes(session)
            await session.commit()
        except Exception:
            await session.rollback()
            raise
    if totals["numberExpired"]:
        logger.info(
            f"Expired {totals['numberExpired']} prizes across {totals['draws']} draws, "
            f"redrew {totals['numberRedrawn']}"
        )
    return totals


@celery.task(bind=True, max_retries=3, default_retry_delay=300)
def process_expired_prizes_task(self):
    async def _run():
        try:
            return await run_expired_prize_sweep()
        finally:
            # pooled connections are bound to this task's event loop
            await async_engine.dispose()

    try:
        return asyncio.run(_run())
    except Exception as exc:
        logger.error(f"Error processing expired prizes: {exc}")
        raise self.retry(exc=exc)

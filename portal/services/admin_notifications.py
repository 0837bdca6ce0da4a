"""
Admin notification bell
"""

import logging
from datetime import timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, update, func, desc
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.config import settings
from portal.core.timeutils import utcnow
from portal.models.audit_log import AdminNotification
from portal.models.enums import NotificationPriority, NotificationType

logger = logging.getLogger(__name__)


async def create_notification(
    session: AsyncSession,
    notification_type: str,
    title: str,
    message: str,
    priority: str = NotificationPriority.NORMAL.value,
    related_entity_id: Optional[str] = None,
    related_entity_type: Optional[str] = None
) -> AdminNotification:
    notification = AdminNotification(
        notification_type=notification_type,
        title=title,
        message=message,
        priority=priority,
        related_entity_id=str(related_entity_id) if related_entity_id else None,
        related_entity_type=related_entity_type
    )
    session.add(notification)
    await session.flush()
    return notification


async def get_unread_notifications(session: AsyncSession, limit: int = 50) -> List[AdminNotification]:
    result = await session.execute(
        select(AdminNotification)
        .where(AdminNotification.is_read.is_(False))
        .order_by(desc(AdminNotification.created_at))
        .limit(limit)
    )
    return list(result.scalars().all())


async def get_all_notifications(session: AsyncSession, limit: int = 100) -> List[AdminNotification]:
    result = await session.execute(
        select(AdminNotification).order_by(desc(AdminNotification.created_at)).limit(limit)
    )
    return list(result.scalars().all())


async def mark_as_read(session: AsyncSession, notification_id: UUID) -> bool:
    result = await session.execute(
        select(AdminNotification).where(AdminNotification.id == notification_id)
    )
    notification = result.scalar_one_or_none()
    if not notification:
        return False
    notification.is_read = True
    notification.read_at = utcnow()
    await session.flush()
    return True


async def get_unread_count(session: AsyncSession) -> int:
    result = await session.execute(
        select(func.count(AdminNotification.id)).where(AdminNotification.is_read.is_(False))
    )
    return int(result.scalar() or 0)


async def get_tier_bonus_notifications(session: AsyncSession) -> List[AdminNotification]:
    result = await session.execute(
        select(AdminNotification)
        .where(AdminNotification.notification_type == NotificationType.TIER_BONUS_APPROVAL.value)
        .order_by(desc(AdminNotification.created_at))
    )
    return list(result.scalars().all())


async def escalate_pending_notifications(session: AsyncSession, hours: Optional[int] = None) -> int:
    """
    Mark unread notifications older than the escalation window as overdue.

    Returns:
        Number of notifications escalated
    """
    cutoff = utcnow() - timedelta(hours=hours or settings.notification_escalation_hours)
    result = await session.execute(
        update(AdminNotification)
        .where(
            AdminNotification.is_read.is_(False),
            AdminNotification.created_at < cutoff,
            AdminNotification.priority != NotificationPriority.OVERDUE.value
        )
        .values(priority=NotificationPriority.OVERDUE.value)
        .execution_options(synchronize_session=False)
    )
    await session.flush()
    escalated = int(result.rowcount or 0)
    if escalated:
        logger.info(f"Escalated {escalated} admin notifications to overdue")
    return escalated

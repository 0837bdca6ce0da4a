"""
Integration tests for escalating stale admin notifications
"""

from datetime import timedelta

import pytest

from portal.core.timeutils import utcnow
from portal.models.audit_log import AdminNotification
from portal.models.enums import NotificationPriority, NotificationType
from portal.tasks import notification_tasks


def _notification(title, age_hours, is_read=False):
    return AdminNotification(
        notification_type=NotificationType.SYSTEM_ALERT.value,
        title=title,
        message=title,
        is_read=is_read,
        created_at=utcnow() - timedelta(hours=age_hours)
    )


@pytest.mark.integration
async def test_stale_unread_notifications_become_overdue(monkeypatch, async_session, session_factory):
    stale = _notification("Withdrawal waiting", 72)
    fresh = _notification("New referral", 1)
    handled = _notification("Old but read", 72, is_read=True)
    async_session.add_all([stale, fresh, handled])
    await async_session.commit()
    monkeypatch.setattr(notification_tasks, "AsyncSessionLocal", session_factory)

    escalated = await notification_tasks.run_notification_escalation()

    assert escalated == 1
    for notification in (stale, fresh, handled):
        await async_session.refresh(notification)
    assert stale.priority == NotificationPriority.OVERDUE.value
    assert fresh.priority == NotificationPriority.NORMAL.value
    assert handled.priority == NotificationPriority.NORMAL.value

    # already overdue rows are not counted again
    assert await notification_tasks.run_notification_escalation() == 0

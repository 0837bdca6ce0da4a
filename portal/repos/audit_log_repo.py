"""
Audit log repository for admin action tracking
"""

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc, or_

from portal.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


async def log_admin_action(
    session: AsyncSession,
    actor_id: Optional[UUID],
    action: str,
    target_user_id: Optional[UUID] = None,
    details: Optional[Dict[str, Any]] = None,
    table_name: Optional[str] = None,
    record_id: Optional[str] = None,
    old_values: Optional[Dict[str, Any]] = None,
    new_values: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None
) -> AuditLog:
    """
    Create an audit log entry.

    The row is flushed, not committed; it becomes durable with the caller's
    transaction.

    Args:
        session: Database session
        actor_id: User who performed the action
        action: Action performed (e.g. PRIZE_DRAW_CREATED)
        target_user_id: User affected by the action
        details: Additional details as JSON
        table_name: Table of the affected record
        record_id: ID of the affected record
        old_values: Column values before the change
        new_values: Column values after the change
        ip_address: Client IP
        user_agent: Client user agent

    Returns:
        Created AuditLog instance

    Raises:
        ValueError: if actor_id or action is missing
    """
    if not actor_id or not action:
        raise ValueError("Missing required fields: actorId and action")

    audit_log = AuditLog(
        actor_id=actor_id,
        action=action,
        target_user_id=target_user_id,
        details=details or {},
        table_name=table_name,
        record_id=str(record_id) if record_id is not None else None,
        old_values=old_values,
        new_values=new_values,
        ip_address=ip_address,
        user_agent=user_agent
    )
    session.add(audit_log)
    await session.flush()
    return audit_log


async def get_audit_logs(
    session: AsyncSession,
    limit: int = 50,
    offset: int = 0,
    action: Optional[str] = None,
    actor_id: Optional[UUID] = None
) -> List[AuditLog]:
    """
    Get audit logs, newest first.

    Args:
        session: Database session
        limit: Maximum number of logs to return
        offset: Number of logs to skip
        action: Filter by action type
        actor_id: Filter by actor

    Returns:
        List of AuditLog instances
    """
    query = select(AuditLog).order_by(desc(AuditLog.created_at))

    if action:
        query = query.where(AuditLog.action == action)

    if actor_id:
        query = query.where(AuditLog.actor_id == actor_id)

    query = query.limit(limit).offset(offset)

    result = await session.execute(query)
    return list(result.scalars().all())


async def get_user_audit_logs(session: AsyncSession, user_id: UUID, limit: int = 50) -> List[AuditLog]:
    """Logs that target a user, either as target user or as the affected record."""
    result = await session.execute(
        select(AuditLog)
        .where(or_(AuditLog.target_user_id == user_id, AuditLog.record_id == str(user_id)))
        .order_by(desc(AuditLog.created_at))
        .limit(limit)
    )
    return list(result.scalars().all())


async def log_role_change(
    session: AsyncSession,
    actor_id: UUID,
    target_user_id: UUID,
    old_role: str,
    new_role: str,
    reason: Optional[str] = None
) -> AuditLog:
    return await log_admin_action(
        session,
        actor_id=actor_id,
        action="ADMIN_ROLE_CHANGED",
        target_user_id=target_user_id,
        table_name="profiles",
        record_id=str(target_user_id),
        old_values={"role": old_role},
        new_values={"role": new_role},
        details={"reason": reason} if reason else {}
    )


async def log_suspension(
    session: AsyncSession,
    actor_id: UUID,
    target_user_id: UUID,
    suspended: bool,
    reason: str,
    previous_role: Optional[str] = None
) -> AuditLog:
    return await log_admin_action(
        session,
        actor_id=actor_id,
        action="ADMIN_SUSPENDED" if suspended else "ADMIN_UNSUSPENDED",
        target_user_id=target_user_id,
        table_name="profiles",
        record_id=str(target_user_id),
        old_values={"role": previous_role} if previous_role else None,
        details={"reason": reason}
    )


async def log_admin_creation(
    session: AsyncSession,
    actor_id: UUID,
    new_admin_id: UUID,
    role: str,
    email: str
) -> AuditLog:
    return await log_admin_action(
        session,
        actor_id=actor_id,
        action="ADMIN_CREATED",
        target_user_id=new_admin_id,
        table_name="profiles",
        record_id=str(new_admin_id),
        new_values={"role": role, "email": email}
    )

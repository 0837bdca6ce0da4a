"""
Agent-side access to member requests
"""

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from portal.models.operations import AgentRequest
from portal.repos import membership_repo, profile_repo
from portal.repos.audit_log_repo import log_admin_action
from portal.services import permissions

logger = logging.getLogger(__name__)


async def list_assigned_requests(session: AsyncSession, agent_id: UUID, status: Optional[str] = None) -> List[AgentRequest]:
    query = select(AgentRequest).where(AgentRequest.assigned_agent_id == agent_id)
    if status:
        query = query.where(AgentRequest.status == status)
    result = await session.execute(query.order_by(desc(AgentRequest.created_at)))
    return list(result.scalars().all())


async def view_member(
    session: AsyncSession,
    viewer_id: UUID,
    member_id: UUID,
    ip_address: Optional[str] = None
) -> Dict[str, Any]:
    """
    Member profile and membership as seen by an admin or assigned agent.

    Raises:
        PermissionError: viewer may not see this member
        LookupError: member not found
    """
    check = await permissions.can_view_member(session, viewer_id, member_id)
    if not check["allowed"]:
        await permissions.log_permission_violation(
            session, viewer_id, check["violation_type"],
            {"target_member_id": str(member_id), "reason": check["reason"]},
            ip_address=ip_address
        )
        raise PermissionError(check["reason"])

    member = await profile_repo.get_profile_by_id(session, member_id)
    if member is None:
        raise LookupError("Member not found")
    membership = await membership_repo.get_membership_by_user(session, member_id)
    return {
        "profile": member.to_dict(),
        "membership": membership.to_dict() if membership else None,
    }


async def update_case_notes(
    session: AsyncSession,
    agent_id: UUID,
    request_id: UUID,
    case_notes: str,
    status: Optional[str] = None,
    ip_address: Optional[str] = None
) -> AgentRequest:
    """
    Raises:
        PermissionError: agent may not update this request
        LookupError: request not found
    """
    check = await permissions.can_update_case_notes(session, agent_id, request_id)
    if not check["allowed"]:
        await permissions.log_permission_violation(
            session, agent_id, check["violation_type"],
            {"request_id": str(request_id), "reason": check["reason"]},
            ip_address=ip_address
        )
        raise PermissionError(check["reason"])

    result = await session.execute(select(AgentRequest).where(AgentRequest.id == request_id))
    request = result.scalar_one_or_none()
    if request is None:
        raise LookupError("Request not found")

    request.case_notes = case_notes
    if status:
        request.status = status
    await session.flush()

    await log_admin_action(
        session,
        actor_id=agent_id,
        action="CASE_NOTES_UPDATED",
        target_user_id=request.user_id,
        table_name="agent_requests",
        record_id=str(request.id),
        details={"status": request.status}
    )
    return request

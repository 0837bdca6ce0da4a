"""
Permission checks.

Authority model: the chairman (employees.role_category == "chairman") holds
absolute authority. Managing director, general manager and department heads
hold subordinate operational authority. master_admin is an oversight role and
is read-only. profiles.role == "super_admin" is a legacy admin role.

Every check fails closed: a query error means "not permitted".
"""

import logging
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.models.enums import (
    AgentRequestStatus, AgentStatus, ProfileRole, RoleCategory,
)
from portal.models.operations import AgentRequest
from portal.models.profile import Employee, Profile
from portal.repos.audit_log_repo import log_admin_action

logger = logging.getLogger(__name__)

ADMIN_ROLES = (
    ProfileRole.MASTER_ADMIN.value,
    ProfileRole.MANAGER_ADMIN.value,
    ProfileRole.WORKER_ADMIN.value,
    ProfileRole.SUPER_ADMIN.value,
)

OPERATIONAL_ROLE_CATEGORIES = (
    RoleCategory.CHAIRMAN.value,
    RoleCategory.MANAGING_DIRECTOR.value,
    RoleCategory.GENERAL_MANAGER.value,
    RoleCategory.DEPARTMENT_HEAD.value,
)


def permission_result(allowed: bool, reason: Optional[str] = None, violation_type: Optional[str] = None) -> Dict[str, Any]:
    return {"allowed": allowed, "reason": reason, "violation_type": violation_type}


async def get_employee_role(session: AsyncSession, user_id: UUID) -> Optional[str]:
    """Return the employee role category of a user, or None."""
    try:
        result = await session.execute(
            select(Employee.role_category).where(Employee.user_id == user_id)
        )
        return result.scalar_one_or_none()
    except Exception as e:
        logger.error(f"Failed to read employee role for {user_id}: {e}")
        return None


async def _get_profile(session: AsyncSession, user_id: UUID) -> Optional[Profile]:
    try:
        result = await session.execute(select(Profile).where(Profile.id == user_id))
        return result.scalar_one_or_none()
    except Exception as e:
        logger.error(f"Failed to read profile for {user_id}: {e}")
        return None


async def is_chairman(session: AsyncSession, user_id: UUID) -> bool:
    return await get_employee_role(session, user_id) == RoleCategory.CHAIRMAN.value


async def is_admin(session: AsyncSession, user_id: UUID) -> bool:
    """Chairman, or a profile holding one of the admin roles."""
    if await is_chairman(session, user_id):
        return True
    profile = await _get_profile(session, user_id)
    if not profile:
        return False
    return profile.role in ADMIN_ROLES


async def has_operational_authority(session: AsyncSession, user_id: UUID) -> bool:
    return await get_employee_role(session, user_id) in OPERATIONAL_ROLE_CATEGORIES


async def is_approved_agent(session: AsyncSession, user_id: UUID) -> bool:
    profile = await _get_profile(session, user_id)
    if not profile:
        return False
    return profile.role == ProfileRole.AGENT.value and profile.agent_status == AgentStatus.ACTIVE.value


async def log_permission_violation(
    session: AsyncSession,
    user_id: UUID,
    violation_type: str,
    details: Dict[str, Any],
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None
) -> None:
    """
    Record a denied access attempt. Never raises: a failed audit write is
    logged and the denial still stands.
    """
    logger.warning(f"PERMISSION VIOLATION [{violation_type}] user={user_id} details={details}")
    try:
        await log_admin_action(
            session,
            actor_id=user_id,
            action="PERMISSION_VIOLATION",
            details={
                "violation_type": violation_type,
                **details,
                "ip": ip_address,
                "user_agent": user_agent,
            },
            ip_address=ip_address,
            user_agent=user_agent
        )
        await session.commit()
    except Exception as e:
        await session.rollback()
        logger.error(f"Failed to log permission violation for {user_id}: {e}")


# Chairman-only authorities

async def can_manage_prize_draws(session: AsyncSession, user_id: UUID) -> bool:
    return await is_chairman(session, user_id)


async def can_manage_agents(session: AsyncSession, user_id: UUID) -> bool:
    return await is_chairman(session, user_id)


async def can_manage_system_settings(session: AsyncSession, user_id: UUID) -> bool:
    return await is_chairman(session, user_id)


async def can_manage_admins(session: AsyncSession, user_id: UUID) -> bool:
    return await is_chairman(session, user_id)


async def can_approve_identity_verifications(session: AsyncSession, user_id: UUID) -> bool:
    return await is_chairman(session, user_id)


async def can_verify_scam_reports(session: AsyncSession, user_id: UUID) -> bool:
    return await is_chairman(session, user_id)


async def can_view_member(
    session: AsyncSession,
    user_id: UUID,
    target_member_id: Optional[UUID] = None
) -> Dict[str, Any]:
    """
    Admins may view any member. Approved agents may view only members whose
    request is assigned to them.
    """
    if await is_admin(session, user_id):
        return permission_result(True)

    if await is_approved_agent(session, user_id):
        if not target_member_id:
            return permission_result(False, "Target member ID required", "MISSING_PARAM")
        try:
            result = await session.execute(
                select(AgentRequest.id).where(
                    AgentRequest.assigned_agent_id == user_id,
                    AgentRequest.user_id == target_member_id,
                    AgentRequest.status == AgentRequestStatus.ASSIGNED.value
                ).limit(1)
            )
            assignment = result.scalar_one_or_none()
        except Exception as e:
            logger.error(f"Assignment lookup failed for agent {user_id}: {e}")
            assignment = None
        if assignment:
            return permission_result(True)
        return permission_result(False, "Member not assigned to agent", "UNAUTHORIZED_ACCESS")

    return permission_result(False, "User not authorized", "UNAUTHORIZED_ROLE")


async def can_update_case_notes(
    session: AsyncSession,
    user_id: UUID,
    request_id: Optional[UUID] = None
) -> Dict[str, Any]:
    """Admins may update any request; approved agents only their own."""
    if await is_admin(session, user_id):
        return permission_result(True)

    if await is_approved_agent(session, user_id):
        if not request_id:
            return permission_result(False, "Request ID required", "MISSING_PARAM")
        try:
            result = await session.execute(
                select(AgentRequest.id).where(
                    AgentRequest.id == request_id,
                    AgentRequest.assigned_agent_id == user_id
                )
            )
            request = result.scalar_one_or_none()
        except Exception as e:
            logger.error(f"Request lookup failed for agent {user_id}: {e}")
            request = None
        if request:
            return permission_result(True)
        return permission_result(False, "Request not assigned to agent", "UNAUTHORIZED_ACCESS")

    return permission_result(False, "User not authorized", "UNAUTHORIZED_ROLE")

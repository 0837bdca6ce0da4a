"""
Admin account management. Only the chairman creates, suspends or re-roles
admins; super_admin can never be created through the API.
"""

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.auth import get_password_hash
from portal.models.enums import ProfileRole
from portal.models.profile import AdminHierarchy, Profile
from portal.repos import profile_repo
from portal.repos.audit_log_repo import (
    get_user_audit_logs, log_admin_creation, log_role_change, log_suspension,
)
from portal.services.permissions import ADMIN_ROLES

logger = logging.getLogger(__name__)

CREATABLE_ROLES = (ProfileRole.MANAGER_ADMIN.value, ProfileRole.WORKER_ADMIN.value)

LISTED_ROLES = ADMIN_ROLES + (ProfileRole.SUSPENDED.value,)


def can_create_role(requester_role: str, role_to_create: str) -> bool:
    """super_admin creates manager and worker admins; manager_admin only workers."""
    if role_to_create not in CREATABLE_ROLES:
        return False
    if requester_role == ProfileRole.SUPER_ADMIN.value:
        return True
    if requester_role == ProfileRole.MANAGER_ADMIN.value:
        return role_to_create == ProfileRole.WORKER_ADMIN.value
    return False


async def create_admin(
    session: AsyncSession,
    email: str,
    password: str,
    full_name: str,
    role: str,
    created_by: UUID,
    country_code: str = "BD"
) -> Profile:
    """
    Create an admin profile with a hierarchy row and an audit entry.

    Raises:
        ValueError: role not creatable, weak password, or email already used
    """
    if role == ProfileRole.SUPER_ADMIN.value:
        raise ValueError("Cannot create super_admin via API")
    if role not in CREATABLE_ROLES:
        raise ValueError("Role must be manager_admin or worker_admin")
    if not password or len(password) < 8:
        raise ValueError("Password must be at least 8 characters")
    if await profile_repo.get_profile_by_email(session, email):
        raise ValueError("Email already exists in the system")

    admin = await profile_repo.create_profile(
        session,
        email=email,
        full_name=full_name,
        role=role,
        password_hash=get_password_hash(password),
        country_code=country_code
    )
    session.add(AdminHierarchy(admin_id=admin.id, created_by=created_by, role=role))
    await session.flush()

    await log_admin_creation(session, created_by, admin.id, role, admin.email)
    logger.info(f"Admin {admin.email} ({role}) created by {created_by}")
    return admin


async def _get_admin_target(session: AsyncSession, admin_id: UUID) -> Profile:
    target = await profile_repo.get_profile_by_id(session, admin_id)
    if target is None or target.role not in LISTED_ROLES:
        raise LookupError("Admin not found")
    return target


async def suspend_admin(session: AsyncSession, admin_id: UUID, reason: str, actor_id: UUID) -> Profile:
    """
    Raises:
        LookupError: target is not an admin
        ValueError: missing reason, self-suspension, or super admin target
    """
    if not reason or not reason.strip():
        raise ValueError("Suspension reason is required")
    if admin_id == actor_id:
        raise ValueError("Cannot suspend yourself")

    target = await _get_admin_target(session, admin_id)
    if target.role == ProfileRole.SUPER_ADMIN.value:
        raise ValueError("Cannot suspend super_admin")
    if target.role == ProfileRole.SUSPENDED.value:
        raise ValueError("Admin is already suspended")

    previous_role = target.role
    target.role = ProfileRole.SUSPENDED.value
    target.verification_notes = f"SUSPENDED: {reason.strip()}"
    await session.flush()

    await log_suspension(session, actor_id, target.id, True, reason.strip(), previous_role=previous_role)
    logger.info(f"Admin {target.id} suspended by {actor_id}")
    return target


async def unsuspend_admin(session: AsyncSession, admin_id: UUID, reason: str, actor_id: UUID) -> Profile:
    """Restore the role the admin held before the latest suspension."""
    target = await _get_admin_target(session, admin_id)
    if target.role != ProfileRole.SUSPENDED.value:
        raise ValueError("Admin is not suspended")

    restored = ProfileRole.WORKER_ADMIN.value
    for log in await get_user_audit_logs(session, target.id):
        if log.action == "ADMIN_SUSPENDED" and log.old_values and log.old_values.get("role"):
            restored = log.old_values["role"]
            break

    target.role = restored
    target.verification_notes = None
    await session.flush()
    await log_suspension(session, actor_id, target.id, False, reason or "", previous_role=ProfileRole.SUSPENDED.value)
    return target


async def update_role(
    session: AsyncSession,
    admin_id: UUID,
    new_role: str,
    actor_id: UUID,
    reason: Optional[str] = None
) -> Profile:
    if new_role not in CREATABLE_ROLES:
        raise ValueError("Role must be manager_admin or worker_admin")
    target = await _get_admin_target(session, admin_id)
    if target.role == ProfileRole.SUPER_ADMIN.value:
        raise ValueError("Cannot change the role of super_admin")
    if target.role == new_role:
        raise ValueError(f"Admin already has role {new_role}")

    old_role = target.role
    target.role = new_role
    await session.flush()
    await log_role_change(session, actor_id, target.id, old_role, new_role, reason)
    return target


async def list_admins(session: AsyncSession) -> List[Profile]:
    return await profile_repo.list_profiles_by_roles(session, LISTED_ROLES)


async def get_admin_hierarchy(session: AsyncSession) -> List[Dict[str, Any]]:
    """Every admin with the admin who created them."""
    result = await session.execute(
        select(AdminHierarchy, Profile)
        .join(Profile, Profile.id == AdminHierarchy.admin_id)
        .order_by(desc(AdminHierarchy.created_at))
    )
    return [
        {
            **hierarchy.to_dict(),
            "email": profile.email,
            "full_name": profile.full_name,
            "current_role": profile.role,
        }
        for hierarchy, profile in result.all()
    ]

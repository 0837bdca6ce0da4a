"""
Admin management, audit log, notification, test account and people search endpoints
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession

from portal.api.schemas import CamelModel
from portal.core.auth import require_admin_role, require_chairman
from portal.core.deployment import get_deployment_info
from portal.db.session import get_db
from portal.models.profile import Profile
from portal.repos import audit_log_repo
from portal.repos.audit_log_repo import log_admin_action
from portal.services import admin_management, admin_notifications, people, test_accounts

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin-manage"])


class CreateAdminRequest(CamelModel):
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(..., min_length=1)
    full_name: str = Field(..., min_length=1, max_length=255)
    role: str
    country_code: str = "BD"


class SuspendAdminRequest(CamelModel):
    admin_id: UUID
    reason: Optional[str] = None


class UpdateRoleRequest(CamelModel):
    admin_id: UUID
    new_role: str
    reason: Optional[str] = None


class CeoTestAccountsRequest(CamelModel):
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(..., min_length=8)
    full_name: str = Field(..., min_length=1, max_length=255)
    country_code: str = "BD"


class FreeMembershipRequest(CamelModel):
    user_id: UUID


def _bad_request(e: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"error": str(e)})


def _not_found(e: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail={"error": str(e)})


@router.get("/admins/list")
async def list_admins(
    current_admin: Profile = Depends(require_chairman),
    db: AsyncSession = Depends(get_db)
):
    try:
        admins = await admin_management.list_admins(db)
        return {"success": True, "admins": [a.to_dict() for a in admins]}
    except Exception as e:
        logger.error(f"Failed to list admins: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to list admins: {str(e)}"}
        )


@router.post("/admins/create", status_code=status.HTTP_201_CREATED)
async def create_admin(
    payload: CreateAdminRequest,
    current_admin: Profile = Depends(require_chairman),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a manager or worker admin. super_admin can not be created here.
    """
    try:
        admin = await admin_management.create_admin(
            db,
            email=payload.email.lower(),
            password=payload.password,
            full_name=payload.full_name,
            role=payload.role,
            created_by=current_admin.id,
            country_code=payload.country_code
        )
        await db.commit()
        return {"success": True, "admin": admin.to_dict()}
    except ValueError as e:
        await db.rollback()
        raise _bad_request(e)
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to create admin {payload.email}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to create admin: {str(e)}"}
        )


@router.post("/admins/suspend")
async def suspend_admin(
    payload: SuspendAdminRequest,
    current_admin: Profile = Depends(require_chairman),
    db: AsyncSession = Depends(get_db)
):
    try:
        admin = await admin_management.suspend_admin(db, payload.admin_id, payload.reason or "", current_admin.id)
        await db.commit()
        return {"success": True, "admin": admin.to_dict()}
    except LookupError as e:
        await db.rollback()
        raise _not_found(e)
    except ValueError as e:
        await db.rollback()
        raise _bad_request(e)
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to suspend admin {payload.admin_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to suspend admin: {str(e)}"}
        )


@router.post("/admins/unsuspend")
async def unsuspend_admin(
    payload: SuspendAdminRequest,
    current_admin: Profile = Depends(require_chairman),
    db: AsyncSession = Depends(get_db)
):
    try:
        admin = await admin_management.unsuspend_admin(db, payload.admin_id, payload.reason or "", current_admin.id)
        await db.commit()
        return {"success": True, "admin": admin.to_dict()}
    except LookupError as e:
        await db.rollback()
        raise _not_found(e)
    except ValueError as e:
        await db.rollback()
        raise _bad_request(e)
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to unsuspend admin {payload.admin_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to unsuspend admin: {str(e)}"}
        )


@router.post("/admins/update-role")
async def update_admin_role(
    payload: UpdateRoleRequest,
    current_admin: Profile = Depends(require_chairman),
    db: AsyncSession = Depends(get_db)
):
    try:
        admin = await admin_management.update_role(
            db, payload.admin_id, payload.new_role, current_admin.id, reason=payload.reason
        )
        await db.commit()
        return {"success": True, "admin": admin.to_dict()}
    except LookupError as e:
        await db.rollback()
        raise _not_found(e)
    except ValueError as e:
        await db.rollback()
        raise _bad_request(e)
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to update role for {payload.admin_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to update admin role: {str(e)}"}
        )


@router.get("/admins/hierarchy")
async def admin_hierarchy(
    current_admin: Profile = Depends(require_chairman),
    db: AsyncSession = Depends(get_db)
):
    try:
        return {"success": True, "hierarchy": await admin_management.get_admin_hierarchy(db)}
    except Exception as e:
        logger.error(f"Failed to load admin hierarchy: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to load admin hierarchy: {str(e)}"}
        )


@router.get("/audit-logs")
async def list_audit_logs(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    action: Optional[str] = None,
    actor_id: Optional[UUID] = None,
    current_admin: Profile = Depends(require_admin_role),
    db: AsyncSession = Depends(get_db)
):
    try:
        logs = await audit_log_repo.get_audit_logs(db, limit=limit, offset=offset, action=action, actor_id=actor_id)
        return {"success": True, "logs": [log.to_dict() for log in logs]}
    except Exception as e:
        logger.error(f"Failed to fetch audit logs: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to fetch audit logs: {str(e)}"}
        )


@router.get("/audit-logs/user/{user_id}")
async def user_audit_logs(
    user_id: UUID,
    limit: int = Query(50, ge=1, le=500),
    current_admin: Profile = Depends(require_admin_role),
    db: AsyncSession = Depends(get_db)
):
    try:
        logs = await audit_log_repo.get_user_audit_logs(db, user_id, limit=limit)
        return {"success": True, "logs": [log.to_dict() for log in logs]}
    except Exception as e:
        logger.error(f"Failed to fetch audit logs for {user_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to fetch audit logs: {str(e)}"}
        )


@router.get("/notifications")
async def list_notifications(
    limit: int = Query(100, ge=1, le=500),
    current_admin: Profile = Depends(require_admin_role),
    db: AsyncSession = Depends(get_db)
):
    try:
        notifications = await admin_notifications.get_all_notifications(db, limit=limit)
        return {"success": True, "notifications": [n.to_dict() for n in notifications]}
    except Exception as e:
        logger.error(f"Failed to list notifications: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to list notifications: {str(e)}"}
        )


@router.get("/notifications/unread")
async def unread_notifications(
    current_admin: Profile = Depends(require_admin_role),
    db: AsyncSession = Depends(get_db)
):
    try:
        notifications = await admin_notifications.get_unread_notifications(db)
        return {"success": True, "notifications": [n.to_dict() for n in notifications]}
    except Exception as e:
        logger.error(f"Failed to list unread notifications: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to list notifications: {str(e)}"}
        )


@router.get("/notifications/unread-count")
async def unread_notification_count(
    current_admin: Profile = Depends(require_admin_role),
    db: AsyncSession = Depends(get_db)
):
    try:
        return {"success": True, "count": await admin_notifications.get_unread_count(db)}
    except Exception as e:
        logger.error(f"Failed to count notifications: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to count notifications: {str(e)}"}
        )


@router.get("/notifications/tier-bonus")
async def tier_bonus_notifications(
    current_admin: Profile = Depends(require_admin_role),
    db: AsyncSession = Depends(get_db)
):
    try:
        notifications = await admin_notifications.get_tier_bonus_notifications(db)
        return {"success": True, "notifications": [n.to_dict() for n in notifications]}
    except Exception as e:
        logger.error(f"Failed to list tier bonus notifications: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to list notifications: {str(e)}"}
        )


@router.post("/notifications/{notification_id}/read")
async def read_notification(
    notification_id: UUID,
    current_admin: Profile = Depends(require_admin_role),
    db: AsyncSession = Depends(get_db)
):
    try:
        if not await admin_notifications.mark_as_read(db, notification_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"error": "Notification not found"}
            )
        await db.commit()
        return {"success": True}
    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to mark notification {notification_id} read: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to mark notification as read: {str(e)}"}
        )


@router.post("/test/create-ceo", status_code=status.HTTP_201_CREATED)
async def create_ceo_test_accounts(
    payload: CeoTestAccountsRequest,
    current_admin: Profile = Depends(require_chairman),
    db: AsyncSession = Depends(get_db)
):
    """
    Create the CEO's super admin, member and agent test accounts in one go.
    """
    try:
        accounts = await test_accounts.create_ceo_test_accounts(
            db, payload.email, payload.password, payload.full_name, payload.country_code, current_admin.id
        )
        await db.commit()
        return {"success": True, "accounts": accounts}
    except ValueError as e:
        await db.rollback()
        raise _bad_request(e)
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to create CEO test accounts for {payload.email}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to create test accounts: {str(e)}"}
        )


@router.post("/test/activate-free-membership")
async def activate_free_membership(
    payload: FreeMembershipRequest,
    current_admin: Profile = Depends(require_chairman),
    db: AsyncSession = Depends(get_db)
):
    try:
        membership, created = await test_accounts.activate_free_membership(db, payload.user_id)
        await log_admin_action(
            db,
            actor_id=current_admin.id,
            action="FREE_MEMBERSHIP_ACTIVATED",
            target_user_id=payload.user_id,
            table_name="memberships",
            record_id=str(membership.id),
            details={"created": created}
        )
        await db.commit()
        return {"success": True, "membership": membership.to_dict(), "created": created}
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to activate free membership for {payload.user_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to activate membership: {str(e)}"}
        )


@router.get("/people/search")
async def search_people(
    q: str = "",
    current_admin: Profile = Depends(require_admin_role),
    db: AsyncSession = Depends(get_db)
):
    try:
        results = await people.search_people(db, q)
        return {"success": True, "results": results}
    except ValueError as e:
        raise _bad_request(e)
    except Exception as e:
        logger.error(f"People search failed for {q!r}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to search: {str(e)}"}
        )


@router.get("/deployment-info")
async def deployment_info(current_admin: Profile = Depends(require_admin_role)):
    return {"success": True, **get_deployment_info()}

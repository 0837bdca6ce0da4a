"""
Attendance dashboard endpoints with CSV / XLSX export
"""

import logging
from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession

from portal.api.schemas import CamelModel
from portal.core.auth import get_client_ip, get_current_user
from portal.core.config import settings
from portal.core.timeutils import utcnow
from portal.db.session import get_db
from portal.models.profile import Profile
from portal.services import attendance
from portal.utils.export import csv_response, export_filename, xlsx_response
from portal.utils.pagination import paginate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/attendance", tags=["admin-attendance"])


class ManualAttendanceRequest(CamelModel):
    employee_id: UUID
    attendance_date: date
    actual_login_time: str = Field(..., pattern=r"^\d{2}:\d{2}")
    reason: str = Field(..., min_length=1)


async def _scope_or_403(db: AsyncSession, user: Profile, department: Optional[str]) -> Optional[str]:
    try:
        return await attendance.resolve_department_scope(db, user.id, department)
    except PermissionError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"error": str(e)}
        )


def _parse_filters(raw: Optional[str]):
    try:
        return attendance.parse_status_filters(raw)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": str(e)}
        )


@router.get("")
async def attendance_dashboard(
    on_date: Optional[date] = Query(None, alias="date"),
    department: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    late_page: int = Query(1, ge=1),
    absent_page: int = Query(1, ge=1),
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Summary plus paginated late and absent tables for one day.

    ``status`` is a comma-separated subset of present, late, absent, awol.
    """
    scope = await _scope_or_403(db, current_user, department)
    statuses = _parse_filters(status_filter)
    on_date = on_date or utcnow().date()
    try:
        summary = await attendance.get_attendance_summary(db, on_date, scope)
        late = attendance.filter_late(await attendance.get_late_employees(db, on_date, scope), statuses)
        absent = attendance.filter_absent(await attendance.get_absent_employees(db, on_date, scope), statuses)
        page_size = settings.attendance_page_size
        return {
            "success": True,
            "summary": summary,
            "department": scope or "all",
            "late": paginate(late, late_page, page_size),
            "absent": paginate(absent, absent_page, page_size),
        }
    except Exception as e:
        logger.error(f"Failed to load attendance for {on_date}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to load attendance: {str(e)}"}
        )


@router.get("/export")
async def export_attendance(
    request: Request,
    export_format: str = Query("csv", alias="format", pattern="^(csv|xlsx)$"),
    on_date: Optional[date] = Query(None, alias="date"),
    department: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    scope = await _scope_or_403(db, current_user, department)
    statuses = _parse_filters(status_filter)
    on_date = on_date or utcnow().date()
    try:
        late = attendance.filter_late(await attendance.get_late_employees(db, on_date, scope), statuses)
        absent = attendance.filter_absent(await attendance.get_absent_employees(db, on_date, scope), statuses)
        rows = attendance.build_export_rows(late, absent, on_date)
        if not rows:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"error": "No attendance records to export"}
            )

        await attendance.log_attendance_export(
            db, current_user.id, export_format, on_date, scope, statuses, len(rows),
            ip_address=get_client_ip(request)
        )
        await db.commit()

        filename = export_filename("attendance", export_format, scope or "all", on_date)
        if export_format == "xlsx":
            return xlsx_response(attendance.EXPORT_HEADERS, rows, filename, "Attendance")
        return csv_response(attendance.EXPORT_HEADERS, rows, filename)
    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to export attendance for {on_date}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to export attendance: {str(e)}"}
        )


@router.get("/departments")
async def list_departments(
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    scope = await _scope_or_403(db, current_user, None)
    try:
        departments = [scope] if scope else await attendance.get_departments(db)
        return {"success": True, "departments": departments}
    except Exception as e:
        logger.error(f"Failed to list departments: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to list departments: {str(e)}"}
        )


@router.get("/history/{employee_id}")
async def employee_history(
    employee_id: UUID,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await _scope_or_403(db, current_user, None)
    try:
        history = await attendance.get_employee_attendance_history(db, employee_id, start_date, end_date)
        return {"success": True, "records": history}
    except Exception as e:
        logger.error(f"Failed to load attendance history for {employee_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to load attendance history: {str(e)}"}
        )


@router.post("/manual", status_code=status.HTTP_201_CREATED)
async def manual_attendance(
    payload: ManualAttendanceRequest,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await _scope_or_403(db, current_user, None)
    try:
        record = await attendance.record_manual_attendance(
            db, payload.employee_id, payload.attendance_date, payload.actual_login_time,
            payload.reason, current_user.id
        )
        await db.commit()
        return {"success": True, "record": record.to_dict()}
    except LookupError as e:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": str(e)}
        )
    except ValueError as e:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": str(e)}
        )
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to record manual attendance: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to record attendance: {str(e)}"}
        )

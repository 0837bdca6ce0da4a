"""
Employee attendance dashboard.

Visibility only: lateness and absence are reported, never penalised.
Department heads see their own department; chairman, managing director and
general manager see every department.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import select, distinct
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.timeutils import utcnow
from portal.models.enums import AttendanceStatus, RoleCategory
from portal.models.operations import AttendanceRecord
from portal.models.profile import Employee
from portal.repos.audit_log_repo import log_admin_action
from portal.services import permissions

logger = logging.getLogger(__name__)

STATUS_FILTERS = ("present", "late", "absent", "awol")

EXPORT_HEADERS = [
    "Employee ID", "Name", "Role", "Department", "Date", "Status",
    "Late Minutes", "Expected Time", "Actual Time", "Exception Applied",
]

FULL_VISIBILITY_ROLES = (
    RoleCategory.CHAIRMAN.value,
    RoleCategory.MANAGING_DIRECTOR.value,
    RoleCategory.GENERAL_MANAGER.value,
)

ABSENT_STATUSES = (AttendanceStatus.ABSENT.value, AttendanceStatus.AWOL.value)


async def resolve_department_scope(
    session: AsyncSession,
    user_id: UUID,
    requested_department: Optional[str] = None
) -> Optional[str]:
    """
    Department the viewer may see, ``None`` meaning all departments.

    Raises:
        PermissionError: the viewer has no attendance visibility
    """
    role = await permissions.get_employee_role(session, user_id)
    if role in FULL_VISIBILITY_ROLES:
        return requested_department if requested_department and requested_department != "all" else None
    if role == RoleCategory.DEPARTMENT_HEAD.value:
        result = await session.execute(select(Employee.department).where(Employee.user_id == user_id))
        return result.scalar_one_or_none()
    if await permissions.is_admin(session, user_id):
        return requested_department if requested_department and requested_department != "all" else None
    raise PermissionError("Attendance dashboard requires department head authority or above")


async def _records_for_day(session: AsyncSession, on_date: date, department: Optional[str]):
    query = (
        select(AttendanceRecord, Employee)
        .join(Employee, Employee.id == AttendanceRecord.employee_id)
        .where(AttendanceRecord.attendance_date == on_date, Employee.is_active.is_(True))
    )
    if department:
        query = query.where(Employee.department == department)
    result = await session.execute(query.order_by(Employee.full_name))
    return result.all()


async def get_attendance_summary(
    session: AsyncSession,
    on_date: Optional[date] = None,
    department: Optional[str] = None
) -> Dict[str, Any]:
    on_date = on_date or utcnow().date()

    employees_query = select(Employee.id).where(Employee.is_active.is_(True))
    if department:
        employees_query = employees_query.where(Employee.department == department)
    total_employees = len((await session.execute(employees_query)).scalars().all())

    counts = {s.value: 0 for s in AttendanceStatus}
    lateness = []
    for record, _ in await _records_for_day(session, on_date, department):
        counts[record.status] = counts.get(record.status, 0) + 1
        if record.status == AttendanceStatus.LATE.value and record.lateness_minutes:
            lateness.append(record.lateness_minutes)

    return {
        "date": on_date.isoformat(),
        "total_employees": total_employees,
        "on_time": counts[AttendanceStatus.ON_TIME.value],
        "late": counts[AttendanceStatus.LATE.value],
        "absent": counts[AttendanceStatus.ABSENT.value] + counts[AttendanceStatus.AWOL.value],
        "excused": counts[AttendanceStatus.EXCUSED.value],
        "average_lateness_minutes": round(sum(lateness) / len(lateness), 1) if lateness else 0,
    }


def _employee_fields(employee: Employee) -> Dict[str, Any]:
    return {
        "employee_id": employee.employee_code or str(employee.id),
        "employee_name": employee.full_name or "",
        "role": employee.role_category,
        "department": employee.department or "",
    }


async def get_late_employees(
    session: AsyncSession,
    on_date: Optional[date] = None,
    department: Optional[str] = None
) -> List[Dict[str, Any]]:
    rows = await _records_for_day(session, on_date or utcnow().date(), department)
    return [
        {
            **_employee_fields(employee),
            "expected_login_time": record.expected_login_time,
            "actual_login_time": record.actual_login_time,
            "lateness_minutes": record.lateness_minutes or 0,
            "logged_from_ip": record.logged_from_ip,
            "exception_applied": bool(record.exception_applied),
        }
        for record, employee in rows
        if record.status == AttendanceStatus.LATE.value
    ]


async def get_absent_employees(
    session: AsyncSession,
    on_date: Optional[date] = None,
    department: Optional[str] = None
) -> List[Dict[str, Any]]:
    rows = await _records_for_day(session, on_date or utcnow().date(), department)
    return [
        {
            **_employee_fields(employee),
            "expected_login_time": record.expected_login_time,
            "status": record.status,
            "exception_applied": bool(record.exception_applied),
        }
        for record, employee in rows
        if record.status in ABSENT_STATUSES
    ]


def filter_late(late: Sequence[Dict[str, Any]], selected_statuses: Sequence[str]) -> List[Dict[str, Any]]:
    """Late rows are shown when no filter is set or ``late`` is selected."""
    if not selected_statuses:
        return list(late)
    return list(late) if "late" in selected_statuses else []


def filter_absent(absent: Sequence[Dict[str, Any]], selected_statuses: Sequence[str]) -> List[Dict[str, Any]]:
    """Absent rows are shown when no filter is set or ``absent``/``awol`` is selected."""
    if not selected_statuses:
        return list(absent)
    if "absent" in selected_statuses or "awol" in selected_statuses:
        return list(absent)
    return []


def parse_status_filters(raw: Optional[str]) -> List[str]:
    """
    Raises:
        ValueError: unknown status
    """
    if not raw:
        return []
    statuses = [s.strip().lower() for s in raw.split(",") if s.strip()]
    unknown = [s for s in statuses if s not in STATUS_FILTERS]
    if unknown:
        raise ValueError(f"Unknown status filter(s): {', '.join(unknown)}")
    return statuses


def build_export_rows(
    late: Sequence[Dict[str, Any]],
    absent: Sequence[Dict[str, Any]],
    on_date: date
) -> List[List[Any]]:
    """Late rows then absent rows in the export column order."""
    day = on_date.isoformat()
    rows = []
    for emp in late:
        rows.append([
            emp["employee_id"], emp["employee_name"], emp["role"], emp["department"].upper(), day,
            "Late", emp["lateness_minutes"], emp["expected_login_time"], emp["actual_login_time"],
            "Yes" if emp.get("exception_applied") else "No",
        ])
    for emp in absent:
        rows.append([
            emp["employee_id"], emp["employee_name"], emp["role"], emp["department"].upper(), day,
            "Absent", 0, emp["expected_login_time"], "N/A",
            "Yes" if emp.get("exception_applied") else "No",
        ])
    return rows


async def log_attendance_export(
    session: AsyncSession,
    actor_id: UUID,
    export_type: str,
    on_date: date,
    department: Optional[str],
    statuses: Sequence[str],
    record_count: int,
    ip_address: Optional[str] = None
) -> None:
    role = await permissions.get_employee_role(session, actor_id)
    await log_admin_action(
        session,
        actor_id=actor_id,
        action="attendance_export",
        details={
            "export_type": export_type.upper(),
            "exported_by_role": role or "unknown",
            "applied_filters": {
                "start_date": on_date.isoformat(),
                "end_date": on_date.isoformat(),
                "department": department,
                "status": ",".join(statuses) if statuses else None,
            },
            "record_count": record_count,
            "export_timestamp": utcnow().isoformat(),
        },
        ip_address=ip_address
    )


async def get_employee_attendance_history(
    session: AsyncSession,
    employee_id: UUID,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None
) -> List[Dict[str, Any]]:
    """Attendance of one employee, newest first; defaults to the last 30 days."""
    end_date = end_date or utcnow().date()
    start_date = start_date or end_date - timedelta(days=30)
    result = await session.execute(
        select(AttendanceRecord)
        .where(
            AttendanceRecord.employee_id == employee_id,
            AttendanceRecord.attendance_date >= start_date,
            AttendanceRecord.attendance_date <= end_date
        )
        .order_by(AttendanceRecord.attendance_date.desc())
    )
    return [record.to_dict() for record in result.scalars().all()]


async def get_departments(session: AsyncSession) -> List[str]:
    result = await session.execute(
        select(distinct(Employee.department))
        .where(Employee.department.isnot(None), Employee.is_active.is_(True))
        .order_by(Employee.department)
    )
    return [d for d in result.scalars().all() if d]


def lateness_minutes(expected: str, actual: str) -> int:
    """Minutes between two ``HH:MM`` times, never negative."""
    expected_at = datetime.strptime(expected, "%H:%M")
    actual_at = datetime.strptime(actual[:5], "%H:%M")
    return max(0, int((actual_at - expected_at).total_seconds() // 60))


async def record_manual_attendance(
    session: AsyncSession,
    employee_id: UUID,
    attendance_date: date,
    actual_login_time: str,
    reason: str,
    admin_id: UUID
) -> AttendanceRecord:
    """
    Record or correct an employee's login for a day.

    Raises:
        LookupError: employee not found
        ValueError: missing reason or malformed time
    """
    if not reason or not reason.strip():
        raise ValueError("Reason is required for manual attendance entries")

    employee = (await session.execute(select(Employee).where(Employee.id == employee_id))).scalar_one_or_none()
    if employee is None:
        raise LookupError("Employee not found")

    result = await session.execute(
        select(AttendanceRecord).where(
            AttendanceRecord.employee_id == employee_id,
            AttendanceRecord.attendance_date == attendance_date
        )
    )
    record = result.scalar_one_or_none()
    if record is None:
        record = AttendanceRecord(employee_id=employee_id, attendance_date=attendance_date, expected_login_time="09:00")
        session.add(record)

    late_by = lateness_minutes(record.expected_login_time or "09:00", actual_login_time)
    record.actual_login_time = actual_login_time[:5]
    record.status = AttendanceStatus.LATE.value if late_by > 0 else AttendanceStatus.ON_TIME.value
    record.lateness_minutes = late_by
    record.exception_applied = True
    record.manual_entry_reason = reason.strip()
    record.recorded_by = admin_id
    await session.flush()

    await log_admin_action(
        session,
        actor_id=admin_id,
        action="MANUAL_ATTENDANCE_RECORDED",
        table_name="attendance_records",
        record_id=str(record.id),
        details={"employee_id": str(employee_id), "date": attendance_date.isoformat(), "reason": reason.strip()}
    )
    return record

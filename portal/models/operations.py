"""
Back-office models: agent requests, attendance and financial close
"""

from sqlalchemy import Column, String, Integer, Date, DateTime, Text, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy import JSON
from sqlalchemy.sql import func
from portal.db.base import Base
from portal.core.timeutils import utcnow
from portal.models.enums import AgentRequestStatus, PeriodStatus
import uuid


class AgentRequest(Base):
    """A member's service request handled by an agent"""
    __tablename__ = "agent_requests"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    assigned_agent_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=True)
    status = Column(String(32), nullable=False, default=AgentRequestStatus.SUBMITTED.value)
    request_type = Column(String(64), nullable=True)
    case_notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            "id": str(self.id),
            "user_id": str(self.user_id),
            "assigned_agent_id": str(self.assigned_agent_id) if self.assigned_agent_id else None,
            "status": self.status,
            "request_type": self.request_type,
            "case_notes": self.case_notes,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None
        }


class AttendanceRecord(Base):
    """Daily login attendance of an employee"""
    __tablename__ = "attendance_records"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    employee_id = Column(UUID(as_uuid=True), ForeignKey("employees.id", ondelete="CASCADE"), nullable=False)
    attendance_date = Column(Date, nullable=False)
    expected_login_time = Column(String(8), nullable=False, default="09:00")
    actual_login_time = Column(String(8), nullable=True)
    status = Column(String(16), nullable=False)
    lateness_minutes = Column(Integer, nullable=True)
    exception_applied = Column(Boolean, nullable=False, default=False)
    manual_entry_reason = Column(Text, nullable=True)
    logged_from_ip = Column(String(64), nullable=True)
    recorded_by = Column(UUID(as_uuid=True), nullable=True)

    __table_args__ = (
        UniqueConstraint('employee_id', 'attendance_date', name='uq_attendance_employee_date'),
    )

    def to_dict(self):
        return {
            "attendance_date": self.attendance_date.isoformat() if self.attendance_date else None,
            "expected_login_time": self.expected_login_time,
            "actual_login_time": self.actual_login_time,
            "status": self.status,
            "lateness_minutes": self.lateness_minutes,
            "exception_applied": self.exception_applied,
            "manual_entry_reason": self.manual_entry_reason,
        }


class FinancialClosePeriod(Base):
    """Monthly accounting period"""
    __tablename__ = "financial_close_periods"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    period = Column(String(7), nullable=False, unique=True)
    status = Column(String(16), nullable=False, default=PeriodStatus.OPEN.value)
    closed_by = Column(UUID(as_uuid=True), nullable=True)
    closed_at = Column(DateTime(timezone=True), nullable=True)
    locked_by = Column(UUID(as_uuid=True), nullable=True)
    locked_at = Column(DateTime(timezone=True), nullable=True)
    unlocked_by = Column(UUID(as_uuid=True), nullable=True)
    unlocked_at = Column(DateTime(timezone=True), nullable=True)
    unlock_reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    def to_dict(self):
        return {
            "id": str(self.id),
            "period": self.period,
            "status": self.status,
            "closed_by": str(self.closed_by) if self.closed_by else None,
            "closed_at": self.closed_at.isoformat() if self.closed_at else None,
            "locked_at": self.locked_at.isoformat() if self.locked_at else None,
            "unlocked_at": self.unlocked_at.isoformat() if self.unlocked_at else None,
            "unlock_reason": self.unlock_reason,
        }


class MonthlyFinancialReport(Base):
    """Report generated when a period is closed"""
    __tablename__ = "monthly_financial_reports"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    close_period_id = Column(UUID(as_uuid=True), ForeignKey("financial_close_periods.id", ondelete="CASCADE"), nullable=False)
    report_type = Column(String(32), nullable=False)
    report_data = Column(JSON, nullable=False)
    generated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    __table_args__ = (
        UniqueConstraint('close_period_id', 'report_type', name='uq_report_period_type'),
    )

    def to_dict(self):
        return {
            "id": str(self.id),
            "close_period_id": str(self.close_period_id),
            "report_type": self.report_type,
            "report_data": self.report_data,
            "generated_at": self.generated_at.isoformat() if self.generated_at else None
        }

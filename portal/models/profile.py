"""
Profile and employee models
"""

from sqlalchemy import Column, String, DateTime, Text, Boolean, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from portal.db.base import Base
from portal.core.timeutils import utcnow
from portal.models.enums import ProfileRole
import uuid


class Profile(Base):
    """Profile model - one row per authenticated user"""
    __tablename__ = "profiles"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), nullable=False, unique=True)
    full_name = Column(String(255), nullable=True)
    password_hash = Column(Text, nullable=True)
    role = Column(String(32), nullable=False, default=ProfileRole.MEMBER.value)
    country_code = Column(String(8), nullable=True, default="BD")
    agent_status = Column(String(32), nullable=True)
    referral_code = Column(String(32), nullable=True, unique=True)
    referred_by_code = Column(String(32), nullable=True)
    verification_notes = Column(Text, nullable=True)
    is_test_account = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    def __repr__(self):
        return f"<Profile(id={self.id}, email={self.email}, role={self.role})>"

    def to_dict(self):
        return {
            "id": str(self.id),
            "email": self.email,
            "full_name": self.full_name,
            "role": self.role,
            "country_code": self.country_code,
            "agent_status": self.agent_status,
            "referral_code": self.referral_code,
            "verification_notes": self.verification_notes,
            "is_test_account": self.is_test_account,
            "created_at": self.created_at.isoformat() if self.created_at else None
        }


class Employee(Base):
    """Employee model - staff record linked to a profile"""
    __tablename__ = "employees"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, unique=True)
    employee_code = Column(String(32), nullable=True, unique=True)
    full_name = Column(String(255), nullable=True)
    role_category = Column(String(32), nullable=False)
    department = Column(String(64), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    def __repr__(self):
        return f"<Employee(id={self.id}, user_id={self.user_id}, role_category={self.role_category})>"


class AdminHierarchy(Base):
    """Who created which admin"""
    __tablename__ = "admin_hierarchy"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    admin_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    created_by = Column(UUID(as_uuid=True), nullable=True)
    role = Column(String(32), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    def to_dict(self):
        return {
            "id": str(self.id),
            "admin_id": str(self.admin_id),
            "created_by": str(self.created_by) if self.created_by else None,
            "role": self.role,
            "created_at": self.created_at.isoformat() if self.created_at else None
        }

"""
General ledger and prize pool split configuration models
"""

from sqlalchemy import Column, String, Numeric, DateTime, Boolean, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from portal.db.base import Base
from portal.core.timeutils import utcnow
import uuid


class LedgerEntry(Base):
    """One line of a double-entry transaction"""
    __tablename__ = "general_ledger"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    transaction_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    account_code = Column(String(8), nullable=False, index=True)
    debit = Column(Numeric(30, 2), nullable=False, default=0)
    credit = Column(Numeric(30, 2), nullable=False, default=0)
    description = Column(Text, nullable=True)
    reference_type = Column(String(64), nullable=True)
    reference_id = Column(String(64), nullable=True)
    period = Column(String(7), nullable=False, index=True)
    created_by = Column(UUID(as_uuid=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    def __repr__(self):
        return f"<LedgerEntry(account={self.account_code}, dr={self.debit}, cr={self.credit})>"

    def to_dict(self):
        return {
            "id": str(self.id),
            "transaction_id": str(self.transaction_id),
            "account_code": self.account_code,
            "debit": float(self.debit or 0),
            "credit": float(self.credit or 0),
            "description": self.description,
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "period": self.period,
            "created_at": self.created_at.isoformat() if self.created_at else None
        }


class PrizePoolSplitConfig(Base):
    """Split of the prize pool between random draws and community support"""
    __tablename__ = "prize_pool_split_config"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    random_percentage = Column(Numeric(5, 2), nullable=False)
    community_percentage = Column(Numeric(5, 2), nullable=False)
    effective_from = Column(DateTime(timezone=True), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_by = Column(UUID(as_uuid=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    def to_dict(self):
        return {
            "id": str(self.id),
            "random_percentage": float(self.random_percentage),
            "community_percentage": float(self.community_percentage),
            "effective_from": self.effective_from.isoformat() if self.effective_from else None,
            "is_active": self.is_active,
        }

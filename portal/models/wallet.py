"""
Wallet and withdrawal request models
"""

from sqlalchemy import Column, String, Numeric, DateTime, Text, CheckConstraint, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from portal.db.base import Base
from portal.core.timeutils import utcnow
from portal.models.enums import WithdrawalStatus
import uuid


class Wallet(Base):
    """Member wallet holding prize payouts and bonuses"""
    __tablename__ = "wallets"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, unique=True)
    balance = Column(Numeric(30, 2), nullable=False, default=0)
    total_earned = Column(Numeric(30, 2), nullable=False, default=0)
    total_withdrawn = Column(Numeric(30, 2), nullable=False, default=0)
    currency = Column(String(8), nullable=False, default="BDT")
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint('balance >= 0', name='chk_wallet_balance_nonneg'),
        CheckConstraint('total_earned >= 0', name='chk_wallet_earned_nonneg'),
        CheckConstraint('total_withdrawn >= 0', name='chk_wallet_withdrawn_nonneg'),
    )

    def __repr__(self):
        return f"<Wallet(id={self.id}, user_id={self.user_id}, balance={self.balance})>"

    def to_dict(self):
        return {
            "user_id": str(self.user_id),
            "balance": float(self.balance or 0),
            "total_earned": float(self.total_earned or 0),
            "total_withdrawn": float(self.total_withdrawn or 0),
            "currency": self.currency,
        }


class WithdrawalRequest(Base):
    """Member request to withdraw wallet funds"""
    __tablename__ = "withdrawal_requests"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    amount = Column(Numeric(30, 2), nullable=False)
    currency = Column(String(8), nullable=False, default="BDT")
    payment_method = Column(String(64), nullable=False)
    account_details = Column(String(256), nullable=False)
    status = Column(String(32), nullable=False, default=WithdrawalStatus.PENDING.value)
    admin_notes = Column(Text, nullable=True)
    processed_by = Column(UUID(as_uuid=True), nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    def __repr__(self):
        return f"<WithdrawalRequest(id={self.id}, user_id={self.user_id}, amount={self.amount}, status={self.status})>"

    def to_dict(self):
        return {
            "id": str(self.id),
            "user_id": str(self.user_id),
            "amount": float(self.amount) if self.amount else 0,
            "currency": self.currency,
            "payment_method": self.payment_method,
            "account_details": self.account_details,
            "status": self.status,
            "admin_notes": self.admin_notes,
            "processed_at": self.processed_at.isoformat() if self.processed_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None
        }

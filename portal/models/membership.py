"""
Membership, payment, referral and country settings models
"""

from sqlalchemy import Column, String, Integer, Numeric, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from portal.db.base import Base
from portal.core.timeutils import utcnow
from portal.models.enums import MembershipStatus, PaymentStatus, ReferralStatus
import uuid


class Membership(Base):
    """Membership model - one per member"""
    __tablename__ = "memberships"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, unique=True)
    status = Column(String(32), nullable=False, default=MembershipStatus.PENDING.value)
    membership_number = Column(Integer, nullable=True, unique=True)
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)
    activated_at = Column(DateTime(timezone=True), nullable=True)
    payment_method = Column(String(64), nullable=True)
    transaction_id = Column(String(128), nullable=True)
    fee_amount = Column(Numeric(30, 2), nullable=True)
    fee_currency = Column(String(8), nullable=False, default="BDT")
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    def __repr__(self):
        return f"<Membership(id={self.id}, user_id={self.user_id}, status={self.status})>"

    def to_dict(self):
        return {
            "id": str(self.id),
            "user_id": str(self.user_id),
            "status": self.status,
            "membership_number": self.membership_number,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "payment_method": self.payment_method,
            "fee_amount": float(self.fee_amount) if self.fee_amount is not None else None,
            "fee_currency": self.fee_currency,
        }


class Payment(Base):
    """Confirmed membership payment"""
    __tablename__ = "payments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    membership_id = Column(UUID(as_uuid=True), ForeignKey("memberships.id"), nullable=True)
    amount = Column(Numeric(30, 2), nullable=False)
    currency = Column(String(8), nullable=False, default="BDT")
    payment_method = Column(String(64), nullable=False)
    transaction_reference = Column(String(128), nullable=False, unique=True)
    status = Column(String(32), nullable=False, default=PaymentStatus.CONFIRMED.value)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    def __repr__(self):
        return f"<Payment(id={self.id}, user_id={self.user_id}, amount={self.amount}, status={self.status})>"

    def to_dict(self):
        return {
            "id": str(self.id),
            "user_id": str(self.user_id),
            "membership_id": str(self.membership_id) if self.membership_id else None,
            "amount": float(self.amount) if self.amount is not None else 0,
            "currency": self.currency,
            "payment_method": self.payment_method,
            "transaction_reference": self.transaction_reference,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None
        }


class Referral(Base):
    """Referral of a new member by an existing one"""
    __tablename__ = "referrals"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    referrer_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    referred_user_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, unique=True)
    referral_code = Column(String(32), nullable=False)
    bonus_amount = Column(Numeric(30, 2), nullable=False, default=0)
    bonus_currency = Column(String(8), nullable=False, default="BDT")
    status = Column(String(16), nullable=False, default=ReferralStatus.PENDING.value)
    bonus_paid_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    def to_dict(self):
        return {
            "id": str(self.id),
            "referrer_id": str(self.referrer_id),
            "referred_user_id": str(self.referred_user_id),
            "referral_code": self.referral_code,
            "bonus_amount": float(self.bonus_amount) if self.bonus_amount is not None else 0,
            "bonus_currency": self.bonus_currency,
            "status": self.status,
            "bonus_paid_at": self.bonus_paid_at.isoformat() if self.bonus_paid_at else None,
        }


class CountrySettings(Base):
    """Per-country business settings"""
    __tablename__ = "country_settings"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    country_code = Column(String(8), nullable=False, unique=True)
    membership_fee = Column(Numeric(30, 2), nullable=False, default=0)
    currency_code = Column(String(8), nullable=False, default="BDT")
    prize_pool_percentage = Column(Numeric(5, 2), nullable=False, default=30)
    referral_bonus_amount = Column(Numeric(30, 2), nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            "country_code": self.country_code,
            "membership_fee": float(self.membership_fee or 0),
            "currency_code": self.currency_code,
            "prize_pool_percentage": float(self.prize_pool_percentage or 0),
            "referral_bonus_amount": float(self.referral_bonus_amount or 0),
        }

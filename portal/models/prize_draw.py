"""
Prize draw models: draws, prizes, entries and winners
"""

from sqlalchemy import (
    Column, String, Integer, Numeric, DateTime, Text, Boolean,
    ForeignKey, UniqueConstraint, CheckConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from portal.db.base import Base
from portal.core.timeutils import utcnow
from portal.models.enums import (
    AnnouncementStatus, PoolType, PrizeStatus, ClaimStatus, PayoutStatus,
)
import uuid


class PrizeDraw(Base):
    """Prize draw for one country"""
    __tablename__ = "prize_draws"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    country_code = Column(String(8), nullable=False)
    title = Column(String(255), nullable=False)
    draw_date = Column(DateTime(timezone=True), nullable=False)
    pool_type = Column(String(16), nullable=False, default=PoolType.RANDOM.value)
    announcement_status = Column(String(16), nullable=False, default=AnnouncementStatus.COMING_SOON.value)
    announced_at = Column(DateTime(timezone=True), nullable=True)
    estimated_prize_pool_amount = Column(Numeric(30, 2), nullable=True)
    estimated_prize_pool_currency = Column(String(8), nullable=True)
    estimated_prize_pool_percentage = Column(Numeric(5, 2), nullable=True)
    forecast_member_count = Column(Integer, nullable=True)
    disclaimer_text = Column(Text, nullable=True)
    fairness_locked = Column(Boolean, nullable=False, default=False)
    leftover_amount = Column(Numeric(30, 2), nullable=True)
    created_by = Column(UUID(as_uuid=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    def __repr__(self):
        return f"<PrizeDraw(id={self.id}, country={self.country_code}, status={self.announcement_status})>"

    def to_dict(self):
        return {
            "id": str(self.id),
            "countryCode": self.country_code,
            "title": self.title,
            "drawDate": self.draw_date.isoformat() if self.draw_date else None,
            "poolType": self.pool_type,
            "announcementStatus": self.announcement_status,
            "announcedAt": self.announced_at.isoformat() if self.announced_at else None,
            "estimatedPrizePoolAmount": float(self.estimated_prize_pool_amount or 0),
            "estimatedPrizePoolCurrency": self.estimated_prize_pool_currency or "BDT",
            "estimatedPrizePoolPercentage": float(self.estimated_prize_pool_percentage or 30),
            "forecastMemberCount": self.forecast_member_count or 0,
            "disclaimerText": self.disclaimer_text,
            "fairnessLocked": bool(self.fairness_locked),
            "leftoverAmount": float(self.leftover_amount) if self.leftover_amount is not None else None,
        }


class Prize(Base):
    """A prize offered in a draw"""
    __tablename__ = "prize_draw_prizes"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    draw_id = Column(UUID(as_uuid=True), ForeignKey("prize_draws.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    prize_type = Column(String(32), nullable=False)
    award_type = Column(String(32), nullable=False)
    prize_value_amount = Column(Numeric(30, 2), nullable=False)
    currency_code = Column(String(8), nullable=False, default="BDT")
    number_of_winners = Column(Integer, nullable=False, default=1)
    status = Column(String(16), nullable=False, default=PrizeStatus.ACTIVE.value)
    created_by = Column(UUID(as_uuid=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    __table_args__ = (
        CheckConstraint('number_of_winners >= 1', name='chk_prize_winners_positive'),
    )

    def __repr__(self):
        return f"<Prize(id={self.id}, draw_id={self.draw_id}, award_type={self.award_type})>"

    @property
    def total_value(self) -> float:
        return float(self.prize_value_amount or 0) * int(self.number_of_winners or 0)

    def to_dict(self):
        return {
            "id": str(self.id),
            "drawId": str(self.draw_id),
            "title": self.title,
            "description": self.description,
            "prizeType": self.prize_type,
            "awardType": self.award_type,
            "prizeValueAmount": float(self.prize_value_amount or 0),
            "currencyCode": self.currency_code,
            "numberOfWinners": self.number_of_winners,
            "status": self.status,
        }


class PrizeDrawEntry(Base):
    """A member's entry in a draw"""
    __tablename__ = "prize_draw_entries"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    prize_draw_id = Column(UUID(as_uuid=True), ForeignKey("prize_draws.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    membership_id = Column(UUID(as_uuid=True), ForeignKey("memberships.id"), nullable=True)
    entered_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    __table_args__ = (
        UniqueConstraint('prize_draw_id', 'user_id', name='uq_entry_draw_user'),
    )

    def to_dict(self):
        return {
            "id": str(self.id),
            "drawId": str(self.prize_draw_id),
            "userId": str(self.user_id),
            "enteredAt": self.entered_at.isoformat() if self.entered_at else None,
        }


class PrizeDrawWinner(Base):
    """Winner of a prize, random or community-assigned"""
    __tablename__ = "prize_draw_winners"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    draw_id = Column(UUID(as_uuid=True), ForeignKey("prize_draws.id", ondelete="CASCADE"), nullable=False)
    prize_id = Column(UUID(as_uuid=True), ForeignKey("prize_draw_prizes.id", ondelete="CASCADE"), nullable=False)
    winner_user_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    award_type = Column(String(32), nullable=False)
    selected_at = Column(DateTime(timezone=True), default=utcnow)
    selected_by_admin_id = Column(UUID(as_uuid=True), nullable=True)
    claim_status = Column(String(16), nullable=False, default=ClaimStatus.PENDING.value)
    claim_deadline_at = Column(DateTime(timezone=True), nullable=True)
    claimed_at = Column(DateTime(timezone=True), nullable=True)
    payout_status = Column(String(16), nullable=False, default=PayoutStatus.PENDING.value)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    assignment_reason = Column(Text, nullable=True)

    def __repr__(self):
        return f"<PrizeDrawWinner(id={self.id}, prize_id={self.prize_id}, user={self.winner_user_id}, claim={self.claim_status})>"

    def to_dict(self):
        return {
            "id": str(self.id),
            "drawId": str(self.draw_id),
            "prizeId": str(self.prize_id),
            "winnerUserId": str(self.winner_user_id),
            "awardType": self.award_type,
            "selectedAt": self.selected_at.isoformat() if self.selected_at else None,
            "claimStatus": self.claim_status or ClaimStatus.PENDING.value,
            "claimDeadlineAt": self.claim_deadline_at.isoformat() if self.claim_deadline_at else None,
            "claimedAt": self.claimed_at.isoformat() if self.claimed_at else None,
            "payoutStatus": self.payout_status or PayoutStatus.PENDING.value,
        }

"""
Referral repository
"""

from decimal import Decimal
from typing import List, Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc

from portal.models.enums import ReferralStatus
from portal.models.membership import Referral


async def create_referral(
    session: AsyncSession,
    referrer_id: UUID,
    referred_user_id: UUID,
    referral_code: str,
    bonus_amount: Decimal = Decimal("0"),
    bonus_currency: str = "BDT"
) -> Referral:
    referral = Referral(
        referrer_id=referrer_id,
        referred_user_id=referred_user_id,
        referral_code=referral_code,
        bonus_amount=bonus_amount,
        bonus_currency=bonus_currency,
        status=ReferralStatus.PENDING.value
    )
    session.add(referral)
    await session.flush()
    return referral


async def get_referral(session: AsyncSession, referral_id: UUID) -> Optional[Referral]:
    result = await session.execute(select(Referral).where(Referral.id == referral_id))
    return result.scalar_one_or_none()


async def get_referral_for_user(session: AsyncSession, referred_user_id: UUID) -> Optional[Referral]:
    result = await session.execute(
        select(Referral).where(Referral.referred_user_id == referred_user_id)
    )
    return result.scalar_one_or_none()


async def list_referrals(
    session: AsyncSession,
    status: Optional[str] = None,
    referrer_id: Optional[UUID] = None,
    limit: int = 100
) -> List[Referral]:
    query = select(Referral).order_by(desc(Referral.created_at))
    if status:
        query = query.where(Referral.status == status)
    if referrer_id:
        query = query.where(Referral.referrer_id == referrer_id)
    result = await session.execute(query.limit(limit))
    return list(result.scalars().all())

"""
Membership, payment and country settings repository
"""

import logging
from datetime import timedelta
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, func, desc
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.timeutils import utcnow
from portal.models.enums import MembershipStatus, PaymentStatus
from portal.models.membership import CountrySettings, Membership, Payment
from portal.models.profile import Profile

logger = logging.getLogger(__name__)


async def get_membership_by_user(session: AsyncSession, user_id: UUID) -> Optional[Membership]:
    result = await session.execute(
        select(Membership).where(Membership.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def get_active_membership(session: AsyncSession, user_id: UUID) -> Optional[Membership]:
    """
    Return the membership of a user only if it is active and not past its
    end date.
    """
    now = utcnow()
    result = await session.execute(
        select(Membership).where(
            Membership.user_id == user_id,
            Membership.status == MembershipStatus.ACTIVE.value,
            Membership.end_date >= now
        )
    )
    return result.scalar_one_or_none()


async def create_membership(
    session: AsyncSession,
    user_id: UUID,
    status: str = MembershipStatus.PENDING.value,
    **fields
) -> Membership:
    membership = Membership(user_id=user_id, status=status, **fields)
    session.add(membership)
    await session.flush()
    return membership


async def activate_membership(
    session: AsyncSession,
    membership: Membership,
    payment_method: str,
    transaction_id: Optional[str] = None,
    duration_days: int = 365,
    membership_number: Optional[int] = None
) -> Membership:
    """
    Activate a membership for ``duration_days`` starting now.

    Args:
        session: Database session
        membership: Membership to activate
        payment_method: How the fee was paid
        transaction_id: Gateway / bank reference
        duration_days: Length of the membership
        membership_number: Assigned only when the membership has none

    Returns:
        Updated Membership instance
    """
    now = utcnow()
    membership.status = MembershipStatus.ACTIVE.value
    membership.start_date = now
    membership.end_date = now + timedelta(days=duration_days)
    membership.activated_at = now
    membership.payment_method = payment_method
    membership.transaction_id = transaction_id
    if membership_number and not membership.membership_number:
        membership.membership_number = membership_number
    await session.flush()
    return membership


async def count_active_members(session: AsyncSession, country_code: Optional[str] = None) -> int:
    """Active memberships whose end date has not passed."""
    query = select(func.count(Membership.id)).where(
        Membership.status == MembershipStatus.ACTIVE.value,
        Membership.end_date >= utcnow()
    )
    if country_code:
        query = query.join(Profile, Profile.id == Membership.user_id).where(Profile.country_code == country_code)
    result = await session.execute(query)
    return int(result.scalar() or 0)


async def count_members_activated_since(session: AsyncSession, since, country_code: Optional[str] = None) -> int:
    query = select(func.count(Membership.id)).where(
        Membership.status == MembershipStatus.ACTIVE.value,
        Membership.activated_at >= since
    )
    if country_code:
        query = query.join(Profile, Profile.id == Membership.user_id).where(Profile.country_code == country_code)
    result = await session.execute(query)
    return int(result.scalar() or 0)


async def membership_number_exists(session: AsyncSession, number: int) -> bool:
    result = await session.execute(
        select(Membership.id).where(Membership.membership_number == number)
    )
    return result.scalar_one_or_none() is not None


# Payments

async def create_payment_record(
    session: AsyncSession,
    user_id: UUID,
    amount: Decimal,
    payment_method: str,
    transaction_reference: str,
    membership_id: Optional[UUID] = None,
    currency: str = "BDT"
) -> Payment:
    """
    Record a confirmed payment.

    Args:
        session: Database session
        user_id: Paying member
        amount: Amount paid
        payment_method: Payment method (bkash, bank, card, ...)
        transaction_reference: Unique gateway reference
        membership_id: Membership paid for
        currency: Currency code

    Returns:
        Created Payment instance
    """
    payment = Payment(
        user_id=user_id,
        membership_id=membership_id,
        amount=Decimal(str(amount)),
        currency=currency,
        payment_method=payment_method,
        transaction_reference=transaction_reference,
        status=PaymentStatus.CONFIRMED.value
    )
    session.add(payment)
    await session.flush()
    return payment


async def get_payment_by_reference(session: AsyncSession, transaction_reference: str) -> Optional[Payment]:
    result = await session.execute(
        select(Payment).where(Payment.transaction_reference == transaction_reference)
    )
    return result.scalar_one_or_none()


async def get_user_payments(session: AsyncSession, user_id: UUID) -> List[Payment]:
    result = await session.execute(
        select(Payment)
        .where(Payment.user_id == user_id)
        .order_by(desc(Payment.created_at))
    )
    return list(result.scalars().all())


# Country settings

async def get_country_settings(session: AsyncSession, country_code: str) -> Optional[CountrySettings]:
    result = await session.execute(
        select(CountrySettings).where(CountrySettings.country_code == country_code)
    )
    return result.scalar_one_or_none()


async def upsert_country_settings(session: AsyncSession, country_code: str, **fields) -> CountrySettings:
    settings_row = await get_country_settings(session, country_code)
    if settings_row is None:
        settings_row = CountrySettings(country_code=country_code, **fields)
        session.add(settings_row)
    else:
        for key, value in fields.items():
            setattr(settings_row, key, value)
    await session.flush()
    return settings_row

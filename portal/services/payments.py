"""
Membership payment confirmation
"""

import logging
import secrets
import string
from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.config import settings
from portal.models.enums import MembershipStatus
from portal.models.membership import Referral
from portal.models.profile import Profile
from portal.repos import membership_repo, profile_repo, referral_repo
from portal.services import accounting, messaging

logger = logging.getLogger(__name__)

REFERRAL_ALPHABET = string.ascii_uppercase + string.digits


class PaymentError(Exception):
    """Payment cannot be confirmed; carries the HTTP status to answer with."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def generate_referral_code(full_name: Optional[str]) -> str:
    """``NAME6-RAND6``: first name upper-cased and cut to six characters."""
    name_part = ((full_name or "MEMBER").split() or ["MEMBER"])[0].upper()[:6]
    random_part = "".join(secrets.choice(REFERRAL_ALPHABET) for _ in range(6))
    return f"{name_part}-{random_part}"


async def generate_membership_number(session: AsyncSession) -> int:
    """Random six-digit membership number not already in use."""
    while True:
        number = 100000 + secrets.randbelow(900000)
        if not await membership_repo.membership_number_exists(session, number):
            return number


async def _record_referral(session: AsyncSession, profile: Profile) -> Optional[Referral]:
    if not profile.referred_by_code:
        return None
    referrer = await profile_repo.get_profile_by_referral_code(session, profile.referred_by_code)
    if referrer is None or referrer.id == profile.id:
        logger.warning(f"Unknown referral code {profile.referred_by_code} on profile {profile.id}")
        return None

    existing = await referral_repo.get_referral_for_user(session, profile.id)
    if existing:
        return existing

    country = await membership_repo.get_country_settings(session, profile.country_code or "BD")
    bonus = Decimal(str(country.referral_bonus_amount)) if country else Decimal("0")
    return await referral_repo.create_referral(
        session,
        referrer_id=referrer.id,
        referred_user_id=profile.id,
        referral_code=profile.referred_by_code,
        bonus_amount=bonus,
        bonus_currency=country.currency_code if country else "BDT"
    )


async def confirm_membership_payment(
    session: AsyncSession,
    user_id: UUID,
    payment_method: str,
    transaction_id: str,
    amount=None
) -> Dict[str, Any]:
    """
    Activate a member's pending membership after payment.

    Steps: activate for a year, assign a referral code and membership number
    when missing, record the payment and post it to the ledger, record the
    referral, send the welcome message once.

    Raises:
        PaymentError: membership missing (404) or already active (400)
    """
    membership = await membership_repo.get_membership_by_user(session, user_id)
    if membership is None:
        raise PaymentError("Membership not found", 404)
    if membership.status == MembershipStatus.ACTIVE.value:
        raise PaymentError("Membership already active", 400)

    if await membership_repo.get_payment_by_reference(session, transaction_id):
        raise PaymentError("Payment reference already used", 400)

    profile = await profile_repo.get_profile_by_id(session, user_id)
    if profile is None:
        raise PaymentError("Profile not found", 404)

    membership_number = membership.membership_number or await generate_membership_number(session)
    await membership_repo.activate_membership(
        session,
        membership,
        payment_method=payment_method,
        transaction_id=transaction_id,
        duration_days=settings.membership_duration_days,
        membership_number=membership_number
    )

    if not profile.referral_code:
        profile.referral_code = generate_referral_code(profile.full_name)
        await session.flush()

    if amount is None:
        country = await membership_repo.get_country_settings(session, profile.country_code or "BD")
        amount = membership.fee_amount if membership.fee_amount is not None else (
            country.membership_fee if country else 0
        )
    amount = Decimal(str(amount or 0))
    membership.fee_amount = amount

    payment = await membership_repo.create_payment_record(
        session,
        user_id=user_id,
        amount=amount,
        payment_method=payment_method,
        transaction_reference=transaction_id,
        membership_id=membership.id,
        currency=membership.fee_currency or "BDT"
    )

    if amount > 0:
        success, error, _ = await accounting.on_membership_payment_success(session, amount, payment.id, user_id)
        if not success:
            raise PaymentError(error or "Failed to post membership payment", 400)

    await _record_referral(session, profile)

    welcome = await messaging.send_membership_welcome_message(
        session,
        user_id,
        profile.full_name,
        membership.membership_number,
        referral_code=profile.referral_code,
        end_date=membership.end_date
    )
    if not welcome.get("success"):
        logger.error(f"Failed to send welcome message to {user_id}: {welcome.get('error')}")

    logger.info(f"Membership {membership.id} activated for {user_id} via {payment_method}")
    return {
        "membership": membership.to_dict(),
        "payment": payment.to_dict(),
        "referral_code": profile.referral_code,
    }

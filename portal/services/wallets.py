"""
Wallet withdrawals and referral bonus payouts.

Every balance change is paired with its ledger posting in the same
transaction; the route commits both or neither.
"""

import logging
from decimal import Decimal
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.timeutils import utcnow
from portal.models.enums import ReferralStatus, WithdrawalStatus
from portal.models.membership import Referral
from portal.models.wallet import WithdrawalRequest
from portal.repos import wallet_repo
from portal.services import accounting

logger = logging.getLogger(__name__)


async def request_withdrawal(
    session: AsyncSession,
    user_id: UUID,
    amount,
    payment_method: str,
    account_details: str
) -> WithdrawalRequest:
    """
    Raises:
        ValueError: non-positive amount or amount above the wallet balance
    """
    amount = Decimal(str(amount))
    if amount <= 0:
        raise ValueError("Amount must be positive")

    wallet = await wallet_repo.get_wallet_for_user(session, user_id)
    balance = Decimal(str(wallet.balance)) if wallet else Decimal("0")
    if amount > balance:
        raise ValueError("Insufficient wallet balance")

    withdrawal = await wallet_repo.create_withdrawal_request(
        session, user_id, amount, payment_method, account_details,
        currency=wallet.currency if wallet else "BDT"
    )
    logger.info(f"Withdrawal {withdrawal.id} of {amount} requested by {user_id}")
    return withdrawal


async def approve_withdrawal(
    session: AsyncSession,
    withdrawal: WithdrawalRequest,
    admin_id: UUID,
    notes: str = None
) -> WithdrawalRequest:
    """
    Debit the wallet and post the withdrawal to the ledger.

    Raises:
        ValueError: request not pending, insufficient balance, or posting failed
    """
    if withdrawal.status != WithdrawalStatus.PENDING.value:
        raise ValueError(f"Withdrawal is already {withdrawal.status}")

    success, error, _ = await wallet_repo.debit_wallet_atomic(session, withdrawal.user_id, withdrawal.amount)
    if not success:
        raise ValueError(error)

    success, error, _ = await accounting.record_wallet_withdrawal(
        session, withdrawal.amount, withdrawal.id, created_by=admin_id
    )
    if not success:
        raise ValueError(error)

    withdrawal.status = WithdrawalStatus.APPROVED.value
    withdrawal.admin_notes = notes
    withdrawal.processed_by = admin_id
    withdrawal.processed_at = utcnow()
    await session.flush()
    return withdrawal


async def reject_withdrawal(
    session: AsyncSession,
    withdrawal: WithdrawalRequest,
    admin_id: UUID,
    notes: str = None
) -> WithdrawalRequest:
    if withdrawal.status != WithdrawalStatus.PENDING.value:
        raise ValueError(f"Withdrawal is already {withdrawal.status}")
    withdrawal.status = WithdrawalStatus.REJECTED.value
    withdrawal.admin_notes = notes
    withdrawal.processed_by = admin_id
    withdrawal.processed_at = utcnow()
    await session.flush()
    return withdrawal


async def pay_referral_bonus(session: AsyncSession, referral: Referral, admin_id: UUID) -> Referral:
    """
    Credit the referrer's wallet with a pending referral bonus.

    Raises:
        ValueError: already paid, zero bonus, or posting failed
    """
    if referral.status == ReferralStatus.PAID.value:
        raise ValueError("Referral bonus already paid")
    amount = Decimal(str(referral.bonus_amount or 0))
    if amount <= 0:
        raise ValueError("Referral has no bonus to pay")

    success, error, _ = await accounting.record_referral_bonus(session, amount, referral.id, created_by=admin_id)
    if not success:
        raise ValueError(error)
    success, error, _ = await wallet_repo.credit_wallet_atomic(session, referral.referrer_id, amount, "referral_bonus")
    if not success:
        raise ValueError(error)

    referral.status = ReferralStatus.PAID.value
    referral.bonus_paid_at = utcnow()
    await session.flush()
    logger.info(f"Referral bonus {amount} paid to {referral.referrer_id} for referral {referral.id}")
    return referral

"""
Wallet repository with atomic balance operations
"""

from typing import List, Optional, Tuple
from uuid import UUID
from decimal import Decimal
import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc

from portal.core.timeutils import utcnow
from portal.models.enums import WithdrawalStatus
from portal.models.wallet import Wallet, WithdrawalRequest

logger = logging.getLogger(__name__)


async def get_wallet_for_user(session: AsyncSession, user_id: UUID) -> Optional[Wallet]:
    """
    Get wallet for a specific user.

    Args:
        session: Database session
        user_id: Profile UUID

    Returns:
        Wallet instance or None if not found
    """
    result = await session.execute(
        select(Wallet).where(Wallet.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def create_wallet_for_user(session: AsyncSession, user_id: UUID) -> Wallet:
    """
    Create a wallet for a user, or return the existing one.
    """
    existing_wallet = await get_wallet_for_user(session, user_id)
    if existing_wallet:
        return existing_wallet

    wallet = Wallet(
        user_id=user_id,
        balance=Decimal('0'),
        total_earned=Decimal('0'),
        total_withdrawn=Decimal('0')
    )
    session.add(wallet)
    await session.flush()
    return wallet


async def credit_wallet_atomic(
    session: AsyncSession,
    user_id: UUID,
    amount: Decimal,
    reason: str
) -> Tuple[bool, Optional[str], Optional[Decimal]]:
    """
    Credit a member wallet with row-level locking, creating the wallet on
    first credit. The change is flushed and committed by the caller.

    Args:
        session: Database session
        user_id: Profile UUID
        amount: Amount to credit (must be positive)
        reason: Reason for the credit (e.g. "prize_payout")

    Returns:
        Tuple of (success, error_message, new_balance)
    """
    amount = Decimal(str(amount))
    if amount <= 0:
        return False, "Amount must be positive", None

    try:
        result = await session.execute(
            select(Wallet)
            .where(Wallet.user_id == user_id)
            .with_for_update()
        )
        wallet = result.scalar_one_or_none()
        if not wallet:
            wallet = await create_wallet_for_user(session, user_id)

        wallet.balance = Decimal(str(wallet.balance or 0)) + amount
        wallet.total_earned = Decimal(str(wallet.total_earned or 0)) + amount
        wallet.updated_at = utcnow()
        await session.flush()

        logger.info(f"Credited {amount} to wallet of {user_id} ({reason}). New balance: {wallet.balance}")
        return True, None, wallet.balance

    except Exception as e:
        logger.error(f"Error crediting wallet for user {user_id}: {str(e)}")
        return False, f"Database error: {str(e)}", None


async def debit_wallet_atomic(
    session: AsyncSession,
    user_id: UUID,
    amount: Decimal
) -> Tuple[bool, Optional[str], Optional[Decimal]]:
    """
    Debit a wallet for a withdrawal with row-level locking.

    Returns:
        Tuple of (success, error_message, new_balance)
    """
    amount = Decimal(str(amount))
    if amount <= 0:
        return False, "Amount must be positive", None

    try:
        result = await session.execute(
            select(Wallet)
            .where(Wallet.user_id == user_id)
            .with_for_update()
        )
        wallet = result.scalar_one_or_none()
        if not wallet:
            return False, "Wallet not found", None

        current = Decimal(str(wallet.balance or 0))
        if current < amount:
            return False, "Insufficient wallet balance", None

        wallet.balance = current - amount
        wallet.total_withdrawn = Decimal(str(wallet.total_withdrawn or 0)) + amount
        wallet.updated_at = utcnow()
        await session.flush()
        return True, None, wallet.balance

    except Exception as e:
        logger.error(f"Error debiting wallet for user {user_id}: {str(e)}")
        return False, f"Database error: {str(e)}", None


async def create_withdrawal_request(
    session: AsyncSession,
    user_id: UUID,
    amount: Decimal,
    payment_method: str,
    account_details: str,
    currency: str = "BDT"
) -> WithdrawalRequest:
    withdrawal = WithdrawalRequest(
        user_id=user_id,
        amount=Decimal(str(amount)),
        currency=currency,
        payment_method=payment_method,
        account_details=account_details,
        status=WithdrawalStatus.PENDING.value
    )
    session.add(withdrawal)
    await session.flush()
    return withdrawal


async def get_withdrawal_request(session: AsyncSession, withdrawal_id: UUID) -> Optional[WithdrawalRequest]:
    result = await session.execute(
        select(WithdrawalRequest).where(WithdrawalRequest.id == withdrawal_id)
    )
    return result.scalar_one_or_none()


async def get_withdrawal_requests(
    session: AsyncSession,
    status: Optional[str] = None,
    user_id: Optional[UUID] = None,
    limit: int = 50,
    offset: int = 0
) -> List[WithdrawalRequest]:
    """
    List withdrawal requests, newest first.
    """
    query = select(WithdrawalRequest).order_by(desc(WithdrawalRequest.created_at))
    if status:
        query = query.where(WithdrawalRequest.status == status)
    if user_id:
        query = query.where(WithdrawalRequest.user_id == user_id)
    result = await session.execute(query.limit(limit).offset(offset))
    return list(result.scalars().all())

"""
Double-entry accounting for membership income and the prize pool.

Membership fees split 70% to income and 30% to the restricted Prize Draw Pool
(account 2100). Prize payouts and community support draw the pool down; the
pool balance is never reported below zero.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import UUID, uuid4

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.timeutils import utcnow, period_of, ensure_aware
from portal.models.enums import PeriodStatus
from portal.models.ledger import LedgerEntry, PrizePoolSplitConfig
from portal.models.operations import FinancialClosePeriod

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

# Chart of accounts
CASH_BANK = "1000"
STRIPE_CLEARING = "1100"
WALLET_CLEARING = "1200"
MEMBER_WALLET_LIABILITY = "2000"
PRIZE_POOL_PAYABLE = "2100"
PENDING_WITHDRAWALS = "2200"
TAX_PAYABLE = "2300"
RETAINED_EARNINGS = "3000"
MEMBERSHIP_FEES_NET = "4000"
AGENT_FEES = "4100"
OTHER_SERVICE_INCOME = "4200"
REFERRAL_BONUSES = "5000"
TIER_BONUSES = "5100"
COMMUNITY_SUPPORT = "5200"
OPERATIONAL_EXPENSES = "5300"

ACCOUNTS: Dict[str, Tuple[str, str]] = {
    CASH_BANK: ("Cash / Bank", "asset"),
    STRIPE_CLEARING: ("Stripe Clearing", "asset"),
    WALLET_CLEARING: ("Wallet Clearing", "asset"),
    MEMBER_WALLET_LIABILITY: ("Member Wallet Liability", "liability"),
    PRIZE_POOL_PAYABLE: ("Prize Draw Pool Payable", "liability"),
    PENDING_WITHDRAWALS: ("Pending Withdrawals", "liability"),
    TAX_PAYABLE: ("Tax Payable", "liability"),
    RETAINED_EARNINGS: ("Retained Earnings", "equity"),
    MEMBERSHIP_FEES_NET: ("Membership Fees (Net)", "revenue"),
    AGENT_FEES: ("Agent Fees", "revenue"),
    OTHER_SERVICE_INCOME: ("Other Service Income", "revenue"),
    REFERRAL_BONUSES: ("Referral Bonuses", "expense"),
    TIER_BONUSES: ("Tier Bonuses", "expense"),
    COMMUNITY_SUPPORT: ("Community Support", "expense"),
    OPERATIONAL_EXPENSES: ("Operational Expenses", "expense"),
}

MEMBERSHIP_INCOME_SHARE = Decimal("0.70")
PRIZE_POOL_SHARE = Decimal("0.30")

DEFAULT_SPLIT = {"random_percentage": 70.0, "community_percentage": 30.0}


def _money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(CENT, rounding=ROUND_HALF_UP)


def debit(account_code: str, amount) -> Dict:
    return {"account_code": account_code, "debit": _money(amount), "credit": Decimal("0")}


def credit(account_code: str, amount) -> Dict:
    return {"account_code": account_code, "debit": Decimal("0"), "credit": _money(amount)}


async def is_period_locked(session: AsyncSession, period: str) -> bool:
    try:
        result = await session.execute(
            select(FinancialClosePeriod.status).where(FinancialClosePeriod.period == period)
        )
        return result.scalar_one_or_none() == PeriodStatus.LOCKED.value
    except Exception as e:
        logger.error(f"Error checking period lock for {period}: {e}")
        return False


async def create_ledger_transaction(
    session: AsyncSession,
    entries: List[Dict],
    description: str,
    reference_type: Optional[str] = None,
    reference_id: Optional[str] = None,
    created_by: Optional[UUID] = None
) -> Tuple[bool, Optional[str], Optional[UUID]]:
    """
    Post a balanced double-entry transaction.

    Args:
        session: Database session
        entries: Lines built with ``debit()`` / ``credit()``
        description: Narrative stored on every line
        reference_type: Kind of source document (payment, prize_winner, ...)
        reference_id: ID of the source document
        created_by: Admin posting the entry

    Returns:
        Tuple of (success, error_message, transaction_id)
    """
    total_debits = sum((_money(e.get("debit")) for e in entries), Decimal("0"))
    total_credits = sum((_money(e.get("credit")) for e in entries), Decimal("0"))

    if abs(total_debits - total_credits) > CENT:
        return False, f"Unbalanced entry: Debits {total_debits} != Credits {total_credits}", None

    unknown = [e["account_code"] for e in entries if e["account_code"] not in ACCOUNTS]
    if unknown:
        return False, f"Unknown account code(s): {', '.join(unknown)}", None

    period = period_of(utcnow())
    if await is_period_locked(session, period):
        return False, f"Accounting period {period} is locked", None

    transaction_id = uuid4()
    for entry in entries:
        session.add(LedgerEntry(
            transaction_id=transaction_id,
            account_code=entry["account_code"],
            debit=_money(entry.get("debit")),
            credit=_money(entry.get("credit")),
            description=description,
            reference_type=reference_type,
            reference_id=str(reference_id) if reference_id is not None else None,
            period=period,
            created_by=created_by
        ))
    await session.flush()

    logger.info(f"Posted ledger transaction {transaction_id}: {description} ({total_debits})")
    return True, None, transaction_id


async def record_membership_payment(session: AsyncSession, amount, payment_id, user_id=None):
    """DR cash; CR membership income (70%) and prize pool (30%)."""
    total = _money(amount)
    pool_share = _money(total * PRIZE_POOL_SHARE)
    income_share = total - pool_share
    return await create_ledger_transaction(
        session,
        [debit(CASH_BANK, total), credit(MEMBERSHIP_FEES_NET, income_share), credit(PRIZE_POOL_PAYABLE, pool_share)],
        f"Membership payment {payment_id}" + (f" from {user_id}" if user_id else ""),
        reference_type="payment",
        reference_id=payment_id
    )


async def record_prize_payout(session: AsyncSession, amount, winner_id, description: Optional[str] = None, created_by=None):
    """DR prize pool; CR member wallet liability."""
    return await create_ledger_transaction(
        session,
        [debit(PRIZE_POOL_PAYABLE, amount), credit(MEMBER_WALLET_LIABILITY, amount)],
        description or f"Prize payout for winner {winner_id}",
        reference_type="prize_winner",
        reference_id=winner_id,
        created_by=created_by
    )


async def record_community_support(session: AsyncSession, amount, winner_id, description: Optional[str] = None, created_by=None):
    """DR prize pool; CR community support expense."""
    return await create_ledger_transaction(
        session,
        [debit(PRIZE_POOL_PAYABLE, amount), credit(COMMUNITY_SUPPORT, amount)],
        description or f"Community support award {winner_id}",
        reference_type="prize_winner",
        reference_id=winner_id,
        created_by=created_by
    )


async def record_referral_bonus(session: AsyncSession, amount, referral_id, created_by=None):
    """DR referral bonus expense; CR member wallet liability."""
    return await create_ledger_transaction(
        session,
        [debit(REFERRAL_BONUSES, amount), credit(MEMBER_WALLET_LIABILITY, amount)],
        f"Referral bonus {referral_id}",
        reference_type="referral",
        reference_id=referral_id,
        created_by=created_by
    )


async def record_tier_bonus(session: AsyncSession, amount, user_id, tier_name: str, created_by=None):
    """DR tier bonus expense; CR member wallet liability."""
    return await create_ledger_transaction(
        session,
        [debit(TIER_BONUSES, amount), credit(MEMBER_WALLET_LIABILITY, amount)],
        f"Tier bonus ({tier_name}) for {user_id}",
        reference_type="tier_bonus",
        reference_id=user_id,
        created_by=created_by
    )


async def record_wallet_withdrawal(session: AsyncSession, amount, withdrawal_id, created_by=None):
    """DR member wallet liability; CR cash."""
    return await create_ledger_transaction(
        session,
        [debit(MEMBER_WALLET_LIABILITY, amount), credit(CASH_BANK, amount)],
        f"Wallet withdrawal {withdrawal_id}",
        reference_type="withdrawal",
        reference_id=withdrawal_id,
        created_by=created_by
    )


async def _account_totals(session: AsyncSession, account_code: str, period: Optional[str] = None) -> Tuple[Decimal, Decimal]:
    query = select(
        func.coalesce(func.sum(LedgerEntry.debit), 0),
        func.coalesce(func.sum(LedgerEntry.credit), 0)
    ).where(LedgerEntry.account_code == account_code)
    if period:
        query = query.where(LedgerEntry.period == period)
    total_debit, total_credit = (await session.execute(query)).one()
    return _money(total_debit), _money(total_credit)


async def get_account_balance(session: AsyncSession, account_code: str, period: Optional[str] = None) -> Decimal:
    """
    Normal-side balance of an account: assets and expenses are debit
    accounts, everything else is a credit account.
    """
    total_debit, total_credit = await _account_totals(session, account_code, period)
    account_type = ACCOUNTS.get(account_code, ("", "asset"))[1]
    if account_type in ("asset", "expense"):
        return total_debit - total_credit
    return total_credit - total_debit


async def get_prize_pool_balance(session: AsyncSession) -> Decimal:
    total_debit, total_credit = await _account_totals(session, PRIZE_POOL_PAYABLE)
    return max(Decimal("0"), total_credit - total_debit)


async def get_prize_pool_status(session: AsyncSession) -> Dict:
    """Pool summary; zeros when the ledger cannot be read."""
    try:
        total_debit, total_credit = await _account_totals(session, PRIZE_POOL_PAYABLE)
        balance = max(Decimal("0"), total_credit - total_debit)
        return {
            "balance": float(balance),
            "total_contributions": float(total_credit),
            "total_disbursements": float(total_debit),
            "available_for_prizes": float(balance),
            "currency": "BDT",
        }
    except Exception as e:
        logger.error(f"Prize pool status error: {e}")
        return {
            "balance": 0.0,
            "total_contributions": 0.0,
            "total_disbursements": 0.0,
            "available_for_prizes": 0.0,
            "currency": "BDT",
        }


def check_prize_creation_allowed(existing_total, new_total, balance) -> Dict:
    """
    A prize may be added only while the draw's cumulative prize value stays
    within the pool balance: blocked when existing + new > balance.
    """
    required = _money(existing_total) + _money(new_total)
    current_balance = _money(balance)
    if required > current_balance:
        shortfall = required - current_balance
        return {
            "allowed": False,
            "current_balance": float(current_balance),
            "required": float(required),
            "shortfall": float(shortfall),
            "error": f"Insufficient Prize Draw Pool balance. Need {shortfall} BDT more.",
        }
    return {
        "allowed": True,
        "current_balance": float(current_balance),
        "required": float(required),
        "shortfall": 0.0,
    }


async def validate_prize_draw_creation(session: AsyncSession, prizes: Iterable[Dict], existing_total=0) -> Dict:
    """
    Validate a set of proposed prizes ({amount, name}) against the pool.
    """
    total = sum((_money(p.get("amount")) for p in prizes), Decimal("0"))
    status = await get_prize_pool_status(session)
    result = check_prize_creation_allowed(existing_total, total, status["balance"])
    if not result["allowed"]:
        logger.warning(
            f"Prize creation blocked: required {result['required']} BDT, "
            f"available {result['current_balance']} BDT"
        )
    return result


async def on_membership_payment_success(session: AsyncSession, amount, payment_id, user_id=None):
    """Hook run after a membership payment is confirmed."""
    success, error, transaction_id = await record_membership_payment(session, amount, payment_id, user_id)
    if success:
        balance = await get_prize_pool_balance(session)
        logger.info(f"Membership payment {payment_id} posted; prize pool balance now {balance} BDT")
    else:
        logger.error(f"Failed to post membership payment {payment_id}: {error}")
    return success, error, transaction_id


# Sub-pool split

async def get_current_split_config(session: AsyncSession) -> Dict:
    """Latest active split already in effect, or the 70/30 default."""
    try:
        result = await session.execute(
            select(PrizePoolSplitConfig)
            .where(PrizePoolSplitConfig.is_active.is_(True))
            .where(PrizePoolSplitConfig.effective_from <= utcnow())
            .order_by(PrizePoolSplitConfig.effective_from.desc())
            .limit(1)
        )
        config = result.scalar_one_or_none()
    except Exception as e:
        logger.error(f"Error fetching split config: {e}")
        config = None
    if not config:
        return dict(DEFAULT_SPLIT)
    return config.to_dict()


async def update_split_config(
    session: AsyncSession,
    random_percentage: float,
    community_percentage: float,
    effective_from,
    admin_id: UUID
) -> PrizePoolSplitConfig:
    """
    Schedule a new random/community split.

    Raises:
        ValueError: percentages invalid or effective date in the past
    """
    if random_percentage + community_percentage != 100:
        raise ValueError("Random and Community percentages must sum to 100")
    if not (0 <= random_percentage <= 100) or not (0 <= community_percentage <= 100):
        raise ValueError("Percentages must be between 0 and 100")

    effective_from = ensure_aware(effective_from)
    today = utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
    if effective_from < today:
        raise ValueError("Effective date cannot be in the past (no retroactive changes allowed)")

    config = PrizePoolSplitConfig(
        random_percentage=random_percentage,
        community_percentage=community_percentage,
        effective_from=effective_from,
        created_by=admin_id
    )
    session.add(config)
    await session.flush()
    return config


async def get_sub_pool_balances(session: AsyncSession) -> Dict:
    """Admin-only breakdown of the pool into random and community shares."""
    balance = await get_prize_pool_balance(session)
    split = await get_current_split_config(session)
    random_balance = _money(balance * Decimal(str(split["random_percentage"])) / 100)
    return {
        "random": {"balance": float(random_balance), "percentage": split["random_percentage"]},
        "community": {"balance": float(balance - random_balance), "percentage": split["community_percentage"]},
        "total": float(balance),
    }

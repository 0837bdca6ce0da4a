"""
Monthly financial close.

A period moves open -> closed (reports generated from the ledger) ->
locked (no more postings). Unlocking returns a locked period to closed and
needs a written reason.
"""

import calendar
import logging
import re
from collections import defaultdict
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.timeutils import utcnow, period_of
from portal.models.enums import PeriodStatus, ReportType
from portal.models.ledger import LedgerEntry
from portal.models.membership import Referral
from portal.models.operations import FinancialClosePeriod, MonthlyFinancialReport
from portal.repos.audit_log_repo import log_admin_action
from portal.services import accounting

logger = logging.getLogger(__name__)

PERIOD_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")

CURRENCY = "BDT"


def validate_period(period: str) -> str:
    """
    Raises:
        ValueError: not a ``YYYY-MM`` string
    """
    if not period or not PERIOD_PATTERN.match(period):
        raise ValueError("Period must be in YYYY-MM format")
    return period


def period_bounds(period: str):
    """First and last calendar day of a period as ISO date strings."""
    year, month = (int(part) for part in period.split("-"))
    last_day = calendar.monthrange(year, month)[1]
    return f"{period}-01", f"{period}-{last_day:02d}"


async def list_periods(session: AsyncSession) -> List[FinancialClosePeriod]:
    result = await session.execute(select(FinancialClosePeriod).order_by(desc(FinancialClosePeriod.period)))
    return list(result.scalars().all())


async def get_period(session: AsyncSession, period: str) -> Optional[FinancialClosePeriod]:
    result = await session.execute(select(FinancialClosePeriod).where(FinancialClosePeriod.period == period))
    return result.scalar_one_or_none()


async def get_current_open_period(session: AsyncSession) -> Dict[str, Any]:
    """The current month's period row, or an implicit open period when none exists."""
    period = period_of(utcnow())
    row = await get_period(session, period)
    if row is None:
        return {"period": period, "status": PeriodStatus.OPEN.value}
    return row.to_dict()


async def _period_lines(session: AsyncSession, period: str, account_codes) -> List[LedgerEntry]:
    result = await session.execute(
        select(LedgerEntry).where(LedgerEntry.period == period, LedgerEntry.account_code.in_(account_codes))
    )
    return list(result.scalars().all())


def _by_type(account_type: str) -> List[str]:
    return [code for code, (_, kind) in accounting.ACCOUNTS.items() if kind == account_type]


async def build_profit_loss(session: AsyncSession, period: str) -> Dict[str, Any]:
    start, end = period_bounds(period)
    revenue, expenses = [], []
    for code in _by_type("revenue"):
        amount = await accounting.get_account_balance(session, code, period)
        if amount:
            revenue.append({"account_code": code, "account_name": accounting.ACCOUNTS[code][0], "amount": float(amount)})
    for code in _by_type("expense"):
        amount = await accounting.get_account_balance(session, code, period)
        if amount:
            expenses.append({"account_code": code, "account_name": accounting.ACCOUNTS[code][0], "amount": float(amount)})

    total_revenue = sum(item["amount"] for item in revenue)
    total_expenses = sum(item["amount"] for item in expenses)
    return {
        "period_start": start,
        "period_end": end,
        "currency": CURRENCY,
        "total_revenue": round(total_revenue, 2),
        "total_expenses": round(total_expenses, 2),
        "net_income": round(total_revenue - total_expenses, 2),
        "revenue_details": revenue,
        "expenses": expenses,
        "generated_at": utcnow().isoformat(),
    }


async def build_prize_pool_reconciliation(session: AsyncSession, period: str) -> Dict[str, Any]:
    start, end = period_bounds(period)
    result = await session.execute(
        select(LedgerEntry).where(
            LedgerEntry.account_code == accounting.PRIZE_POOL_PAYABLE,
            LedgerEntry.period <= period
        )
    )
    opening = contributions = disbursements = Decimal("0")
    for line in result.scalars().all():
        if line.period < period:
            opening += Decimal(str(line.credit)) - Decimal(str(line.debit))
        else:
            contributions += Decimal(str(line.credit))
            disbursements += Decimal(str(line.debit))

    closing = opening + contributions - disbursements
    return {
        "period_start": start,
        "period_end": end,
        "currency": CURRENCY,
        "opening_balance": float(opening),
        "contributions": float(contributions),
        "disbursements": float(disbursements),
        "closing_balance": float(closing),
        "reconciliation_check": "BALANCED" if closing >= 0 else "UNBALANCED",
        "generated_at": utcnow().isoformat(),
    }


def _payouts_report(period: str, per_user: Dict[str, List[Decimal]]) -> Dict[str, Any]:
    start, end = period_bounds(period)
    payouts = [
        {"user_id": user_id, "payout_count": len(amounts), "total_amount": float(sum(amounts))}
        for user_id, amounts in sorted(per_user.items())
    ]
    return {
        "period_start": start,
        "period_end": end,
        "currency": CURRENCY,
        "payouts": payouts,
        "total_payouts": round(sum(p["total_amount"] for p in payouts), 2),
        "total_count": sum(p["payout_count"] for p in payouts),
        "generated_at": utcnow().isoformat(),
    }


async def build_referral_payouts(session: AsyncSession, period: str) -> Dict[str, Any]:
    lines = await _period_lines(session, period, [accounting.REFERRAL_BONUSES])
    referral_ids = {line.reference_id for line in lines if line.reference_id}
    referrers = {}
    if referral_ids:
        result = await session.execute(select(Referral))
        referrers = {str(r.id): str(r.referrer_id) for r in result.scalars().all() if str(r.id) in referral_ids}

    per_user = defaultdict(list)
    for line in lines:
        per_user[referrers.get(line.reference_id, line.reference_id or "unknown")].append(Decimal(str(line.debit)))
    return _payouts_report(period, per_user)


async def build_tier_payouts(session: AsyncSession, period: str) -> Dict[str, Any]:
    per_user = defaultdict(list)
    for line in await _period_lines(session, period, [accounting.TIER_BONUSES]):
        per_user[line.reference_id or "unknown"].append(Decimal(str(line.debit)))
    return _payouts_report(period, per_user)


REPORT_BUILDERS = {
    ReportType.PROFIT_LOSS.value: build_profit_loss,
    ReportType.PRIZE_POOL_RECONCILIATION.value: build_prize_pool_reconciliation,
    ReportType.REFERRAL_PAYOUTS.value: build_referral_payouts,
    ReportType.TIER_PAYOUTS.value: build_tier_payouts,
}


async def close_period(session: AsyncSession, period: str, admin_id: UUID) -> Dict[str, Any]:
    """
    Close a period and generate its four reports.

    Raises:
        ValueError: malformed period, or period already closed or locked
    """
    validate_period(period)
    row = await get_period(session, period)
    if row is not None and row.status != PeriodStatus.OPEN.value:
        raise ValueError(f"Period {period} is already {row.status}")
    if row is None:
        row = FinancialClosePeriod(period=period)
        session.add(row)

    row.status = PeriodStatus.CLOSED.value
    row.closed_by = admin_id
    row.closed_at = utcnow()
    await session.flush()

    existing = await session.execute(
        select(MonthlyFinancialReport).where(MonthlyFinancialReport.close_period_id == row.id)
    )
    for report in existing.scalars().all():
        await session.delete(report)
    await session.flush()

    generated = []
    for report_type, builder in REPORT_BUILDERS.items():
        data = await builder(session, period)
        session.add(MonthlyFinancialReport(close_period_id=row.id, report_type=report_type, report_data=data))
        generated.append(report_type)
    await session.flush()

    await log_admin_action(
        session,
        actor_id=admin_id,
        action="FINANCIAL_PERIOD_CLOSED",
        table_name="financial_close_periods",
        record_id=str(row.id),
        details={"period": period, "reports": generated}
    )
    logger.info(f"Financial period {period} closed by {admin_id}")
    return {"period": row.to_dict(), "reports_generated": generated}


async def lock_period(session: AsyncSession, period: str, admin_id: UUID) -> FinancialClosePeriod:
    """
    Raises:
        LookupError: period not found
        ValueError: period not closed
    """
    validate_period(period)
    row = await get_period(session, period)
    if row is None:
        raise LookupError(f"Period {period} not found")
    if row.status != PeriodStatus.CLOSED.value:
        raise ValueError("Only closed periods can be locked")

    row.status = PeriodStatus.LOCKED.value
    row.locked_by = admin_id
    row.locked_at = utcnow()
    await session.flush()
    await log_admin_action(
        session, actor_id=admin_id, action="FINANCIAL_PERIOD_LOCKED",
        table_name="financial_close_periods", record_id=str(row.id), details={"period": period}
    )
    return row


async def unlock_period(session: AsyncSession, period: str, admin_id: UUID, reason: str) -> FinancialClosePeriod:
    """
    Raises:
        LookupError: period not found
        ValueError: missing reason or period not locked
    """
    validate_period(period)
    if not reason or not reason.strip():
        raise ValueError("Unlock reason is required")
    row = await get_period(session, period)
    if row is None:
        raise LookupError(f"Period {period} not found")
    if row.status != PeriodStatus.LOCKED.value:
        raise ValueError("Only locked periods can be unlocked")

    row.status = PeriodStatus.CLOSED.value
    row.unlocked_by = admin_id
    row.unlocked_at = utcnow()
    row.unlock_reason = reason.strip()
    await session.flush()
    await log_admin_action(
        session, actor_id=admin_id, action="FINANCIAL_PERIOD_UNLOCKED",
        table_name="financial_close_periods", record_id=str(row.id),
        details={"period": period, "reason": reason.strip()}
    )
    logger.warning(f"Financial period {period} unlocked by {admin_id}: {reason}")
    return row


async def get_reports_for_period(session: AsyncSession, period: str) -> List[MonthlyFinancialReport]:
    row = await get_period(session, validate_period(period))
    if row is None:
        raise LookupError(f"Period {period} not found")
    result = await session.execute(
        select(MonthlyFinancialReport)
        .where(MonthlyFinancialReport.close_period_id == row.id)
        .order_by(MonthlyFinancialReport.report_type)
    )
    return list(result.scalars().all())


def report_to_csv(report: Dict[str, Any], report_type: str) -> str:
    """Render a stored report as the downloadable CSV text."""
    lines = []
    if report_type == ReportType.PROFIT_LOSS.value:
        lines += [
            "Profit & Loss Statement",
            f"Period: {report['period_start']} to {report['period_end']}",
            f"Currency: {report['currency']}",
            "",
            "REVENUE",
            "Account Code,Account Name,Amount",
        ]
        lines += [f"{i['account_code']},{i['account_name']},{i['amount']}" for i in report.get("revenue_details") or []]
        lines += ["", f"Total Revenue:,{report['total_revenue']}", "", "EXPENSES", "Account Code,Account Name,Amount"]
        lines += [f"{i['account_code']},{i['account_name']},{i['amount']}" for i in report.get("expenses") or []]
        lines += ["", f"Total Expenses:,{report['total_expenses']}", "", f"NET INCOME:,{report['net_income']}"]
    elif report_type == ReportType.PRIZE_POOL_RECONCILIATION.value:
        lines += [
            "Prize Draw Pool Reconciliation",
            f"Period: {report['period_start']} to {report['period_end']}",
            f"Currency: {report['currency']}",
            "",
            "Description,Amount",
            f"Opening Balance,{report['opening_balance']}",
            f"Contributions (30% of fees),{report['contributions']}",
            f"Disbursements (prizes + support),{report['disbursements']}",
            f"Closing Balance,{report['closing_balance']}",
            "",
            f"Reconciliation Status:,{report['reconciliation_check']}",
        ]
    elif report_type in (ReportType.REFERRAL_PAYOUTS.value, ReportType.TIER_PAYOUTS.value):
        label = "Referral" if report_type == ReportType.REFERRAL_PAYOUTS.value else "Tier"
        lines += [
            f"{label} Payouts Report",
            f"Period: {report['period_start']} to {report['period_end']}",
            f"Currency: {report['currency']}",
            "",
            "User ID,Payout Count,Total Amount",
        ]
        lines += [f"{p['user_id']},{p['payout_count']},{p['total_amount']}" for p in report.get("payouts") or []]
        lines += ["", f"Total Payouts:,{report['total_payouts']}", f"Total Count:,{report['total_count']}"]
    else:
        raise ValueError(f"Unknown report type: {report_type}")
    return "\n".join(lines) + "\n"

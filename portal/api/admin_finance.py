"""
Admin finance endpoints: financial close, withdrawals and referral bonuses
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession

from portal.api.schemas import CamelModel
from portal.core.auth import require_admin_role, require_chairman
from portal.db.session import get_db
from portal.models.enums import ReportType
from portal.models.profile import Profile
from portal.repos import referral_repo, wallet_repo
from portal.repos.audit_log_repo import log_admin_action
from portal.services import financial_close, wallets
from portal.utils.export import CSV_MEDIA_TYPE, download_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin-finance"])


class PeriodRequest(CamelModel):
    period: str = Field(..., description="Accounting period, YYYY-MM")


class UnlockPeriodRequest(CamelModel):
    period: str
    reason: str = Field(..., min_length=1)


class WithdrawalDecisionRequest(CamelModel):
    notes: Optional[str] = None


# Financial close

@router.get("/financial-close/periods")
async def list_periods(
    current_admin: Profile = Depends(require_admin_role),
    db: AsyncSession = Depends(get_db)
):
    try:
        periods = await financial_close.list_periods(db)
        return {
            "success": True,
            "periods": [p.to_dict() for p in periods],
            "currentPeriod": await financial_close.get_current_open_period(db),
        }
    except Exception as e:
        logger.error(f"Failed to list financial periods: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to list periods: {str(e)}"}
        )


@router.post("/financial-close/close-period")
async def close_period(
    payload: PeriodRequest,
    current_admin: Profile = Depends(require_chairman),
    db: AsyncSession = Depends(get_db)
):
    """Close a period and generate its profit & loss, pool and payout reports."""
    try:
        result = await financial_close.close_period(db, payload.period, current_admin.id)
        await db.commit()
        return {"success": True, **result}
    except ValueError as e:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": str(e)}
        )
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to close period {payload.period}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to close period: {str(e)}"}
        )


@router.post("/financial-close/lock-period")
async def lock_period(
    payload: PeriodRequest,
    current_admin: Profile = Depends(require_chairman),
    db: AsyncSession = Depends(get_db)
):
    try:
        row = await financial_close.lock_period(db, payload.period, current_admin.id)
        await db.commit()
        return {"success": True, "period": row.to_dict()}
    except LookupError as e:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": str(e)}
        )
    except ValueError as e:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": str(e)}
        )
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to lock period {payload.period}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to lock period: {str(e)}"}
        )


@router.post("/financial-close/unlock-period")
async def unlock_period(
    payload: UnlockPeriodRequest,
    current_admin: Profile = Depends(require_chairman),
    db: AsyncSession = Depends(get_db)
):
    try:
        row = await financial_close.unlock_period(db, payload.period, current_admin.id, payload.reason)
        await db.commit()
        return {"success": True, "period": row.to_dict()}
    except LookupError as e:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": str(e)}
        )
    except ValueError as e:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": str(e)}
        )
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to unlock period {payload.period}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to unlock period: {str(e)}"}
        )


@router.get("/financial-close/reports")
async def period_reports(
    period: str,
    current_admin: Profile = Depends(require_chairman),
    db: AsyncSession = Depends(get_db)
):
    try:
        reports = await financial_close.get_reports_for_period(db, period)
        return {"success": True, "reports": [r.to_dict() for r in reports]}
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": str(e)}
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": str(e)}
        )
    except Exception as e:
        logger.error(f"Failed to load reports for {period}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to load reports: {str(e)}"}
        )


@router.get("/financial-close/reports/export")
async def export_report(
    period: str,
    report_type: ReportType,
    current_admin: Profile = Depends(require_chairman),
    db: AsyncSession = Depends(get_db)
):
    try:
        reports = await financial_close.get_reports_for_period(db, period)
        report = next((r for r in reports if r.report_type == report_type.value), None)
        if report is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"error": f"No {report_type.value} report for {period}"}
            )
        content = financial_close.report_to_csv(report.report_data, report_type.value)
        return download_response(content, f"{report_type.value}_{period}.csv", CSV_MEDIA_TYPE)
    except HTTPException:
        raise
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": str(e)}
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": str(e)}
        )
    except Exception as e:
        logger.error(f"Failed to export {report_type.value} for {period}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to export report: {str(e)}"}
        )


# Withdrawals

@router.get("/withdrawals")
async def list_withdrawals(
    status_filter: Optional[str] = Query(None, alias="status"),
    limit: int = Query(50, le=200),
    offset: int = 0,
    current_admin: Profile = Depends(require_admin_role),
    db: AsyncSession = Depends(get_db)
):
    try:
        requests = await wallet_repo.get_withdrawal_requests(db, status=status_filter, limit=limit, offset=offset)
        return {"success": True, "withdrawals": [r.to_dict() for r in requests]}
    except Exception as e:
        logger.error(f"Failed to list withdrawals: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to list withdrawals: {str(e)}"}
        )


async def _get_withdrawal_or_404(db: AsyncSession, withdrawal_id: UUID):
    withdrawal = await wallet_repo.get_withdrawal_request(db, withdrawal_id)
    if withdrawal is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "Withdrawal request not found"}
        )
    return withdrawal


@router.post("/withdrawals/{withdrawal_id}/approve")
async def approve_withdrawal(
    withdrawal_id: UUID,
    payload: WithdrawalDecisionRequest,
    current_admin: Profile = Depends(require_admin_role),
    db: AsyncSession = Depends(get_db)
):
    try:
        withdrawal = await _get_withdrawal_or_404(db, withdrawal_id)
        withdrawal = await wallets.approve_withdrawal(db, withdrawal, current_admin.id, payload.notes)
        await log_admin_action(
            db,
            actor_id=current_admin.id,
            action="WITHDRAWAL_APPROVED",
            target_user_id=withdrawal.user_id,
            table_name="withdrawal_requests",
            record_id=str(withdrawal.id),
            details={"amount": float(withdrawal.amount)}
        )
        await db.commit()
        return {"success": True, "withdrawal": withdrawal.to_dict()}
    except HTTPException:
        raise
    except ValueError as e:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": str(e)}
        )
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to approve withdrawal {withdrawal_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to approve withdrawal: {str(e)}"}
        )


@router.post("/withdrawals/{withdrawal_id}/reject")
async def reject_withdrawal(
    withdrawal_id: UUID,
    payload: WithdrawalDecisionRequest,
    current_admin: Profile = Depends(require_admin_role),
    db: AsyncSession = Depends(get_db)
):
    try:
        withdrawal = await _get_withdrawal_or_404(db, withdrawal_id)
        withdrawal = await wallets.reject_withdrawal(db, withdrawal, current_admin.id, payload.notes)
        await log_admin_action(
            db,
            actor_id=current_admin.id,
            action="WITHDRAWAL_REJECTED",
            target_user_id=withdrawal.user_id,
            table_name="withdrawal_requests",
            record_id=str(withdrawal.id),
            details={"notes": payload.notes}
        )
        await db.commit()
        return {"success": True, "withdrawal": withdrawal.to_dict()}
    except HTTPException:
        raise
    except ValueError as e:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": str(e)}
        )
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to reject withdrawal {withdrawal_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to reject withdrawal: {str(e)}"}
        )


# Referrals

@router.get("/referrals")
async def list_referrals(
    status_filter: Optional[str] = Query(None, alias="status"),
    current_admin: Profile = Depends(require_admin_role),
    db: AsyncSession = Depends(get_db)
):
    try:
        referrals = await referral_repo.list_referrals(db, status=status_filter)
        return {"success": True, "referrals": [r.to_dict() for r in referrals]}
    except Exception as e:
        logger.error(f"Failed to list referrals: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to list referrals: {str(e)}"}
        )


@router.post("/referrals/{referral_id}/pay")
async def pay_referral(
    referral_id: UUID,
    current_admin: Profile = Depends(require_admin_role),
    db: AsyncSession = Depends(get_db)
):
    try:
        referral = await referral_repo.get_referral(db, referral_id)
        if referral is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"error": "Referral not found"}
            )
        referral = await wallets.pay_referral_bonus(db, referral, current_admin.id)
        await log_admin_action(
            db,
            actor_id=current_admin.id,
            action="REFERRAL_BONUS_PAID",
            target_user_id=referral.referrer_id,
            table_name="referrals",
            record_id=str(referral.id),
            details={"amount": float(referral.bonus_amount or 0)}
        )
        await db.commit()
        return {"success": True, "referral": referral.to_dict()}
    except HTTPException:
        raise
    except ValueError as e:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": str(e)}
        )
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to pay referral {referral_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to pay referral bonus: {str(e)}"}
        )

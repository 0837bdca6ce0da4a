"""
Wallet, withdrawal request and payment confirmation endpoints
"""

import logging
from decimal import Decimal
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession

from portal.api.schemas import CamelModel
from portal.core.auth import get_current_user, require_admin_role
from portal.db.session import get_db
from portal.models.profile import Profile
from portal.repos import membership_repo, wallet_repo
from portal.repos.audit_log_repo import log_admin_action
from portal.services import payments, wallets

logger = logging.getLogger(__name__)

router = APIRouter(tags=["wallet"])


class WithdrawalCreateRequest(CamelModel):
    amount: Decimal = Field(..., gt=0)
    payment_method: str = Field(..., min_length=1, max_length=64)
    account_details: str = Field(..., min_length=1, max_length=256)


class PaymentConfirmRequest(CamelModel):
    user_id: UUID
    payment_method: str = Field(..., min_length=1)
    transaction_id: str = Field(..., min_length=1)
    amount: Optional[Decimal] = None


@router.get("/api/wallet")
async def get_wallet(
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Wallet balance; members without a wallet see a zero balance."""
    try:
        wallet = await wallet_repo.get_wallet_for_user(db, current_user.id)
        if wallet is None:
            return {
                "success": True,
                "wallet": {"user_id": str(current_user.id), "balance": 0.0, "total_earned": 0.0,
                           "total_withdrawn": 0.0, "currency": "BDT"},
            }
        return {"success": True, "wallet": wallet.to_dict()}
    except Exception as e:
        logger.error(f"Failed to read wallet for {current_user.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to read wallet: {str(e)}"}
        )


@router.get("/api/wallet/withdrawals")
async def my_withdrawals(
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    try:
        requests = await wallet_repo.get_withdrawal_requests(db, user_id=current_user.id)
        return {"success": True, "withdrawals": [r.to_dict() for r in requests]}
    except Exception as e:
        logger.error(f"Failed to list withdrawals for {current_user.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to list withdrawals: {str(e)}"}
        )


@router.post("/api/wallet/withdraw", status_code=status.HTTP_201_CREATED)
async def request_withdrawal(
    payload: WithdrawalCreateRequest,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    try:
        withdrawal = await wallets.request_withdrawal(
            db, current_user.id, payload.amount, payload.payment_method, payload.account_details
        )
        await db.commit()
        return {"success": True, "withdrawal": withdrawal.to_dict()}
    except ValueError as e:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": str(e)}
        )
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to create withdrawal for {current_user.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to create withdrawal request: {str(e)}"}
        )


@router.get("/api/payments/history")
async def payment_history(
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    try:
        records = await membership_repo.get_user_payments(db, current_user.id)
        return {"success": True, "payments": [p.to_dict() for p in records]}
    except Exception as e:
        logger.error(f"Failed to list payments for {current_user.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to list payments: {str(e)}"}
        )


@router.post("/api/payments/confirm")
async def confirm_payment(
    payload: PaymentConfirmRequest,
    current_admin: Profile = Depends(require_admin_role),
    db: AsyncSession = Depends(get_db)
):
    """
    Activate a member's pending membership once their payment is verified.
    """
    try:
        result = await payments.confirm_membership_payment(
            db, payload.user_id, payload.payment_method, payload.transaction_id, amount=payload.amount
        )
        await log_admin_action(
            db,
            actor_id=current_admin.id,
            action="MEMBERSHIP_PAYMENT_CONFIRMED",
            target_user_id=payload.user_id,
            table_name="payments",
            record_id=result["payment"]["id"],
            details={"payment_method": payload.payment_method, "transaction_id": payload.transaction_id}
        )
        await db.commit()
        return {
            "success": True,
            "membership": result["membership"],
            "payment": result["payment"],
            "referralCode": result["referral_code"],
        }
    except payments.PaymentError as e:
        await db.rollback()
        raise HTTPException(status_code=e.status_code, detail={"error": e.message})
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to confirm payment {payload.transaction_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to activate membership: {str(e)}"}
        )

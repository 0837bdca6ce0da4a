"""
Admin prize draw endpoints: draws, prizes, winners, payouts and the pool
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession

from portal.api.schemas import CamelModel
from portal.core.auth import get_client_ip, require_admin_role
from portal.core.timeutils import parse_iso_datetime
from portal.db.session import get_db
from portal.models.enums import AnnouncementStatus
from portal.models.profile import Profile
from portal.repos import prize_draw_repo
from portal.repos.audit_log_repo import log_admin_action
from portal.services import accounting, permissions, prize_draw, winner_selection

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/prize-draw", tags=["admin-prize-draw"])


class CreateDrawRequest(CamelModel):
    country_code: str
    draw_date_iso: str
    pool_type: Optional[str] = None


class DrawActionRequest(CamelModel):
    draw_id: UUID


class CreatePrizeRequest(CamelModel):
    draw_id: UUID
    title: str = Field(..., min_length=1)
    prize_type: str
    award_type: str
    prize_value_amount: float
    currency_code: str
    number_of_winners: int
    description: Optional[str] = None


class AssignCommunitySupportRequest(CamelModel):
    draw_id: UUID
    prize_id: UUID
    user_id: UUID
    reason: str


class PayoutRequest(CamelModel):
    winner_id: UUID


class SplitConfigRequest(CamelModel):
    random_percentage: float
    community_percentage: float
    effective_from: str


async def _require_draw_authority(db: AsyncSession, user: Profile, request: Request, action: str) -> None:
    """Prize draws are managed by the chairman only."""
    if await permissions.can_manage_prize_draws(db, user.id):
        return
    await permissions.log_permission_violation(
        db,
        user.id,
        f"{action}_ATTEMPT_DENIED",
        {"endpoint": request.url.path, "role": user.role, "reason": "Chairman authority required"},
        get_client_ip(request),
        request.headers.get("user-agent")
    )
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail={"error": "Forbidden: Chairman authority required to manage prize draws"}
    )


async def _get_draw_or_404(db: AsyncSession, draw_id: UUID):
    draw = await prize_draw_repo.get_prize_draw(db, draw_id)
    if draw is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "Draw not found"}
        )
    return draw


@router.get("/draws")
async def list_draws(
    limit: int = 50,
    offset: int = 0,
    current_admin: Profile = Depends(require_admin_role),
    db: AsyncSession = Depends(get_db)
):
    try:
        draws = await prize_draw_repo.list_prize_draws(db, limit=limit, offset=offset)
        entry_counts = await prize_draw_repo.count_entries_by_draw(db, [d.id for d in draws])
        return {
            "success": True,
            "draws": [{**d.to_dict(), "entryCount": entry_counts.get(d.id, 0)} for d in draws]
        }
    except Exception as e:
        logger.error(f"Failed to list prize draws: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to list prize draws: {str(e)}"}
        )


@router.post("/create", status_code=status.HTTP_201_CREATED)
async def create_draw(
    payload: CreateDrawRequest,
    request: Request,
    current_admin: Profile = Depends(require_admin_role),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a COMING_SOON draw for a country.
    """
    await _require_draw_authority(db, current_admin, request, "PRIZE_DRAW_CREATE")
    try:
        try:
            draw_date = parse_iso_datetime(payload.draw_date_iso)
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"error": "Invalid date format"}
            )

        draw = await prize_draw.create_draw(
            db, payload.country_code, draw_date, current_admin.id, pool_type=payload.pool_type
        )
        await log_admin_action(
            db,
            actor_id=current_admin.id,
            action="PRIZE_DRAW_CREATED",
            table_name="prize_draws",
            record_id=str(draw.id),
            details={"country_code": draw.country_code, "draw_date": draw.draw_date.isoformat()},
            ip_address=get_client_ip(request)
        )
        await db.commit()
        return {"success": True, "draw": draw.to_dict()}
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
        logger.error(f"Failed to create prize draw: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to create prize draw: {str(e)}"}
        )


@router.post("/announce")
async def announce_draw(
    payload: DrawActionRequest,
    request: Request,
    current_admin: Profile = Depends(require_admin_role),
    db: AsyncSession = Depends(get_db)
):
    await _require_draw_authority(db, current_admin, request, "PRIZE_DRAW_ANNOUNCE")
    try:
        draw = await _get_draw_or_404(db, payload.draw_id)
        draw = await prize_draw.announce_draw(db, draw)
        await log_admin_action(
            db,
            actor_id=current_admin.id,
            action="PRIZE_DRAW_ANNOUNCED",
            table_name="prize_draws",
            record_id=str(draw.id),
            details={
                "forecast_member_count": draw.forecast_member_count,
                "estimated_prize_pool_amount": float(draw.estimated_prize_pool_amount or 0),
            }
        )
        await db.commit()
        return {"success": True, "draw": draw.to_dict()}
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
        logger.error(f"Failed to announce draw {payload.draw_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to announce draw: {str(e)}"}
        )


@router.post("/prizes/create", status_code=status.HTTP_201_CREATED)
async def create_prize(
    payload: CreatePrizeRequest,
    request: Request,
    current_admin: Profile = Depends(require_admin_role),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a prize. Blocked with the shortfall when the draw's cumulative
    prize value would exceed the Prize Draw Pool balance.
    """
    await _require_draw_authority(db, current_admin, request, "PRIZE_CREATE")
    try:
        draw = await _get_draw_or_404(db, payload.draw_id)
        result = await prize_draw.create_prize(
            db,
            draw,
            title=payload.title,
            prize_type=payload.prize_type,
            award_type=payload.award_type,
            prize_value_amount=payload.prize_value_amount,
            currency_code=payload.currency_code,
            number_of_winners=payload.number_of_winners,
            admin_id=current_admin.id,
            description=payload.description
        )
        if not result["allowed"]:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={
                    "error": result["error"],
                    "currentBalance": result["current_balance"],
                    "required": result["required"],
                    "shortfall": result["shortfall"],
                }
            )

        prize = result["prize"]
        await log_admin_action(
            db,
            actor_id=current_admin.id,
            action="PRIZE_CREATED",
            table_name="prizes",
            record_id=str(prize.id),
            details={"draw_id": str(draw.id), "title": prize.title, "award_type": prize.award_type}
        )
        await db.commit()
        return {"success": True, "prize": prize.to_dict()}
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
        logger.error(f"Failed to create prize: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to create prize: {str(e)}"}
        )


@router.get("/prizes/list")
async def list_prizes(
    draw_id: UUID,
    current_admin: Profile = Depends(require_admin_role),
    db: AsyncSession = Depends(get_db)
):
    try:
        await _get_draw_or_404(db, draw_id)
        prizes = await prize_draw_repo.get_active_prizes(db, draw_id)
        return {"success": True, "prizes": [p.to_dict() for p in prizes]}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to list prizes for draw {draw_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to list prizes: {str(e)}"}
        )


@router.post("/run-winners")
async def run_winners(
    payload: DrawActionRequest,
    request: Request,
    current_admin: Profile = Depends(require_admin_role),
    db: AsyncSession = Depends(get_db)
):
    await _require_draw_authority(db, current_admin, request, "RUN_WINNERS")
    try:
        draw = await _get_draw_or_404(db, payload.draw_id)
        if not prize_draw.can_run_winners(draw):
            raise ValueError(
                "Draw must be ANNOUNCED before running winner selection"
                if draw.announcement_status != AnnouncementStatus.ANNOUNCED.value
                else "Draw date has not been reached yet"
            )

        result = await winner_selection.run_winner_selection(db, draw, current_admin.id)
        await log_admin_action(
            db,
            actor_id=current_admin.id,
            action="RUN_WINNERS",
            table_name="prize_draws",
            record_id=str(draw.id),
            details={"winners_created": result["winners_created"]}
        )
        await db.commit()
        return {"success": True, "winnersCreated": result["winners_created"]}
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
        logger.error(f"Failed to run winner selection for draw {payload.draw_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to select winners: {str(e)}"}
        )


@router.post("/expire-and-redraw")
async def expire_and_redraw(
    payload: DrawActionRequest,
    request: Request,
    current_admin: Profile = Depends(require_admin_role),
    db: AsyncSession = Depends(get_db)
):
    await _require_draw_authority(db, current_admin, request, "EXPIRE_AND_REDRAW")
    try:
        draw = await _get_draw_or_404(db, payload.draw_id)
        if draw.announcement_status == AnnouncementStatus.COMING_SOON.value or not prize_draw.can_expire_and_redraw(draw):
            raise ValueError("Unclaimed prizes can only be expired after the draw date")

        counts = await winner_selection.expire_and_redraw(db, draw)
        await log_admin_action(
            db,
            actor_id=current_admin.id,
            action="EXPIRE_AND_REDRAW",
            table_name="prize_draws",
            record_id=str(draw.id),
            details=counts
        )
        await db.commit()
        return {"success": True, **counts}
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
        logger.error(f"Failed to expire and redraw for draw {payload.draw_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to expire and redraw: {str(e)}"}
        )


@router.post("/assign-community-support", status_code=status.HTTP_201_CREATED)
async def assign_community_support(
    payload: AssignCommunitySupportRequest,
    request: Request,
    current_admin: Profile = Depends(require_admin_role),
    db: AsyncSession = Depends(get_db)
):
    await _require_draw_authority(db, current_admin, request, "ASSIGN_COMMUNITY_PRIZE")
    try:
        winner = await winner_selection.assign_community_support(
            db, payload.draw_id, payload.prize_id, payload.user_id, payload.reason, current_admin.id
        )
        await log_admin_action(
            db,
            actor_id=current_admin.id,
            action="ASSIGN_COMMUNITY_PRIZE",
            target_user_id=payload.user_id,
            table_name="prize_draw_winners",
            record_id=str(winner.id),
            details={"draw_id": str(payload.draw_id), "prize_id": str(payload.prize_id), "reason": payload.reason}
        )
        await db.commit()
        return {"success": True, "winner": winner.to_dict()}
    except HTTPException:
        raise
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
        logger.error(f"Failed to assign community support: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to assign community support: {str(e)}"}
        )


@router.get("/winners")
async def list_winners(
    draw_id: UUID,
    current_admin: Profile = Depends(require_admin_role),
    db: AsyncSession = Depends(get_db)
):
    try:
        draw = await _get_draw_or_404(db, draw_id)
        prizes = await prize_draw.get_winners_listing(db, draw.id)
        return {"success": True, "draw": draw.to_dict(), "prizes": prizes}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to list winners for draw {draw_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to list winners: {str(e)}"}
        )


@router.post("/payout")
async def pay_out_winner(
    payload: PayoutRequest,
    request: Request,
    current_admin: Profile = Depends(require_admin_role),
    db: AsyncSession = Depends(get_db)
):
    await _require_draw_authority(db, current_admin, request, "PRIZE_PAYOUT")
    try:
        winner = await prize_draw_repo.get_winner(db, payload.winner_id)
        if winner is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"error": "Winner not found"}
            )
        winner = await prize_draw.pay_out_winner(db, winner, current_admin.id)
        await log_admin_action(
            db,
            actor_id=current_admin.id,
            action="PRIZE_PAID_OUT",
            target_user_id=winner.winner_user_id,
            table_name="prize_draw_winners",
            record_id=str(winner.id),
            details={"award_type": winner.award_type}
        )
        await db.commit()
        return {"success": True, "winner": winner.to_dict()}
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
        logger.error(f"Failed to pay out winner {payload.winner_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to pay out prize: {str(e)}"}
        )


@router.get("/pool-status")
async def pool_status(
    current_admin: Profile = Depends(require_admin_role),
    db: AsyncSession = Depends(get_db)
):
    """Prize Draw Pool balance with its random/community breakdown."""
    try:
        return {
            "success": True,
            "pool": await accounting.get_prize_pool_status(db),
            "subPools": await accounting.get_sub_pool_balances(db),
        }
    except Exception as e:
        logger.error(f"Failed to read prize pool status: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to read prize pool status: {str(e)}"}
        )


@router.get("/split-config")
async def get_split_config(
    current_admin: Profile = Depends(require_admin_role),
    db: AsyncSession = Depends(get_db)
):
    try:
        return {"success": True, "config": await accounting.get_current_split_config(db)}
    except Exception as e:
        logger.error(f"Failed to read split config: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to read split config: {str(e)}"}
        )


@router.post("/split-config", status_code=status.HTTP_201_CREATED)
async def update_split_config(
    payload: SplitConfigRequest,
    request: Request,
    current_admin: Profile = Depends(require_admin_role),
    db: AsyncSession = Depends(get_db)
):
    await _require_draw_authority(db, current_admin, request, "SPLIT_CONFIG_UPDATE")
    try:
        try:
            effective_from = parse_iso_datetime(payload.effective_from)
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"error": "Invalid date format"}
            )
        config = await accounting.update_split_config(
            db, payload.random_percentage, payload.community_percentage, effective_from, current_admin.id
        )
        await log_admin_action(
            db,
            actor_id=current_admin.id,
            action="PRIZE_POOL_SPLIT_UPDATED",
            table_name="prize_pool_split_config",
            record_id=str(config.id),
            new_values=config.to_dict()
        )
        await db.commit()
        return {"success": True, "config": config.to_dict()}
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
        logger.error(f"Failed to update split config: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to update split config: {str(e)}"}
        )

"""
Member prize draw endpoints and the public winners list
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from portal.api.schemas import CamelModel
from portal.core.auth import get_current_user
from portal.db.session import get_db
from portal.models.profile import Profile
from portal.repos import prize_draw_repo
from portal.services import prize_draw

logger = logging.getLogger(__name__)

router = APIRouter(tags=["prize-draw"])


class ClaimRequest(CamelModel):
    winner_id: UUID


@router.get("/api/prize-draw/status")
async def draw_status(
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Active draw of the member's country and which view it renders."""
    try:
        result = await prize_draw.get_draw_status(db, current_user.country_code or "BD")
        return {"success": True, **result}
    except Exception as e:
        logger.error(f"Failed to read prize draw status: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to read prize draw status: {str(e)}"}
        )


@router.post("/api/prize-draw/enter")
async def enter_draw(
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    try:
        result = await prize_draw.enter_draw(db, current_user.id, current_user.country_code or "BD")
        await db.commit()
        return {"success": True, **result}
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
        logger.error(f"Failed to enter prize draw for {current_user.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to enter prize draw: {str(e)}"}
        )


@router.get("/api/prize-draw/my-entry")
async def my_entry(
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    try:
        draw = await prize_draw_repo.get_active_draw_for_country(db, current_user.country_code or "BD")
        if draw is None:
            return {"success": True, "entered": False, "entry": None}
        entry = await prize_draw_repo.get_entry(db, draw.id, current_user.id)
        return {
            "success": True,
            "entered": entry is not None,
            "entry": entry.to_dict() if entry else None,
            "drawId": str(draw.id),
        }
    except Exception as e:
        logger.error(f"Failed to read prize draw entry for {current_user.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to read entry: {str(e)}"}
        )


@router.get("/api/prize-draw/prizes")
async def my_prizes(
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    try:
        return {"success": True, "prizes": await prize_draw.get_member_prizes(db, current_user.id)}
    except Exception as e:
        logger.error(f"Failed to list prizes for {current_user.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to list prizes: {str(e)}"}
        )


@router.post("/api/prize-draw/claim")
async def claim_prize(
    payload: ClaimRequest,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    try:
        winner = await prize_draw.claim_prize(db, current_user.id, payload.winner_id)
        await db.commit()
        return {"success": True, "winner": winner.to_dict()}
    except prize_draw.ClaimError as e:
        await db.rollback()
        raise HTTPException(status_code=e.status_code, detail={"error": e.message})
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to claim prize {payload.winner_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to claim prize: {str(e)}"}
        )


@router.get("/api/public/winners")
async def public_winners(limit: int = 50, db: AsyncSession = Depends(get_db)):
    """Claimed winners of completed draws, names masked."""
    try:
        return {"success": True, "winners": await prize_draw.get_public_winners(db, min(limit, 200))}
    except Exception as e:
        logger.error(f"Failed to list public winners: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to list winners: {str(e)}"}
        )

"""
Prize draw orchestration: creation, announcement, prizes, entries, claims and
payouts.

Lifecycle of a draw: COMING_SOON -> ANNOUNCED -> COMPLETED. Winner selection
lives in ``portal.services.winner_selection``.
"""

import logging
import math
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.config import settings
from portal.core.timeutils import utcnow, ensure_aware
from portal.models.enums import (
    AnnouncementStatus, AwardType, ClaimStatus, PayoutStatus,
)
from portal.models.prize_draw import PrizeDraw, Prize, PrizeDrawWinner
from portal.repos import membership_repo, prize_draw_repo, wallet_repo
from portal.services import accounting

logger = logging.getLogger(__name__)

DEFAULT_DISCLAIMER = "Estimated prize pool is not guaranteed and depends on membership forecast."

DRAW_VIEW_COUNTDOWN = "countdown"
DRAW_VIEW_ENTRY = "entry"
DRAW_VIEW_NONE = "none"


# Gating rules

def can_announce(draw: PrizeDraw) -> bool:
    return draw.announcement_status == AnnouncementStatus.COMING_SOON.value


def can_run_winners(draw: PrizeDraw, now: Optional[datetime] = None) -> bool:
    """True iff the draw is ANNOUNCED and its draw date has been reached."""
    now = now or utcnow()
    return (
        draw.announcement_status == AnnouncementStatus.ANNOUNCED.value
        and ensure_aware(draw.draw_date) <= now
    )


def can_expire_and_redraw(draw: PrizeDraw, now: Optional[datetime] = None) -> bool:
    """Unclaimed prizes may be expired at any time after the draw date."""
    now = now or utcnow()
    return ensure_aware(draw.draw_date) <= now


def draw_view(draw: Optional[PrizeDraw]) -> str:
    """
    Which member-facing view a draw renders: the countdown until the draw is
    announced, the entry form once it is, nothing otherwise.
    """
    if draw is None:
        return DRAW_VIEW_NONE
    if draw.announcement_status == AnnouncementStatus.COMING_SOON.value:
        return DRAW_VIEW_COUNTDOWN
    if draw.announcement_status == AnnouncementStatus.ANNOUNCED.value:
        return DRAW_VIEW_ENTRY
    return DRAW_VIEW_NONE


def mask_winner_name(full_name: Optional[str], country_code: Optional[str] = "BD") -> str:
    """
    Public form of a winner's name: first name plus last initial.

    "Rahim Ahmed" -> "Rahim A.", "Rahim" -> "Rahim", blank -> "Member from BD".
    """
    parts = (full_name or "").split()
    if not parts:
        return f"Member from {country_code or 'BD'}"
    if len(parts) == 1:
        return parts[0]
    return f"{parts[0]} {parts[-1][0].upper()}."


def draw_title(draw_date: datetime) -> str:
    return f"Prize Draw - {draw_date.strftime('%Y-%m-%d')}"


# Forecast and estimate

async def calculate_forecast_member_count(
    session: AsyncSession,
    country_code: str,
    draw_date: datetime
) -> Dict[str, Any]:
    """
    Forecast how many active members the country will have on the draw date.

    forecast = current active + max(0, days until draw) * (new members in the
    lookback window / window length), rounded.
    """
    now = utcnow()
    days_until_draw = math.ceil((ensure_aware(draw_date) - now).total_seconds() / 86400)
    lookback = settings.forecast_lookback_days

    current = await membership_repo.count_active_members(session, country_code)
    recent = await membership_repo.count_members_activated_since(
        session, now - timedelta(days=lookback), country_code
    )

    daily_growth = recent / lookback
    forecast = round(current + max(0, days_until_draw) * daily_growth)
    return {
        "forecast_member_count": int(forecast),
        "current_member_count": current,
        "growth_rate": round(daily_growth, 2),
    }


async def calculate_estimated_prize_pool(
    session: AsyncSession,
    country_code: str,
    draw_date: datetime,
    percentage: Optional[float] = None
) -> Dict[str, Any]:
    """
    Estimated pool = round(forecast * membership fee * percentage / 100).

    Raises:
        ValueError: if the country has no settings row
    """
    country = await membership_repo.get_country_settings(session, country_code)
    if country is None:
        raise ValueError(f"Country settings not found for {country_code}")

    percent = float(percentage if percentage is not None else settings.prize_pool_percentage)
    forecast = await calculate_forecast_member_count(session, country_code, draw_date)
    fee = float(country.membership_fee or 0)
    amount = round(forecast["forecast_member_count"] * fee * percent / 100)
    return {
        "amount": amount,
        "currency_code": country.currency_code or "BDT",
        "percent": percent,
        "forecast_member_count": forecast["forecast_member_count"],
    }


# Draw lifecycle

async def create_draw(
    session: AsyncSession,
    country_code: str,
    draw_date: datetime,
    admin_id: UUID,
    pool_type: Optional[str] = None
) -> PrizeDraw:
    """
    Raises:
        ValueError: if the draw date is not in the future
    """
    draw_date = ensure_aware(draw_date)
    if draw_date <= utcnow():
        raise ValueError("Draw date must be in the future")

    fields = {
        "disclaimer_text": DEFAULT_DISCLAIMER,
        "estimated_prize_pool_percentage": settings.prize_pool_percentage,
    }
    if pool_type:
        fields["pool_type"] = pool_type

    draw = await prize_draw_repo.create_prize_draw(
        session, country_code, draw_title(draw_date), draw_date, created_by=admin_id, **fields
    )
    logger.info(f"Prize draw {draw.id} created for {country_code} on {draw_date.isoformat()}")
    return draw


async def announce_draw(session: AsyncSession, draw: PrizeDraw) -> PrizeDraw:
    """
    Announce a COMING_SOON draw and snapshot its forecast and pool estimate.

    Raises:
        ValueError: draw not COMING_SOON, or country settings missing
    """
    if not can_announce(draw):
        raise ValueError("Only COMING_SOON draws can be announced")

    percentage = float(draw.estimated_prize_pool_percentage or settings.prize_pool_percentage)
    estimate = await calculate_estimated_prize_pool(session, draw.country_code, draw.draw_date, percentage)

    draw.announcement_status = AnnouncementStatus.ANNOUNCED.value
    draw.announced_at = utcnow()
    draw.forecast_member_count = estimate["forecast_member_count"]
    draw.estimated_prize_pool_amount = Decimal(str(estimate["amount"]))
    draw.estimated_prize_pool_currency = estimate["currency_code"]
    await session.flush()

    logger.info(
        f"Prize draw {draw.id} announced: forecast {draw.forecast_member_count} members, "
        f"estimated pool {estimate['amount']} {estimate['currency_code']}"
    )
    return draw


async def create_prize(
    session: AsyncSession,
    draw: PrizeDraw,
    title: str,
    prize_type: str,
    award_type: str,
    prize_value_amount,
    currency_code: str,
    number_of_winners: int,
    admin_id: UUID,
    description: Optional[str] = None
) -> Dict[str, Any]:
    """
    Create a prize if the draw's cumulative prize value stays within the pool.

    Returns:
        ``{"allowed": True, "prize": Prize, ...}`` or the blocking validation
        result (``allowed`` False, ``shortfall``, ``error``) with nothing
        inserted.

    Raises:
        ValueError: invalid award type, value or winner count
    """
    if award_type not in (AwardType.RANDOM_DRAW.value, AwardType.COMMUNITY_SUPPORT.value):
        raise ValueError("awardType must be RANDOM_DRAW or COMMUNITY_SUPPORT")
    value = Decimal(str(prize_value_amount))
    if value <= 0:
        raise ValueError("prizeValueAmount must be greater than 0")
    if int(number_of_winners) < 1:
        raise ValueError("numberOfWinners must be at least 1")

    existing_total = await prize_draw_repo.get_active_prize_total(session, draw.id)
    validation = await accounting.validate_prize_draw_creation(
        session,
        [{"amount": value * int(number_of_winners), "name": title}],
        existing_total=existing_total
    )
    if not validation["allowed"]:
        return validation

    prize = await prize_draw_repo.create_prize(
        session,
        draw_id=draw.id,
        title=title,
        prize_type=prize_type,
        award_type=award_type,
        prize_value_amount=value,
        currency_code=currency_code,
        number_of_winners=int(number_of_winners),
        description=description,
        created_by=admin_id
    )
    return {**validation, "prize": prize}


async def get_winners_listing(session: AsyncSession, draw_id: UUID) -> List[Dict[str, Any]]:
    """Active prizes of a draw, each with its winners."""
    prizes = await prize_draw_repo.get_active_prizes(session, draw_id)
    rows = await prize_draw_repo.get_prize_winners_with_profiles(session, [p.id for p in prizes])

    by_prize: Dict[UUID, List[Dict[str, Any]]] = {p.id: [] for p in prizes}
    for winner, profile in rows:
        by_prize[winner.prize_id].append({
            "id": str(winner.id),
            "userId": str(winner.winner_user_id),
            "name": profile.full_name,
            "email": profile.email,
            "selectedAt": winner.selected_at.isoformat() if winner.selected_at else None,
            "claimStatus": winner.claim_status,
            "payoutStatus": winner.payout_status,
            "awardType": winner.award_type,
        })

    return [{**prize.to_dict(), "winners": by_prize[prize.id]} for prize in prizes]


# Member side

async def get_draw_status(session: AsyncSession, country_code: str) -> Dict[str, Any]:
    draw = await prize_draw_repo.get_active_draw_for_country(session, country_code)
    if draw is None:
        return {"status": "NONE", "view": DRAW_VIEW_NONE, "draw": None}
    return {
        "status": draw.announcement_status,
        "view": draw_view(draw),
        "draw": draw.to_dict(),
    }


async def enter_draw(session: AsyncSession, user_id: UUID, country_code: str) -> Dict[str, Any]:
    """
    Enter the member into the active draw of their country. Idempotent.

    Raises:
        ValueError: no announced draw, or no active membership
    """
    draw = await prize_draw_repo.get_active_draw_for_country(session, country_code)
    if draw is None or draw.announcement_status != AnnouncementStatus.ANNOUNCED.value:
        raise ValueError("No announced prize draw is open for entry")

    membership = await membership_repo.get_active_membership(session, user_id)
    if membership is None:
        raise ValueError("Active membership required to enter the prize draw")

    entry, created = await prize_draw_repo.create_entry(session, draw.id, user_id, membership.id)
    return {
        "drawId": str(draw.id),
        "entryId": str(entry.id),
        "enteredAt": entry.entered_at.isoformat() if entry.entered_at else None,
        "alreadyEntered": not created,
    }


class ClaimError(Exception):
    """A prize claim that cannot proceed; carries the HTTP status to answer with."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


async def claim_prize(session: AsyncSession, user_id: UUID, winner_id: UUID) -> PrizeDrawWinner:
    """
    Claim a won prize before its deadline.

    Raises:
        ClaimError: with 404 / 403 / 400 status codes
    """
    winner = await prize_draw_repo.get_winner(session, winner_id)
    if winner is None:
        raise ClaimError("Prize not found", 404)

    membership = await membership_repo.get_active_membership(session, user_id)
    if membership is None:
        raise ClaimError("Active membership required to claim prizes", 403)

    if winner.winner_user_id != user_id:
        raise ClaimError("This prize does not belong to you", 403)

    if winner.claim_status != ClaimStatus.PENDING.value:
        raise ClaimError("Prize has already been claimed or expired")

    if winner.claim_deadline_at and ensure_aware(winner.claim_deadline_at) < utcnow():
        raise ClaimError("Claim deadline has passed")

    winner.claim_status = ClaimStatus.CLAIMED.value
    winner.claimed_at = utcnow()
    await session.flush()
    logger.info(f"Prize winner {winner.id} claimed by {user_id}")
    return winner


async def pay_out_winner(session: AsyncSession, winner: PrizeDrawWinner, admin_id: UUID) -> PrizeDrawWinner:
    """
    Pay a claimed prize from the pool. Random-draw prizes go to the member
    wallet; community-support awards are booked as community support.

    Raises:
        ValueError: winner not claimed, already paid, or the posting failed
    """
    if winner.claim_status != ClaimStatus.CLAIMED.value:
        raise ValueError("Only claimed prizes can be paid out")
    if winner.payout_status == PayoutStatus.PAID.value:
        raise ValueError("Prize has already been paid out")

    prize: Optional[Prize] = await prize_draw_repo.get_prize(session, winner.prize_id)
    if prize is None:
        raise ValueError("Prize not found")
    amount = Decimal(str(prize.prize_value_amount))

    if winner.award_type == AwardType.COMMUNITY_SUPPORT.value:
        success, error, _ = await accounting.record_community_support(
            session, amount, winner.id, f"Community support: {prize.title}", created_by=admin_id
        )
    else:
        success, error, _ = await accounting.record_prize_payout(
            session, amount, winner.id, f"Prize payout: {prize.title}", created_by=admin_id
        )
        if success:
            success, error, _ = await wallet_repo.credit_wallet_atomic(
                session, winner.winner_user_id, amount, "prize_payout"
            )
    if not success:
        raise ValueError(error or "Failed to post prize payout")

    winner.payout_status = PayoutStatus.PAID.value
    winner.paid_at = utcnow()
    await session.flush()
    logger.info(f"Prize winner {winner.id} paid {amount} BDT ({winner.award_type})")
    return winner


async def get_member_prizes(session: AsyncSession, user_id: UUID) -> List[Dict[str, Any]]:
    rows = await prize_draw_repo.get_user_winnings(session, user_id)
    return [
        {
            **winner.to_dict(),
            "prizeTitle": prize.title,
            "prizeValueAmount": float(prize.prize_value_amount or 0),
            "currencyCode": prize.currency_code,
        }
        for winner, prize in rows
    ]


async def get_public_winners(session: AsyncSession, limit: int = 50) -> List[Dict[str, Any]]:
    rows = await prize_draw_repo.get_public_winners(session, limit)
    return [
        {
            "winnerName": mask_winner_name(profile.full_name, profile.country_code),
            "prizeTitle": prize.title,
            "awardType": winner.award_type,
            "drawTitle": draw.title,
            "drawDate": draw.draw_date.isoformat() if draw.draw_date else None,
            "claimedAt": winner.claimed_at.isoformat() if winner.claimed_at else None,
        }
        for winner, prize, draw, profile in rows
    ]

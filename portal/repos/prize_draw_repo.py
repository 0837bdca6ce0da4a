"""
Prize draw repository: draws, prizes, entries and winners
"""

from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, desc, asc

from portal.core.timeutils import utcnow
from portal.models.enums import AnnouncementStatus, ClaimStatus, PrizeStatus
from portal.models.prize_draw import PrizeDraw, Prize, PrizeDrawEntry, PrizeDrawWinner
from portal.models.profile import Profile


async def create_prize_draw(
    session: AsyncSession,
    country_code: str,
    title: str,
    draw_date,
    created_by: Optional[UUID] = None,
    **fields
) -> PrizeDraw:
    """
    Create a prize draw in COMING_SOON status.

    Args:
        session: Database session
        country_code: Country the draw runs in
        title: Display title
        draw_date: Aware UTC datetime of the draw
        created_by: Admin creating the draw

    Returns:
        Created PrizeDraw instance
    """
    draw = PrizeDraw(
        country_code=country_code,
        title=title,
        draw_date=draw_date,
        created_by=created_by,
        announcement_status=AnnouncementStatus.COMING_SOON.value,
        **fields
    )
    session.add(draw)
    await session.flush()
    return draw


async def get_prize_draw(session: AsyncSession, draw_id: UUID) -> Optional[PrizeDraw]:
    result = await session.execute(
        select(PrizeDraw).where(PrizeDraw.id == draw_id)
    )
    return result.scalar_one_or_none()


async def list_prize_draws(session: AsyncSession, limit: int = 50, offset: int = 0) -> List[PrizeDraw]:
    result = await session.execute(
        select(PrizeDraw).order_by(desc(PrizeDraw.draw_date)).limit(limit).offset(offset)
    )
    return list(result.scalars().all())


async def get_active_draw_for_country(session: AsyncSession, country_code: str) -> Optional[PrizeDraw]:
    """
    Earliest draw of a country that is still COMING_SOON or ANNOUNCED.
    """
    result = await session.execute(
        select(PrizeDraw)
        .where(
            PrizeDraw.country_code == country_code,
            PrizeDraw.announcement_status.in_([
                AnnouncementStatus.COMING_SOON.value,
                AnnouncementStatus.ANNOUNCED.value,
            ])
        )
        .order_by(asc(PrizeDraw.draw_date))
        .limit(1)
    )
    return result.scalar_one_or_none()


# Prizes

async def create_prize(
    session: AsyncSession,
    draw_id: UUID,
    title: str,
    prize_type: str,
    award_type: str,
    prize_value_amount: Decimal,
    currency_code: str = "BDT",
    number_of_winners: int = 1,
    description: Optional[str] = None,
    created_by: Optional[UUID] = None
) -> Prize:
    prize = Prize(
        draw_id=draw_id,
        title=title,
        description=description,
        prize_type=prize_type,
        award_type=award_type,
        prize_value_amount=Decimal(str(prize_value_amount)),
        currency_code=currency_code,
        number_of_winners=number_of_winners,
        status=PrizeStatus.ACTIVE.value,
        created_by=created_by
    )
    session.add(prize)
    await session.flush()
    return prize


async def get_prize(session: AsyncSession, prize_id: UUID, draw_id: Optional[UUID] = None) -> Optional[Prize]:
    query = select(Prize).where(Prize.id == prize_id)
    if draw_id:
        query = query.where(Prize.draw_id == draw_id)
    result = await session.execute(query)
    return result.scalar_one_or_none()


async def get_active_prizes(
    session: AsyncSession,
    draw_id: UUID,
    award_type: Optional[str] = None
) -> List[Prize]:
    """
    Active prizes of a draw, community awards first then by value descending.
    """
    query = select(Prize).where(
        Prize.draw_id == draw_id,
        Prize.status == PrizeStatus.ACTIVE.value
    )
    if award_type:
        query = query.where(Prize.award_type == award_type)
    query = query.order_by(desc(Prize.award_type), desc(Prize.prize_value_amount))
    result = await session.execute(query)
    return list(result.scalars().all())


async def get_active_prize_total(session: AsyncSession, draw_id: UUID) -> Decimal:
    """Sum of value x winners over the active prizes of a draw."""
    result = await session.execute(
        select(func.coalesce(func.sum(Prize.prize_value_amount * Prize.number_of_winners), 0))
        .where(Prize.draw_id == draw_id, Prize.status == PrizeStatus.ACTIVE.value)
    )
    return Decimal(str(result.scalar() or 0))


# Entries

async def get_entry(session: AsyncSession, draw_id: UUID, user_id: UUID) -> Optional[PrizeDrawEntry]:
    result = await session.execute(
        select(PrizeDrawEntry).where(
            PrizeDrawEntry.prize_draw_id == draw_id,
            PrizeDrawEntry.user_id == user_id
        )
    )
    return result.scalar_one_or_none()


async def create_entry(
    session: AsyncSession,
    draw_id: UUID,
    user_id: UUID,
    membership_id: Optional[UUID] = None
) -> Tuple[PrizeDrawEntry, bool]:
    """
    Enter a user into a draw. Idempotent.

    Returns:
        Tuple of (entry, created)
    """
    existing = await get_entry(session, draw_id, user_id)
    if existing:
        return existing, False

    entry = PrizeDrawEntry(prize_draw_id=draw_id, user_id=user_id, membership_id=membership_id)
    session.add(entry)
    await session.flush()
    return entry, True


async def count_entries_by_draw(session: AsyncSession, draw_ids: Sequence[UUID]) -> Dict[UUID, int]:
    """Entry counts keyed by draw id; draws without entries are absent."""
    if not draw_ids:
        return {}
    result = await session.execute(
        select(PrizeDrawEntry.prize_draw_id, func.count(PrizeDrawEntry.id))
        .where(PrizeDrawEntry.prize_draw_id.in_(draw_ids))
        .group_by(PrizeDrawEntry.prize_draw_id)
    )
    return {draw_id: int(count) for draw_id, count in result.all()}


# Winners

async def create_winner(
    session: AsyncSession,
    draw_id: UUID,
    prize_id: UUID,
    winner_user_id: UUID,
    award_type: str,
    claim_deadline_at=None,
    selected_by_admin_id: Optional[UUID] = None,
    assignment_reason: Optional[str] = None
) -> PrizeDrawWinner:
    winner = PrizeDrawWinner(
        draw_id=draw_id,
        prize_id=prize_id,
        winner_user_id=winner_user_id,
        award_type=award_type,
        selected_at=utcnow(),
        selected_by_admin_id=selected_by_admin_id,
        claim_deadline_at=claim_deadline_at,
        assignment_reason=assignment_reason
    )
    session.add(winner)
    await session.flush()
    return winner


async def get_winner(session: AsyncSession, winner_id: UUID) -> Optional[PrizeDrawWinner]:
    result = await session.execute(
        select(PrizeDrawWinner).where(PrizeDrawWinner.id == winner_id)
    )
    return result.scalar_one_or_none()


async def get_draw_winners(session: AsyncSession, draw_id: UUID) -> List[PrizeDrawWinner]:
    result = await session.execute(
        select(PrizeDrawWinner)
        .where(PrizeDrawWinner.draw_id == draw_id)
        .order_by(asc(PrizeDrawWinner.selected_at))
    )
    return list(result.scalars().all())


async def get_prize_winners_with_profiles(
    session: AsyncSession,
    prize_ids: Sequence[UUID]
) -> List[Tuple[PrizeDrawWinner, Profile]]:
    if not prize_ids:
        return []
    result = await session.execute(
        select(PrizeDrawWinner, Profile)
        .join(Profile, Profile.id == PrizeDrawWinner.winner_user_id)
        .where(PrizeDrawWinner.prize_id.in_(list(prize_ids)))
        .order_by(asc(PrizeDrawWinner.selected_at))
    )
    return [(row[0], row[1]) for row in result.all()]


async def get_user_winnings(session: AsyncSession, user_id: UUID) -> List[Tuple[PrizeDrawWinner, Prize]]:
    """All prizes a member has won, newest first."""
    result = await session.execute(
        select(PrizeDrawWinner, Prize)
        .join(Prize, Prize.id == PrizeDrawWinner.prize_id)
        .where(PrizeDrawWinner.winner_user_id == user_id)
        .order_by(desc(PrizeDrawWinner.selected_at))
    )
    return [(row[0], row[1]) for row in result.all()]


async def get_public_winners(session: AsyncSession, limit: int = 50) -> List[Tuple[PrizeDrawWinner, Prize, PrizeDraw, Profile]]:
    """CLAIMED winners of COMPLETED draws, newest first."""
    result = await session.execute(
        select(PrizeDrawWinner, Prize, PrizeDraw, Profile)
        .join(Prize, Prize.id == PrizeDrawWinner.prize_id)
        .join(PrizeDraw, PrizeDraw.id == PrizeDrawWinner.draw_id)
        .join(Profile, Profile.id == PrizeDrawWinner.winner_user_id)
        .where(
            PrizeDrawWinner.claim_status == ClaimStatus.CLAIMED.value,
            PrizeDraw.announcement_status == AnnouncementStatus.COMPLETED.value
        )
        .order_by(desc(PrizeDrawWinner.claimed_at))
        .limit(limit)
    )
    return [tuple(row) for row in result.all()]

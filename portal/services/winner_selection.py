"""
Winner selection for prize draws.

Random-draw winners are picked with ``secrets`` from eligible entries: the
entrant has an active membership that has not ended and is neither banned nor
suspended. Community-support winners are assigned by an admin.
"""

import logging
import secrets
from datetime import timedelta
from typing import Any, Dict, List, Optional, Sequence, Set
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.config import settings
from portal.core.timeutils import utcnow
from portal.models.enums import (
    AnnouncementStatus, AwardType, ClaimStatus, MembershipStatus,
    NotificationPriority, NotificationType, ProfileRole,
)
from portal.models.membership import Membership
from portal.models.prize_draw import PrizeDraw, PrizeDrawEntry, PrizeDrawWinner
from portal.models.profile import Profile
from portal.repos import membership_repo, prize_draw_repo
from portal.services import admin_notifications, messaging

logger = logging.getLogger(__name__)

INELIGIBLE_ROLES = (ProfileRole.BANNED.value, ProfileRole.SUSPENDED.value)


def claim_deadline():
    return utcnow() + timedelta(days=settings.prize_claim_deadline_days)


async def list_eligible_entries(
    session: AsyncSession,
    draw_id: UUID,
    exclude_user_ids: Optional[Set[UUID]] = None
) -> List[Dict[str, Any]]:
    """
    Entries of a draw whose entrant is still eligible to win.

    Returns:
        List of ``{"entry_id", "user_id", "membership_id"}`` dicts
    """
    result = await session.execute(
        select(PrizeDrawEntry.id, PrizeDrawEntry.user_id, Membership.id)
        .join(Membership, Membership.user_id == PrizeDrawEntry.user_id)
        .join(Profile, Profile.id == PrizeDrawEntry.user_id)
        .where(
            PrizeDrawEntry.prize_draw_id == draw_id,
            Membership.status == MembershipStatus.ACTIVE.value,
            Membership.end_date >= utcnow(),
            Profile.role.notin_(INELIGIBLE_ROLES)
        )
        .order_by(PrizeDrawEntry.entered_at)
    )
    exclude = exclude_user_ids or set()
    return [
        {"entry_id": entry_id, "user_id": user_id, "membership_id": membership_id}
        for entry_id, user_id, membership_id in result.all()
        if user_id not in exclude
    ]


def pick_random(candidates: Sequence[Any], count: int) -> List[Any]:
    """
    Pick up to ``count`` distinct candidates with a CSPRNG.
    """
    pool = list(candidates)
    picked = []
    for _ in range(min(count, len(pool))):
        picked.append(pool.pop(secrets.randbelow(len(pool))))
    return picked


async def select_random_winners(
    session: AsyncSession,
    draw_id: UUID,
    number_of_winners: int
) -> List[UUID]:
    """
    Choose winner user ids for one prize, preferring entrants who have not
    already won in this draw.
    """
    entries = await list_eligible_entries(session, draw_id)
    if not entries:
        return []

    existing = await prize_draw_repo.get_draw_winners(session, draw_id)
    already_won = {w.winner_user_id for w in existing}
    not_yet_won = [e for e in entries if e["user_id"] not in already_won]
    if not_yet_won:
        entries = not_yet_won

    return [e["user_id"] for e in pick_random(entries, number_of_winners)]


async def save_winners(
    session: AsyncSession,
    draw_id: UUID,
    prize_id: UUID,
    user_ids: Sequence[UUID],
    award_type: str,
    admin_id: Optional[UUID] = None
) -> List[PrizeDrawWinner]:
    deadline = claim_deadline()
    winners = []
    for user_id in user_ids:
        winners.append(await prize_draw_repo.create_winner(
            session,
            draw_id=draw_id,
            prize_id=prize_id,
            winner_user_id=user_id,
            award_type=award_type,
            claim_deadline_at=deadline,
            selected_by_admin_id=admin_id
        ))
    return winners


async def notify_winner(session: AsyncSession, winner: PrizeDrawWinner, prize_title: str, draw: PrizeDraw) -> None:
    """
    Tell a winner by SYSTEM message. Failures are logged and swallowed; the
    message is written in a savepoint so a failed insert leaves the rest of
    the session usable.
    """
    deadline = winner.claim_deadline_at.strftime("%d %B %Y %H:%M UTC") if winner.claim_deadline_at else "-"
    try:
        async with session.begin_nested():
            await messaging.send_system_message(
                session,
                winner.winner_user_id,
                f"🎉 Congratulations! You Won: {prize_title}",
                (
                    f"You have been selected as a winner in {draw.title}.\n"
                    f"Prize: {prize_title}\n"
                    f"Claim your prize before {deadline} from the Prize Draw page."
                ),
                related_entity_type="prize_draw_winner",
                related_entity_id=str(winner.id)
            )
    except Exception as e:
        logger.error(f"Failed to notify winner {winner.id}: {e}")


async def run_winner_selection(session: AsyncSession, draw: PrizeDraw, admin_id: UUID) -> Dict[str, Any]:
    """
    Select winners for every active RANDOM_DRAW prize of an announced draw.

    A run that created winners completes the draw.

    Returns:
        ``{"winners_created": int, "winners": [PrizeDrawWinner, ...]}``

    Raises:
        ValueError: draw not ANNOUNCED, or it has no active prizes
    """
    if draw.announcement_status != AnnouncementStatus.ANNOUNCED.value:
        raise ValueError("Draw must be ANNOUNCED before running winner selection")

    prizes = await prize_draw_repo.get_active_prizes(session, draw.id)
    if not prizes:
        raise ValueError("No active prizes found for this draw")

    created: List[PrizeDrawWinner] = []
    titles = {}
    for prize in prizes:
        if prize.award_type != AwardType.RANDOM_DRAW.value:
            continue
        user_ids = await select_random_winners(session, draw.id, prize.number_of_winners)
        if not user_ids:
            logger.warning(f"No eligible entries for prize {prize.id} in draw {draw.id}")
            continue
        winners = await save_winners(session, draw.id, prize.id, user_ids, prize.award_type, admin_id)
        titles.update({w.id: prize.title for w in winners})
        created.extend(winners)

    if created:
        draw.announcement_status = AnnouncementStatus.COMPLETED.value
        await session.flush()
        for winner in created:
            await notify_winner(session, winner, titles[winner.id], draw)

    await admin_notifications.create_notification(
        session,
        NotificationType.SYSTEM_ALERT.value,
        "Prize draw winners selected",
        f"{len(created)} winner(s) selected for {draw.title}.",
        priority=NotificationPriority.HIGH.value if created else NotificationPriority.NORMAL.value,
        related_entity_id=str(draw.id),
        related_entity_type="prize_draw"
    )

    logger.info(f"Winner selection for draw {draw.id} created {len(created)} winners")
    return {"winners_created": len(created), "winners": created}


async def expire_and_redraw(session: AsyncSession, draw: PrizeDraw) -> Dict[str, int]:
    """
    Expire PENDING winners past their claim deadline and draw one replacement
    for each expired RANDOM_DRAW winner. Replacements are notified like
    first-round winners.

    Returns:
        ``{"numberExpired": int, "numberRedrawn": int}``
    """
    now = utcnow()
    result = await session.execute(
        select(PrizeDrawWinner).where(
            PrizeDrawWinner.draw_id == draw.id,
            PrizeDrawWinner.claim_status == ClaimStatus.PENDING.value,
            PrizeDrawWinner.claim_deadline_at < now
        )
    )
    expired = list(result.scalars().all())
    if not expired:
        return {"numberExpired": 0, "numberRedrawn": 0}

    for winner in expired:
        winner.claim_status = ClaimStatus.EXPIRED.value
    await session.flush()

    redrawn: List[PrizeDrawWinner] = []
    for winner in expired:
        if winner.award_type != AwardType.RANDOM_DRAW.value:
            continue

        existing = await session.execute(
            select(PrizeDrawWinner.winner_user_id).where(
                PrizeDrawWinner.draw_id == draw.id,
                PrizeDrawWinner.prize_id == winner.prize_id
            )
        )
        exclude = set(existing.scalars().all())
        candidates = await list_eligible_entries(session, draw.id, exclude)
        if not candidates:
            logger.info(f"No eligible entries for redraw of prize {winner.prize_id}")
            continue

        replacement = pick_random(candidates, 1)[0]
        redrawn.append(await prize_draw_repo.create_winner(
            session,
            draw_id=draw.id,
            prize_id=winner.prize_id,
            winner_user_id=replacement["user_id"],
            award_type=AwardType.RANDOM_DRAW.value,
            claim_deadline_at=claim_deadline()
        ))

    for replacement in redrawn:
        prize = await prize_draw_repo.get_prize(session, replacement.prize_id)
        await notify_winner(session, replacement, prize.title if prize else "Prize Draw prize", draw)

    logger.info(f"Draw {draw.id}: expired {len(expired)} winners, redrew {len(redrawn)}")
    return {"numberExpired": len(expired), "numberRedrawn": len(redrawn)}


async def assign_community_support(
    session: AsyncSession,
    draw_id: UUID,
    prize_id: UUID,
    user_id: UUID,
    reason: str,
    admin_id: UUID
) -> PrizeDrawWinner:
    """
    Manually award a COMMUNITY_SUPPORT prize to a member.

    Raises:
        LookupError: prize not found in the draw, or membership missing
        ValueError: reason too short, prize is not a community award, member
            already holds a prize in this draw, or every winner slot is taken
    """
    if not reason or len(reason.strip()) < 10:
        raise ValueError("Reason must be at least 10 characters")

    prize = await prize_draw_repo.get_prize(session, prize_id, draw_id)
    if prize is None:
        raise LookupError("Prize not found")
    if prize.award_type != AwardType.COMMUNITY_SUPPORT.value:
        raise ValueError("Prize is not a COMMUNITY_SUPPORT award")

    membership = await membership_repo.get_membership_by_user(session, user_id)
    if membership is None:
        raise LookupError("User membership not found")

    draw_winners = await prize_draw_repo.get_draw_winners(session, draw_id)
    if any(w.winner_user_id == user_id and w.claim_status != ClaimStatus.EXPIRED.value for w in draw_winners):
        raise ValueError("Member has already been awarded a prize in this draw")
    taken = [w for w in draw_winners if w.prize_id == prize.id and w.claim_status != ClaimStatus.EXPIRED.value]
    if len(taken) >= prize.number_of_winners:
        raise ValueError("All winner slots for this prize are already filled")

    return await prize_draw_repo.create_winner(
        session,
        draw_id=draw_id,
        prize_id=prize_id,
        winner_user_id=user_id,
        award_type=AwardType.COMMUNITY_SUPPORT.value,
        claim_deadline_at=claim_deadline(),
        selected_by_admin_id=admin_id,
        assignment_reason=reason.strip()
    )


async def process_expired_prizes(session: AsyncSession) -> Dict[str, int]:
    """Expire and redraw across every draw whose date has passed."""
    result = await session.execute(
        select(PrizeDraw).where(
            PrizeDraw.announcement_status.in_([
                AnnouncementStatus.ANNOUNCED.value,
                AnnouncementStatus.COMPLETED.value,
            ]),
            PrizeDraw.draw_date <= utcnow()
        )
    )
    totals = {"draws": 0, "numberExpired": 0, "numberRedrawn": 0}
    for draw in result.scalars().all():
        counts = await expire_and_redraw(session, draw)
        totals["draws"] += 1
        totals["numberExpired"] += counts["numberExpired"]
        totals["numberRedrawn"] += counts["numberRedrawn"]
    return totals

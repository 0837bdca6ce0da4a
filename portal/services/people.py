"""
Member and agent lookup for the admin people search
"""

import logging
from typing import Any, Dict, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.models.enums import ProfileRole
from portal.models.membership import Membership
from portal.models.profile import Profile
from portal.repos import membership_repo, profile_repo

logger = logging.getLogger(__name__)

MAX_RESULTS = 25


async def _search_by_membership_number(session: AsyncSession, number: int) -> List[Profile]:
    result = await session.execute(
        select(Profile)
        .join(Membership, Membership.user_id == Profile.id)
        .where(Membership.membership_number == number)
    )
    return list(result.scalars().all())


async def _to_result(session: AsyncSession, profile: Profile) -> Dict[str, Any]:
    is_agent = profile.role == ProfileRole.AGENT.value
    row = {
        "userId": str(profile.id),
        "accountType": "agent" if is_agent else "member",
        "fullName": profile.full_name,
        "email": profile.email,
        "countryCode": profile.country_code,
        "role": profile.role,
        "referralCode": profile.referral_code,
    }
    if is_agent:
        row["agentStatus"] = profile.agent_status
        return row

    membership = await membership_repo.get_membership_by_user(session, profile.id)
    row["memberNumber"] = membership.membership_number if membership else None
    row["membershipStatus"] = membership.status if membership else None
    row["membershipEnd"] = (
        membership.end_date.isoformat() if membership and membership.end_date else None
    )
    return row


async def search_people(session: AsyncSession, query: str) -> List[Dict[str, Any]]:
    """
    Find members and agents by name, email, referral code or membership number.

    Raises:
        ValueError: empty query
    """
    term = (query or "").strip()
    if not term:
        raise ValueError("Search query required")

    matches = []
    if term.isdigit():
        matches.extend(await _search_by_membership_number(session, int(term)))
    matches.extend(await profile_repo.search_profiles(session, term, limit=MAX_RESULTS))

    seen = set()
    results = []
    for profile in matches:
        if profile.id in seen:
            continue
        if profile.role not in (ProfileRole.MEMBER.value, ProfileRole.AGENT.value):
            continue
        seen.add(profile.id)
        results.append(await _to_result(session, profile))
        if len(results) >= MAX_RESULTS:
            break
    return results

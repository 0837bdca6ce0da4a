"""
CEO test accounts and free membership activation.

Test accounts are ordinary rows flagged ``is_test_account`` with
``verification_notes = "TEST_ACCOUNT"`` so they can be filtered out of reports.
"""

import logging
import secrets
import string
from datetime import timedelta
from decimal import Decimal
from typing import Any, Dict, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.auth import get_password_hash
from portal.core.config import settings
from portal.core.timeutils import utcnow
from portal.models.enums import AgentStatus, MembershipStatus, ProfileRole
from portal.models.membership import Membership
from portal.repos import membership_repo, profile_repo
from portal.repos.audit_log_repo import log_admin_action
from portal.services.payments import generate_membership_number

logger = logging.getLogger(__name__)

TEST_ACCOUNT_NOTE = "TEST_ACCOUNT"


def alias_email(email: str, alias: str) -> str:
    """``ceo@example.com`` + ``member`` -> ``ceo+member@example.com``"""
    local, _, domain = email.partition("@")
    if not domain:
        raise ValueError("Invalid email address")
    return f"{local}+{alias}@{domain}"


async def activate_free_membership(session: AsyncSession, user_id: UUID) -> Tuple[Membership, bool]:
    """
    Give a user an active, fee-free membership for a year.

    Returns:
        Tuple of (membership, created)
    """
    now = utcnow()
    end = now + timedelta(days=settings.membership_duration_days)
    membership = await membership_repo.get_membership_by_user(session, user_id)
    created = membership is None

    if created:
        membership = await membership_repo.create_membership(
            session,
            user_id,
            status=MembershipStatus.ACTIVE.value,
            membership_number=await generate_membership_number(session),
            fee_amount=Decimal("0"),
            fee_currency="BDT",
            start_date=now,
            end_date=end,
            activated_at=now,
            payment_method="free"
        )
    else:
        membership.status = MembershipStatus.ACTIVE.value
        membership.start_date = now
        membership.end_date = end
        membership.activated_at = now
        membership.fee_amount = Decimal("0")
        if not membership.membership_number:
            membership.membership_number = await generate_membership_number(session)
        await session.flush()

    return membership, created


async def create_ceo_test_accounts(
    session: AsyncSession,
    ceo_email: str,
    password: str,
    full_name: str,
    country_code: str,
    actor_id: UUID
) -> Dict[str, Any]:
    """
    Create a super admin, a member with an active membership, and an approved
    agent, all sharing one password and flagged as test accounts.

    Raises:
        ValueError: invalid email, or any of the three emails already exists
    """
    emails = {
        "superAdmin": ceo_email.lower(),
        "member": alias_email(ceo_email.lower(), "member"),
        "agent": alias_email(ceo_email.lower(), "agent"),
    }
    for email in emails.values():
        if await profile_repo.get_profile_by_email(session, email):
            raise ValueError(f"Account already exists: {email}")

    password_hash = get_password_hash(password)
    common = {
        "password_hash": password_hash,
        "country_code": country_code,
        "verification_notes": TEST_ACCOUNT_NOTE,
        "is_test_account": True,
    }

    super_admin = await profile_repo.create_profile(
        session, emails["superAdmin"], f"{full_name} (CEO)", ProfileRole.SUPER_ADMIN.value, **common
    )

    referral_code = "CEO" + "".join(secrets.choice(string.ascii_uppercase + string.digits) for _ in range(6))
    member = await profile_repo.create_profile(
        session, emails["member"], f"{full_name} (Member Test)", ProfileRole.MEMBER.value,
        referral_code=referral_code, **common
    )
    membership, _ = await activate_free_membership(session, member.id)

    agent = await profile_repo.create_profile(
        session, emails["agent"], f"{full_name} (Agent Test)", ProfileRole.AGENT.value,
        agent_status=AgentStatus.ACTIVE.value, **common
    )

    await log_admin_action(
        session,
        actor_id=actor_id,
        action="CEO_TEST_ACCOUNTS_CREATED",
        details={"emails": list(emails.values()), "country_code": country_code}
    )
    logger.info(f"CEO test accounts created for {ceo_email} by {actor_id}")

    return {
        "superAdmin": {"id": str(super_admin.id), "email": super_admin.email, "role": super_admin.role},
        "member": {
            "id": str(member.id),
            "email": member.email,
            "role": member.role,
            "membershipNumber": membership.membership_number,
            "referralCode": referral_code,
        },
        "agent": {"id": str(agent.id), "email": agent.email, "role": agent.role},
    }

#!/usr/bin/env python3
"""
Chairman seed script

Creates the chairman's profile and employee row, plus the Bangladesh country
settings the prize draw and payment flows read.

Environment Variables:
- SEED_CHAIRMAN_EMAIL: Chairman email address (required)
- SEED_CHAIRMAN_NAME: Display name (default "Chairman")
- SEED_CHAIRMAN_PASSWORD: Password (optional - will generate if not provided)
- SEED_MEMBERSHIP_FEE: Yearly membership fee in BDT (default 1000)
- SEED_REFERRAL_BONUS: Referral bonus in BDT (default 100)

Usage:
    python scripts/seed_chairman.py
"""

import asyncio
import logging
import os
import secrets
import string
from decimal import Decimal

from portal.core.auth import get_password_hash
from portal.core.deployment import COUNTRY_CODE, CURRENCY_CODE
from portal.db.session import AsyncSessionLocal
from portal.models.enums import ProfileRole, RoleCategory
from portal.repos import membership_repo, profile_repo

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
logger = logging.getLogger("seed_chairman")


def generate_secure_password(length: int = 16) -> str:
    """Generate a secure random password."""
    alphabet = string.ascii_letters + string.digits + "!@#$%^&*"
    return ''.join(secrets.choice(alphabet) for _ in range(length))


async def seed(email: str, full_name: str, password: str, membership_fee: Decimal, referral_bonus: Decimal) -> None:
    async with AsyncSessionLocal() as session:
        try:
            chairman = await profile_repo.get_profile_by_email(session, email)
            if chairman is None:
                chairman = await profile_repo.create_profile(
                    session,
                    email=email,
                    full_name=full_name,
                    role=ProfileRole.SUPER_ADMIN.value,
                    password_hash=get_password_hash(password),
                    country_code=COUNTRY_CODE
                )
                logger.info(f"Created chairman profile {chairman.id}")
            else:
                logger.info(f"Chairman profile already exists: {chairman.id}")

            if await profile_repo.get_employee_by_user_id(session, chairman.id) is None:
                await profile_repo.create_employee(
                    session,
                    chairman.id,
                    RoleCategory.CHAIRMAN.value,
                    department="Executive",
                    full_name=full_name,
                    employee_code="CHAIRMAN-001"
                )
                logger.info("Created chairman employee record")

            await membership_repo.upsert_country_settings(
                session,
                COUNTRY_CODE,
                membership_fee=membership_fee,
                currency_code=CURRENCY_CODE,
                referral_bonus_amount=referral_bonus
            )
            await session.commit()
        except Exception:
            await session.rollback()
            raise

    logger.info(f"Seed complete. Log in as {email}")


def main() -> None:
    email = os.getenv("SEED_CHAIRMAN_EMAIL")
    if not email:
        logger.error("SEED_CHAIRMAN_EMAIL environment variable is required")
        raise SystemExit(1)

    password = os.getenv("SEED_CHAIRMAN_PASSWORD")
    if not password:
        password = generate_secure_password()
        logger.info(f"Generated password: {password} (change it after first login)")

    asyncio.run(seed(
        email.strip().lower(),
        os.getenv("SEED_CHAIRMAN_NAME", "Chairman"),
        password,
        Decimal(os.getenv("SEED_MEMBERSHIP_FEE", "1000")),
        Decimal(os.getenv("SEED_REFERRAL_BONUS", "100"))
    ))


if __name__ == "__main__":
    main()

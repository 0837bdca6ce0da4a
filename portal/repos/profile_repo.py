"""
Profile and employee repository with async CRUD operations
"""

from typing import Optional, List, Sequence
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_

from portal.models.profile import Profile, Employee
from portal.models.enums import ProfileRole


async def create_profile(
    session: AsyncSession,
    email: str,
    full_name: Optional[str] = None,
    role: str = ProfileRole.MEMBER.value,
    password_hash: Optional[str] = None,
    country_code: str = "BD",
    **extra
) -> Profile:
    """
    Create a new profile.

    Args:
        session: Database session
        email: Email address (must be unique)
        full_name: Display name
        role: Profile role (default: member)
        password_hash: bcrypt hash, if the user can log in
        country_code: Country of the user

    Returns:
        Created Profile instance
    """
    profile = Profile(
        email=email.lower(),
        full_name=full_name,
        role=role,
        password_hash=password_hash,
        country_code=country_code,
        **extra
    )
    session.add(profile)
    await session.flush()
    return profile


async def get_profile_by_id(session: AsyncSession, user_id: UUID) -> Optional[Profile]:
    """
    Get profile by ID.

    Args:
        session: Database session
        user_id: Profile UUID

    Returns:
        Profile instance or None if not found
    """
    result = await session.execute(
        select(Profile).where(Profile.id == user_id)
    )
    return result.scalar_one_or_none()


async def get_profile_by_email(session: AsyncSession, email: str) -> Optional[Profile]:
    result = await session.execute(
        select(Profile).where(Profile.email == email.lower())
    )
    return result.scalar_one_or_none()


async def get_profile_by_referral_code(session: AsyncSession, referral_code: str) -> Optional[Profile]:
    result = await session.execute(
        select(Profile).where(Profile.referral_code == referral_code)
    )
    return result.scalar_one_or_none()


async def list_profiles_by_roles(
    session: AsyncSession,
    roles: Sequence[str],
    country_code: Optional[str] = None
) -> List[Profile]:
    """
    List profiles having one of the given roles, optionally within a country.
    """
    query = select(Profile).where(Profile.role.in_(list(roles)))
    if country_code:
        query = query.where(Profile.country_code == country_code)
    result = await session.execute(query.order_by(Profile.created_at))
    return list(result.scalars().all())


async def search_profiles(session: AsyncSession, term: str, limit: int = 20) -> List[Profile]:
    """
    Search profiles by name, email or referral code (case-insensitive substring).
    """
    pattern = f"%{term.strip()}%"
    result = await session.execute(
        select(Profile)
        .where(or_(
            Profile.full_name.ilike(pattern),
            Profile.email.ilike(pattern),
            Profile.referral_code.ilike(pattern)
        ))
        .order_by(Profile.full_name)
        .limit(limit)
    )
    return list(result.scalars().all())


async def create_employee(
    session: AsyncSession,
    user_id: UUID,
    role_category: str,
    department: Optional[str] = None,
    full_name: Optional[str] = None,
    employee_code: Optional[str] = None
) -> Employee:
    employee = Employee(
        user_id=user_id,
        role_category=role_category,
        department=department,
        full_name=full_name,
        employee_code=employee_code
    )
    session.add(employee)
    await session.flush()
    return employee


async def get_employee_by_user_id(session: AsyncSession, user_id: UUID) -> Optional[Employee]:
    result = await session.execute(
        select(Employee).where(Employee.user_id == user_id)
    )
    return result.scalar_one_or_none()

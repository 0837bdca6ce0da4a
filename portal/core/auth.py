"""
JWT authentication utilities and role dependencies
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from uuid import UUID

from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import HTTPException, Request, status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.config import settings
from portal.db.session import get_db
from portal.models.enums import ProfileRole
from portal.models.profile import Profile
from portal.repos.profile_repo import get_profile_by_id
from portal.services import permissions

logger = logging.getLogger(__name__)

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# JWT token scheme
security = HTTPBearer()

INACTIVE_ROLES = (ProfileRole.BANNED.value, ProfileRole.SUSPENDED.value)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password."""
    return pwd_context.hash(password)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_access_token_expire_minutes)

    to_encode.update({"exp": expire, "type": "access"})
    encoded_jwt = jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
    return encoded_jwt


def verify_token(token: str, token_type: str = "access") -> Dict[str, Any]:
    """Verify and decode a JWT token."""
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
        if payload.get("type") != token_type:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token type"
            )
        return payload
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials"
        )


def get_client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    session: AsyncSession = Depends(get_db)
) -> Profile:
    """Get current authenticated user."""
    payload = verify_token(credentials.credentials, "access")

    user_id = payload.get("sub")
    if user_id is None:
        logger.error("JWT token missing 'sub' claim")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials"
        )

    try:
        user_uuid = UUID(user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials"
        )

    user = await get_profile_by_id(session, user_uuid)
    if user is None:
        logger.error(f"Profile not found for ID: {user_id}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized - Profile not found"
        )

    if user.role in INACTIVE_ROLES:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User account is not active"
        )

    return user


async def require_admin_role(
    request: Request,
    current_user: Profile = Depends(get_current_user),
    session: AsyncSession = Depends(get_db)
) -> Profile:
    """
    Require an admin. master_admin is read-only and may only issue GET
    requests; non-admins are refused and the attempt is audited.
    """
    if current_user.role == ProfileRole.MASTER_ADMIN.value and request.method != "GET":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": "Forbidden - Master Admin access is read-only",
                "allowedMethods": ["GET"],
                "blockedMethod": request.method,
            }
        )

    if not await permissions.is_admin(session, current_user.id):
        await permissions.log_permission_violation(
            session,
            current_user.id,
            "ADMIN_API_ACCESS",
            {
                "endpoint": request.url.path,
                "method": request.method,
                "role": current_user.role,
                "reason": "Non-admin attempted to access admin API endpoint",
            },
            get_client_ip(request),
            request.headers.get("user-agent")
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"error": "Forbidden - Admin access required"}
        )

    return current_user


async def require_agent_role(
    request: Request,
    current_user: Profile = Depends(get_current_user),
    session: AsyncSession = Depends(get_db)
) -> Profile:
    """Require an approved agent (or an admin acting on their behalf)."""
    if await permissions.is_approved_agent(session, current_user.id):
        return current_user
    if await permissions.is_admin(session, current_user.id):
        return current_user

    await permissions.log_permission_violation(
        session,
        current_user.id,
        "AGENT_API_ACCESS",
        {
            "endpoint": request.url.path,
            "method": request.method,
            "role": current_user.role,
            "reason": "Non-agent attempted to access agent API endpoint",
        },
        get_client_ip(request),
        request.headers.get("user-agent")
    )
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail={"error": "Forbidden - Approved agent access required"}
    )


async def require_chairman(
    request: Request,
    current_user: Profile = Depends(get_current_user),
    session: AsyncSession = Depends(get_db)
) -> Profile:
    """Require the chairman; denied attempts are audited."""
    if await permissions.is_chairman(session, current_user.id):
        return current_user

    await permissions.log_permission_violation(
        session,
        current_user.id,
        "CHAIRMAN_API_ACCESS",
        {
            "endpoint": request.url.path,
            "method": request.method,
            "role": current_user.role,
            "reason": "Chairman authority required",
        },
        get_client_ip(request),
        request.headers.get("user-agent")
    )
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail={"error": "Forbidden - Chairman authority required"}
    )

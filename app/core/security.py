"""
Access Guard

Bearer-token authentication and role checks for the mutating endpoints.

    authenticate(token, db)        → Subject or UnauthorizedError
    authorize(role, roles)         → bool
    require_role(subject, roles)   → None or ForbiddenError

Tokens are HS256 JWTs whose "sub" claim is a user id; the user's role is
read from the record store on every request so a demotion takes effect
immediately.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.errors import ForbiddenError, UnauthorizedError
from app.database import get_db
from app.models import User, UserRole
from app.services.record_store import RecordStore

logger = logging.getLogger(__name__)

STAFF_ROLES = frozenset({UserRole.ADMIN, UserRole.STAFF})

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Subject:
    """Authenticated caller."""
    subject_id: str
    role: UserRole


def create_access_token(subject_id: str, expires_minutes: Optional[int] = None) -> str:
    """Issue a signed access token for a user id."""
    settings = get_settings()
    minutes = expires_minutes if expires_minutes is not None else settings.access_token_expire_minutes
    now = datetime.now(timezone.utc)
    claims = {
        "sub": subject_id,
        "iat": now,
        "exp": now + timedelta(minutes=minutes),
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


async def authenticate(token: Optional[str], db: AsyncSession) -> Subject:
    """
    Verify a bearer token and resolve the caller.

    Raises:
        UnauthorizedError: Token missing, invalid, expired, or user unknown
    """
    if not token:
        raise UnauthorizedError()

    settings = get_settings()
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Unauthorized - Token expired")
    except jwt.InvalidTokenError as e:
        logger.warning(f"Rejected access token: {e}")
        raise UnauthorizedError("Unauthorized - Invalid token")

    user = await RecordStore(db, User).find_by_id(claims.get("sub"))
    if user is None:
        raise UnauthorizedError("Unauthorized - Unknown user")

    return Subject(subject_id=user.id, role=user.role)


def authorize(role: UserRole, required_roles: Iterable[UserRole]) -> bool:
    return role in set(required_roles)


def require_role(subject: Subject, roles: Iterable[UserRole]) -> None:
    if not authorize(subject.role, roles):
        logger.warning(f"User {subject.subject_id} ({subject.role.value}) denied")
        raise ForbiddenError()


# =============================================================================
# FASTAPI DEPENDENCIES
# =============================================================================

async def get_current_subject(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Subject:
    token = credentials.credentials if credentials else None
    return await authenticate(token, db)


async def require_staff(subject: Subject = Depends(get_current_subject)) -> Subject:
    require_role(subject, STAFF_ROLES)
    return subject


async def guard_order_status(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Optional[Subject]:
    """Staff check for status changes, applied only when protect_order_status is on."""
    if not get_settings().protect_order_status:
        return None
    subject = await authenticate(credentials.credentials if credentials else None, db)
    require_role(subject, STAFF_ROLES)
    return subject

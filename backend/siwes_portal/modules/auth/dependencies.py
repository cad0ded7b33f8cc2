from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from fastapi import Depends, Path, Request
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from siwes_portal.core.database import get_db
from siwes_portal.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    InvalidTokenError,
    PasswordChangeRequiredError,
    StudentNotFoundError,
    TokenRevokedError,
)
from siwes_portal.core.logging_config import set_user_id
from siwes_portal.core.security import ACCESS_TOKEN, decode_token, security
from siwes_portal.core.types import is_valid_uuid
from siwes_portal.models.student import Student
from siwes_portal.models.user import User, UserRole
from siwes_portal.services.token_blacklist import is_token_blacklisted


@dataclass
class AuthenticatedSession:
    """The caller, plus the raw token they presented"""
    user: User
    token: str
    payload: Dict[str, Any]


async def resolve_token_user(
    db: AsyncSession,
    token: str,
    expected_type: str = ACCESS_TOKEN,
) -> AuthenticatedSession:
    """
    Validate a JWT and load its user.

    Checks signature and expiry, token type, the blacklist, and that the user
    still exists and is active.
    """
    payload = decode_token(token)

    if payload.get("type") != expected_type:
        raise InvalidTokenError("Invalid token type")

    if await is_token_blacklisted(db, token):
        raise TokenRevokedError()

    user_id = payload.get("sub")
    if not user_id or not is_valid_uuid(user_id):
        raise InvalidTokenError("Invalid token payload")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user:
        raise AuthenticationError("User not found")

    if not user.is_active:
        raise AuthorizationError("User account is inactive", code="ACCOUNT_INACTIVE")

    return AuthenticatedSession(user=user, token=token, payload=payload)


async def get_current_session(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> AuthenticatedSession:
    """Authenticate the bearer token without the password-change gate"""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Access token required")

    session = await resolve_token_user(db, credentials.credentials)

    request.state.user_id = str(session.user.id)
    set_user_id(str(session.user.id))
    return session


async def get_current_user_allow_password_change(
    session: AuthenticatedSession = Depends(get_current_session)
) -> User:
    """For the few routes a user with a temporary password may still call"""
    return session.user


async def get_current_user(
    session: AuthenticatedSession = Depends(get_current_session)
) -> User:
    """Get current authenticated user"""
    if session.user.must_change_password:
        raise PasswordChangeRequiredError()
    return session.user


def require_roles(*roles: UserRole) -> Callable:
    """
    Build a dependency that only lets the given roles through.

    Usage:
        @router.post("", dependencies=[Depends(require_roles(UserRole.ADMIN))])
    """
    allowed = frozenset(roles)

    async def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            raise AuthorizationError("Insufficient permissions")
        return current_user

    role_checker.__name__ = "require_" + "_or_".join(r.value.lower() for r in roles)
    return role_checker


get_current_admin = require_roles(UserRole.ADMIN)
get_current_student = require_roles(UserRole.STUDENT)
get_current_industry_supervisor = require_roles(UserRole.INDUSTRY_SUPERVISOR)
get_current_school_supervisor = require_roles(UserRole.SCHOOL_SUPERVISOR)


def can_access_student(user: User, student: Student) -> bool:
    """Admins, the student themself, and either of their supervisors"""
    if user.role == UserRole.ADMIN:
        return True
    if user.role == UserRole.STUDENT:
        return student.id == user.id
    if user.role == UserRole.INDUSTRY_SUPERVISOR:
        return student.industry_supervisor_id == user.id
    if user.role == UserRole.SCHOOL_SUPERVISOR:
        return student.school_supervisor_id == user.id
    return False


async def load_student(db: AsyncSession, student_id: str) -> Student:
    if not is_valid_uuid(student_id):
        raise StudentNotFoundError()
    result = await db.execute(select(Student).where(Student.id == student_id))
    student = result.scalar_one_or_none()
    if not student:
        raise StudentNotFoundError()
    return student


async def get_accessible_student(
    student_id: str = Path(..., description="Student (user) ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Student:
    """
    Load a student the caller is allowed to see.

    Students asking about anyone else get 403 before any lookup, so the
    response does not reveal which ids exist.

    Usage:
        @router.get("/{student_id}/profile")
        async def profile(student: Student = Depends(get_accessible_student)):
            ...
    """
    if current_user.role == UserRole.STUDENT and student_id != current_user.id:
        raise AuthorizationError("Access denied")

    student = await load_student(db, student_id)

    if not can_access_student(current_user, student):
        raise AuthorizationError("Access denied")

    return student

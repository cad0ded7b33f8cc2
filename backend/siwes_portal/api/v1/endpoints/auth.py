from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from siwes_portal.core.database import get_db
from siwes_portal.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DuplicateRecordError,
    SiwesError,
)
from siwes_portal.core.logging_config import logger, set_user_id
from siwes_portal.core.rate_limiter import LOGIN_LIMIT, SIGNUP_LIMIT, limiter
from siwes_portal.core.security import (
    REFRESH_TOKEN,
    create_token_pair,
    decode_token,
    get_password_hash,
    token_expiry,
    verify_login_password,
    verify_password,
)
from siwes_portal.models.user import User, UserRole
from siwes_portal.modules.auth.dependencies import (
    AuthenticatedSession,
    get_current_session,
    get_current_user_allow_password_change,
    resolve_token_user,
)
from siwes_portal.schemas.auth import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    LogoutRequest,
    MessageResponse,
    RefreshTokenRequest,
    SignupRequest,
    SignupResponse,
    TokenResponse,
)
from siwes_portal.schemas.user import UserDetailResponse
from siwes_portal.services.token_blacklist import blacklist_token

router = APIRouter()


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


@router.post("/signup", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(SIGNUP_LIMIT)
async def signup(
    request: Request,
    user_data: SignupRequest,
    db: AsyncSession = Depends(get_db)
):
    """Create the first admin account. Closed once any user exists."""
    email = user_data.email.lower()
    user_count = await db.scalar(select(func.count()).select_from(User))

    if user_count:
        logger.log_auth_event(
            event="signup",
            success=False,
            user_email=email,
            reason="Signup disabled",
            client_ip=_client_ip(request)
        )
        raise AuthorizationError(
            "Signup is disabled after the first admin is created.",
            code="SIGNUP_DISABLED"
        )

    existing = await db.scalar(select(User.id).where(User.email == email))
    if existing:
        raise DuplicateRecordError("Email already registered")

    user = User(
        email=email,
        name=user_data.name,
        password_hash=get_password_hash(user_data.password),
        role=UserRole.ADMIN,
        is_active=True,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.log_auth_event(
        event="signup",
        success=True,
        user_email=email,
        client_ip=_client_ip(request),
        user_role=user.role.value
    )

    return {"message": "Admin account created", "user": user}


@router.post("/login", response_model=LoginResponse)
@limiter.limit(LOGIN_LIMIT)
async def login(
    request: Request,
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db)
):
    """Exchange email + password for an access/refresh token pair"""
    email = credentials.email.lower()
    client_ip = _client_ip(request)

    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    # Same message for unknown email and wrong password
    if not verify_login_password(credentials.password, user):
        logger.log_auth_event(
            event="login",
            success=False,
            user_email=email,
            reason="Invalid credentials",
            client_ip=client_ip
        )
        raise AuthenticationError("Invalid credentials")

    if not user.is_active:
        logger.log_auth_event(
            event="login",
            success=False,
            user_email=email,
            reason="Account inactive",
            client_ip=client_ip
        )
        raise AuthenticationError("Invalid credentials")

    set_user_id(str(user.id))
    logger.log_auth_event(
        event="login",
        success=True,
        user_email=email,
        client_ip=client_ip,
        user_role=user.role.value
    )

    return {**create_token_pair(user), "user": user}


@router.post("/logout", response_model=MessageResponse)
async def logout(
    body: Optional[LogoutRequest] = None,
    session: AuthenticatedSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
):
    """Revoke the presented access token, and the refresh token if supplied"""
    await blacklist_token(db, session.token, token_expiry(session.payload))

    if body and body.refresh_token:
        try:
            refresh_payload = decode_token(body.refresh_token)
        except SiwesError:
            logger.debug("[Auth] Ignoring undecodable refresh token on logout")
        else:
            if refresh_payload.get("sub") == session.user.id:
                await blacklist_token(db, body.refresh_token, token_expiry(refresh_payload))

    await db.commit()

    logger.log_auth_event(event="logout", success=True, user_email=session.user.email)
    return {"message": "Logged out successfully"}


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    body: RefreshTokenRequest,
    db: AsyncSession = Depends(get_db)
):
    """Trade a refresh token for a new pair. The old refresh token is revoked."""
    try:
        session = await resolve_token_user(db, body.refresh_token, expected_type=REFRESH_TOKEN)
    except SiwesError as e:
        logger.log_auth_event(event="refresh", success=False, reason=e.message)
        raise

    await blacklist_token(db, session.token, token_expiry(session.payload))
    tokens = create_token_pair(session.user)
    await db.commit()

    logger.log_auth_event(event="refresh", success=True, user_email=session.user.email)
    return tokens


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    body: ChangePasswordRequest,
    current_user: User = Depends(get_current_user_allow_password_change),
    db: AsyncSession = Depends(get_db)
):
    """Change the caller's password and clear the must-change flag"""
    if not verify_password(body.old_password, current_user.password_hash):
        logger.log_auth_event(
            event="change_password",
            success=False,
            user_email=current_user.email,
            reason="Old password is incorrect"
        )
        raise AuthenticationError("Old password is incorrect")

    current_user.password_hash = get_password_hash(body.new_password)
    current_user.must_change_password = False
    await db.commit()

    logger.log_auth_event(event="change_password", success=True, user_email=current_user.email)
    return {"message": "Password changed successfully"}


@router.get("/profile", response_model=UserDetailResponse)
async def get_profile(
    current_user: User = Depends(get_current_user_allow_password_change)
):
    """Current user, with the student record for students"""
    return current_user


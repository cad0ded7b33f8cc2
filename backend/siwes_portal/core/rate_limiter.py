"""
Rate limiting for the SIWES Portal API
======================================
slowapi limiter keyed by authenticated user id, falling back to client IP.

Auth endpoints carry tighter limits than the default:
- /auth/login: 10 req/min
- /auth/signup: 3 req/min
- CSV imports: 5 req/min
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

from siwes_portal.core.config import settings
from siwes_portal.core.logging_config import logger, get_user_id


LOGIN_LIMIT = "10/minute"
SIGNUP_LIMIT = "3/minute"
UPLOAD_LIMIT = "5/minute"


def get_user_identifier(request: Request) -> str:
    """Rate limit key: user id when known, otherwise client IP"""
    user_id = getattr(request.state, "user_id", None) or get_user_id()
    if user_id:
        return f"user:{user_id}"
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=get_user_identifier,
    default_limits=[f"{settings.RATE_LIMIT_PER_MINUTE}/minute"],
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    enabled=settings.RATE_LIMIT_ENABLED,
    strategy="fixed-window",
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """429 with a Retry-After header"""
    logger.warning(
        f"[RateLimit] Exceeded for {get_user_identifier(request)}: {exc.detail}"
    )
    return JSONResponse(
        status_code=429,
        content={
            "error": "Too many requests. Please slow down.",
            "code": "RATE_LIMITED",
            "details": {"limit": str(exc.detail)},
        },
        headers={"Retry-After": "60"},
    )

from datetime import datetime, timedelta
from functools import lru_cache
from typing import Optional, Dict, Any
from jose import ExpiredSignatureError, JWTError, jwt
from fastapi.security import HTTPBearer
import bcrypt
import secrets
import string
import uuid

from siwes_portal.core.config import settings
from siwes_portal.core.exceptions import InvalidTokenError

# Bearer token extraction; missing headers are reported by the auth dependency
security = HTTPBearer(auto_error=False)

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password"""
    # Bcrypt has a 72 byte limit - truncate password if necessary
    password_bytes = plain_password.encode('utf-8')[:72]
    return bcrypt.checkpw(password_bytes, hashed_password.encode('utf-8'))


def get_password_hash(password: str) -> str:
    """Hash password with configurable rounds (BCRYPT_ROUNDS in .env)"""
    password_bytes = password.encode('utf-8')[:72]
    hashed = bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS))
    return hashed.decode('utf-8')


@lru_cache(maxsize=1)
def _dummy_password_hash() -> str:
    return get_password_hash(secrets.token_urlsafe(16))


def verify_login_password(plain_password: str, user) -> bool:
    """
    Check a login attempt. Unknown users still cost one bcrypt check,
    so response time does not reveal whether the email is registered.
    """
    if user is None:
        verify_password(plain_password, _dummy_password_hash())
        return False
    return verify_password(plain_password, user.password_hash)


def generate_temp_password(length: Optional[int] = None) -> str:
    """Random password handed out for bulk-created accounts"""
    length = length or settings.TEMP_PASSWORD_LENGTH
    alphabet = string.ascii_letters + string.digits
    return ''.join(secrets.choice(alphabet) for _ in range(length))


def _encode(data: Dict[str, Any], token_type: str, expire: datetime) -> str:
    to_encode = data.copy()
    # jti keeps two tokens issued in the same second distinct for the blacklist
    to_encode.update({"exp": expire, "type": token_type, "jti": uuid.uuid4().hex})
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token"""
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    return _encode(data, ACCESS_TOKEN, expire)


def create_refresh_token(data: Dict[str, Any]) -> str:
    """Create JWT refresh token"""
    expire = datetime.utcnow() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    return _encode(data, REFRESH_TOKEN, expire)


def create_token_pair(user) -> Dict[str, str]:
    """Issue access + refresh tokens for a user"""
    claims = {"sub": str(user.id), "role": user.role.value}
    return {
        "access_token": create_access_token(claims),
        "refresh_token": create_refresh_token(claims),
        "token_type": "bearer",
    }


def decode_token(token: str) -> Dict[str, Any]:
    """Decode JWT token"""
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise InvalidTokenError("Token has expired")
    except JWTError:
        raise InvalidTokenError()


def token_expiry(payload: Dict[str, Any]) -> datetime:
    """Expiry of a decoded token as a naive UTC datetime"""
    exp = payload.get("exp")
    if exp is None:
        return datetime.utcnow() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    return datetime.utcfromtimestamp(exp)

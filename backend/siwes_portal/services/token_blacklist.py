"""
Revoked JWT storage.

Logout and refresh put the consumed token here until its natural expiry; the
auth dependency refuses any token found in the table.
"""
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from siwes_portal.models.blacklisted_token import BlacklistedToken


async def is_token_blacklisted(db: AsyncSession, token: str) -> bool:
    result = await db.execute(
        select(BlacklistedToken.id).where(BlacklistedToken.token == token)
    )
    return result.first() is not None


async def blacklist_token(db: AsyncSession, token: str, expires_at: datetime) -> bool:
    """Store a token as revoked. Returns False if it already was."""
    if await is_token_blacklisted(db, token):
        return False
    db.add(BlacklistedToken(token=token, expires_at=expires_at))
    await db.flush()
    return True


async def purge_expired_tokens(db: AsyncSession, now: datetime = None) -> int:
    """Delete blacklist rows whose token has expired anyway"""
    now = now or datetime.utcnow()
    result = await db.execute(
        delete(BlacklistedToken).where(BlacklistedToken.expires_at < now)
    )
    return result.rowcount or 0

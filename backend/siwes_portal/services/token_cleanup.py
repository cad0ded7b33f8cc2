"""
Token Cleanup Service

Periodically removes blacklisted tokens that have expired on their own. Runs
as a background asyncio task started from the application lifespan.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Optional

from siwes_portal.core.config import settings
from siwes_portal.core.database import get_session_factory
from siwes_portal.core.logging_config import logger
from siwes_portal.services.token_blacklist import purge_expired_tokens


class TokenCleanupService:
    """Background purge of the token blacklist"""

    def __init__(self, interval_hours: int = 24):
        self.cleanup_interval = timedelta(hours=interval_hours)
        self.running = False
        self._task: Optional[asyncio.Task] = None
        self.stats = {
            "total_removed": 0,
            "last_cleanup": None,
        }

    async def start(self):
        """Start the background cleanup loop"""
        if self.running:
            logger.warning("[TokenCleanup] Service already running")
            return

        self.running = True
        self._task = asyncio.create_task(self._cleanup_loop())
        logger.info(f"[TokenCleanup] Started - Interval: {self.cleanup_interval}")

    async def stop(self):
        """Stop the cleanup loop"""
        self.running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("[TokenCleanup] Stopped")

    async def _cleanup_loop(self):
        while self.running:
            try:
                await self.cleanup_expired_tokens()
            except Exception as e:
                logger.error(f"[TokenCleanup] Error in cleanup loop: {e}", exc_info=True)

            await asyncio.sleep(self.cleanup_interval.total_seconds())

    async def cleanup_expired_tokens(self, session_factory=None) -> int:
        """Delete expired blacklist rows once. Returns how many were removed."""
        session_factory = session_factory or get_session_factory()
        async with session_factory() as session:
            removed = await purge_expired_tokens(session)
            await session.commit()

        self.stats["total_removed"] += removed
        self.stats["last_cleanup"] = datetime.utcnow().isoformat()
        logger.info(f"[TokenCleanup] Removed {removed} expired blacklisted token(s)")
        return removed


token_cleanup = TokenCleanupService(interval_hours=settings.TOKEN_CLEANUP_INTERVAL_HOURS)

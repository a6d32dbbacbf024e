"""
Weekly Analytics

`AnalyticsService` answers a weekly-summary query for one user from the
session store. `AnalyticsClient` is the caller side: it keeps the last good
summary and only replaces it when a refresh succeeds in time.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from ..core.weekly_aggregator import AnalyticsSummary, aggregate_weekly, weekly_window_start
from .session_store import SessionStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AnalyticsService:

    def __init__(self, store: SessionStore, now: Optional[Callable[[], datetime]] = None):
        self.store = store
        self._now = now or _utcnow

    async def weekly_summary(self, uid: str) -> AnalyticsSummary:
        """Seven-day summary for `uid`. Raises ValueError when uid is missing."""
        if not uid:
            raise ValueError("Missing uid")
        now = self._now()
        samples = await self.store.samples(uid, weekly_window_start(now))
        return aggregate_weekly(samples, now)


class AnalyticsClient:
    """Cached weekly summary with timeout-guarded refresh."""

    def __init__(self, service: AnalyticsService, uid: str, timeout_s: float = 10.0,
                 now: Optional[Callable[[], datetime]] = None):
        self.service = service
        self.uid = uid
        self.timeout_s = timeout_s
        # seven empty days until the first refresh lands
        self.summary = aggregate_weekly([], (now or _utcnow)())
        self.last_error: Optional[str] = None
        self.loading = False

    async def refresh(self) -> AnalyticsSummary:
        """Fetch a new summary; on timeout or error keep the cached one."""
        self.loading = True
        try:
            self.summary = await asyncio.wait_for(self.service.weekly_summary(self.uid), self.timeout_s)
            self.last_error = None
        except asyncio.TimeoutError:
            self.last_error = "timeout"
            logger.warning("Analytics refresh for %s timed out after %.1fs", self.uid, self.timeout_s)
        except Exception as e:
            self.last_error = str(e) or type(e).__name__
            logger.warning("Analytics refresh for %s failed: %s", self.uid, e)
        finally:
            self.loading = False
        return self.summary

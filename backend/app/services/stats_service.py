"""Engagement stats and conversation retention."""

import asyncio
import logging
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import User, UserRole
from app.db.session import AsyncSessionLocal
from app.schemas.stats import EngagementStats
from app.services import time_windows
from app.services.conversation_store import conversation_store

logger = logging.getLogger(__name__)

# A conversation counts once it has more than this many messages
# (at least 3 questions and 3 answers). Product-facing; keep the literal value.
SUBSTANTIVE_MIN_MESSAGES = 5


class StatsService:
    """Counts substantive conversations and prunes stale ones."""

    async def count_substantive(
        self,
        db: AsyncSession,
        user_id: UUID,
        start: datetime,
        end: datetime,
    ) -> int:
        conversations = await conversation_store.find_by_owner_in_range(
            db, user_id, start, end, SUBSTANTIVE_MIN_MESSAGES
        )
        return len(conversations)

    async def get_engagement_stats(
        self,
        db: AsyncSession,
        user_id: UUID,
        timezone_offset_minutes: int,
        now: datetime | None = None,
    ) -> EngagementStats:
        """
        Substantive conversation counts for this/last week and today/yesterday.

        Boundaries are the user's local midnights and local ISO-week Mondays,
        converted to UTC, so evening activity lands on the right local day.
        Read-only: retention is pruned separately.
        """
        today_start = time_windows.start_of_today_utc(timezone_offset_minutes, now)
        yesterday_start = time_windows.start_of_yesterday_utc(timezone_offset_minutes, now)
        tomorrow_start = today_start + timedelta(days=1)
        current_week_start = time_windows.start_of_current_week_utc(timezone_offset_minutes, now)
        previous_week_start = time_windows.start_of_previous_week_utc(timezone_offset_minutes, now)
        next_week_start = current_week_start + timedelta(days=7)

        return EngagementStats(
            current_week=await self.count_substantive(db, user_id, current_week_start, next_week_start),
            previous_week=await self.count_substantive(db, user_id, previous_week_start, current_week_start),
            today=await self.count_substantive(db, user_id, today_start, tomorrow_start),
            yesterday=await self.count_substantive(db, user_id, yesterday_start, today_start),
        )

    async def prune_retention(
        self,
        db: AsyncSession,
        user_id: UUID,
        timezone_offset_minutes: int,
        retention_days: int,
        now: datetime | None = None,
    ) -> int:
        """
        Delete all of the user's conversations, whatever their size, created
        before local midnight retention_days days ago. Permanent.
        """
        cutoff = time_windows.days_before_utc(timezone_offset_minutes, retention_days, now)
        return await conversation_store.delete_older_than(db, user_id, cutoff)

    async def sweep_retention(
        self,
        db: AsyncSession,
        retention_days: int,
        now: datetime | None = None,
    ) -> int:
        """Prune every kid's conversations using the kid's last known offset."""
        result = await db.execute(
            select(User.id, User.timezone_offset_minutes).where(User.role == UserRole.KID.value)
        )
        kids = result.all()

        total = 0
        for kid_id, offset in kids:
            total += await self.prune_retention(db, kid_id, offset, retention_days, now)

        logger.info("Retention sweep checked %d kids, deleted %d conversations", len(kids), total)
        return total


async def run_retention_sweeper(interval_seconds: int, retention_days: int) -> None:
    """
    Run sweep_retention forever, one fresh session per pass.

    Started from the app lifespan; cancelled on shutdown. A failed pass is
    logged and the next one runs on schedule.
    """
    while True:
        try:
            async with AsyncSessionLocal() as db:
                await stats_service.sweep_retention(db, retention_days)
        except Exception:
            logger.exception("Retention sweep failed")
        await asyncio.sleep(interval_seconds)


# Singleton instance
stats_service = StatsService()

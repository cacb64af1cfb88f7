"""Parent dashboard routes: engagement stats and targets for a kid."""

import logging
from uuid import UUID

from fastapi import APIRouter

from app.api.deps import CurrentUser, DbSession, ParentUser
from app.config import get_settings
from app.schemas.stats import StatsRequest, StatsResponse, TargetsRead, TargetsUpdate
from app.services import profile_service, stats_service

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/kids", tags=["kids"])


@router.post("/{kid_id}/stats", response_model=StatsResponse)
async def get_kid_stats(
    kid_id: UUID,
    request: StatsRequest,
    db: DbSession,
    user: CurrentUser,
) -> StatsResponse:
    """
    Get a kid's targets and substantive-conversation counts.

    Available to the kid itself and to its parent. Conversations older than
    the retention period are deleted after the figures are computed.
    """
    kid = await profile_service.get_kid_for(db, user, kid_id)
    targets = await profile_service.get_targets(db, user, kid.id)
    stats = await stats_service.get_engagement_stats(db, kid.id, request.timezone_offset)

    await profile_service.remember_timezone_offset(db, kid, request.timezone_offset)
    await stats_service.prune_retention(db, kid.id, request.timezone_offset, settings.retention_days)

    return StatsResponse(targets=targets, stats=stats)


@router.put("/{kid_id}/targets", response_model=TargetsRead)
async def set_kid_targets(
    kid_id: UUID,
    request: TargetsUpdate,
    db: DbSession,
    user: ParentUser,
) -> TargetsRead:
    """Set a kid's daily and weekly learning-session targets (parents only)."""
    return await profile_service.set_targets(
        db,
        user,
        kid_id,
        daily_target=request.daily_target,
        weekly_target=request.weekly_target,
    )

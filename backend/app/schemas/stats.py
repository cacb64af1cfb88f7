"""Pydantic schemas for engagement stats and targets."""

from pydantic import BaseModel, Field

from app.schemas.base import BaseSchema


class StatsRequest(BaseModel):
    """Request for a kid's engagement stats."""

    # Browser convention: new Date().getTimezoneOffset(), e.g. -120 for UTC+2
    timezone_offset: int = Field(..., ge=-14 * 60, le=14 * 60)


class TargetsUpdate(BaseModel):
    """Parent request to change a kid's targets. Omitted fields stay unchanged."""

    daily_target: int | None = None
    weekly_target: int | None = None


class TargetsRead(BaseSchema):
    """Engagement targets (learning sessions with Lexi)."""

    daily_target: int
    weekly_target: int


class EngagementStats(BaseModel):
    """Counts of substantive conversations per local period."""

    current_week: int = 0
    previous_week: int = 0
    today: int = 0
    yesterday: int = 0


class StatsResponse(BaseModel):
    """Targets next to the actual figures."""

    targets: TargetsRead
    stats: EngagementStats

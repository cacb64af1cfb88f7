"""Read-only profile data for prompts, plus parent-managed engagement targets."""

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import User, UserRole
from app.errors import AccessDeniedError, NotFoundError, ValidationError
from app.schemas.stats import TargetsRead

logger = logging.getLogger(__name__)

DAILY_TARGET_RANGE = (1, 20)
WEEKLY_TARGET_RANGE = (1, 100)


@dataclass(frozen=True)
class ChildProfile:
    """What the system prompt may know about the child."""

    first_name: str
    grade: str | None = None
    city: str | None = None


def _check_range(name: str, value: int, bounds: tuple[int, int]) -> None:
    low, high = bounds
    if not low <= value <= high:
        raise ValidationError(
            "Invalid target.",
            details=f"'{name}' must be between {low} and {high}.",
        )


class ProfileService:
    """Profile lookups used by the chat core and the parent dashboard."""

    async def get_child_profile(self, db: AsyncSession, user_id: UUID) -> ChildProfile:
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found.", details=f"No user with id {user_id}.")
        return ChildProfile(first_name=user.first_name, grade=user.grade, city=user.city)

    async def get_kid_for(self, db: AsyncSession, requester: User, kid_id: UUID) -> User:
        """
        Load a kid the requester may see: the kid itself or its parent.

        Raises:
            AccessDeniedError: Requester is neither the kid nor its parent, or
                kid_id is not a kid account
            NotFoundError: Kid does not exist
        """
        if requester.id == kid_id:
            if requester.role != UserRole.KID.value:
                raise AccessDeniedError(details="Stats and targets exist only for kid accounts.")
            return requester

        kid = await db.get(User, kid_id)
        if kid is None or kid.parent_id != requester.id:
            # Unknown ids get the same answer as other families' kids
            raise AccessDeniedError(details="You are not the parent of this kid.")
        return kid

    async def get_targets(self, db: AsyncSession, requester: User, kid_id: UUID) -> TargetsRead:
        kid = await self.get_kid_for(db, requester, kid_id)
        return TargetsRead.model_validate(kid)

    async def set_targets(
        self,
        db: AsyncSession,
        parent: User,
        kid_id: UUID,
        daily_target: int | None = None,
        weekly_target: int | None = None,
    ) -> TargetsRead:
        """
        Update a kid's engagement targets. Parents only; omitted values stay as they are.

        Raises:
            AccessDeniedError: Requester is not a parent of this kid
            ValidationError: A target is outside its allowed range
        """
        if parent.role != UserRole.PARENT.value:
            raise AccessDeniedError(details="Only parents can set targets.")

        kid = await self.get_kid_for(db, parent, kid_id)

        if daily_target is not None:
            _check_range("daily_target", daily_target, DAILY_TARGET_RANGE)
            kid.daily_target = daily_target
        if weekly_target is not None:
            _check_range("weekly_target", weekly_target, WEEKLY_TARGET_RANGE)
            kid.weekly_target = weekly_target

        await db.commit()
        await db.refresh(kid)

        logger.info("Parent %s set targets for kid %s: %d/day, %d/week", parent.id, kid.id, kid.daily_target, kid.weekly_target)
        return TargetsRead.model_validate(kid)

    async def remember_timezone_offset(self, db: AsyncSession, user: User, timezone_offset_minutes: int) -> None:
        """Keep the last reported offset so the background sweep uses the kid's local days."""
        if user.timezone_offset_minutes != timezone_offset_minutes:
            user.timezone_offset_minutes = timezone_offset_minutes
            await db.commit()


# Singleton instance
profile_service = ProfileService()

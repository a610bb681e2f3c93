from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from review_engine.errors import InvalidDailyGoalError

from . import User, UserProgress


DEFAULT_DAILY_GOAL = 20
MIN_DAILY_GOAL = 5
MAX_DAILY_GOAL = 100


async def upsert_user(
    session: AsyncSession,
    chat_id: int,
    first_name: Optional[str],
    last_name: Optional[str],
) -> User:
    """Create or update a learner record based on the latest Telegram payload."""
    user = await session.get(User, chat_id)

    if user is None:
        now = datetime.now(timezone.utc)
        user = User(
            chat_id=chat_id,
            first_name=first_name,
            last_name=last_name,
            created_at=now,
            updated_at=now,
        )
        session.add(user)
        return user

    has_changes = False

    if user.first_name != first_name:
        user.first_name = first_name
        has_changes = True

    if user.last_name != last_name:
        user.last_name = last_name
        has_changes = True

    if has_changes:
        user.updated_at = datetime.now(timezone.utc)
        await session.flush()

    return user


async def get_progress(session: AsyncSession, chat_id: int) -> Optional[UserProgress]:
    """Return the learner's progress row, if one was created already."""
    return await session.get(UserProgress, chat_id, populate_existing=True)


async def get_or_create_progress(
    session: AsyncSession,
    chat_id: int,
    now: Optional[datetime] = None,
) -> UserProgress:
    """Fetch a learner's progress row or create one with all counters at zero."""
    progress = await get_progress(session, chat_id)
    if progress is not None:
        return progress

    if now is None:
        now = datetime.now(timezone.utc)

    progress = UserProgress(
        chat_id=chat_id,
        total_xp=0,
        level=1,
        current_streak=0,
        longest_streak=0,
        last_review_date=None,
        total_reviews=0,
        total_correct=0,
        daily_progress=0,
        daily_goal=DEFAULT_DAILY_GOAL,
        created_at=now,
        updated_at=now,
    )
    session.add(progress)
    await session.flush()
    return progress


async def set_daily_goal(session: AsyncSession, chat_id: int, goal: int) -> UserProgress:
    """Change how many reviews per day the learner aims for."""
    if goal < MIN_DAILY_GOAL or goal > MAX_DAILY_GOAL:
        raise InvalidDailyGoalError(
            f"Daily goal must be between {MIN_DAILY_GOAL} and {MAX_DAILY_GOAL}; got {goal}."
        )

    progress = await get_or_create_progress(session, chat_id)
    progress.daily_goal = goal
    progress.updated_at = datetime.now(timezone.utc)
    await session.flush()
    return progress

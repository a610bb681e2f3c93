"""Read model combining progress, item counts, history and achievements."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone, tzinfo
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from review_engine.db import UserProgress
from review_engine.db.achievements import (
    EarnedAchievementInfo,
    list_earned_achievements,
    load_achievement_catalog,
)
from review_engine.db.reviews import (
    count_daily_reviews,
    count_due_items,
    count_items_by_state,
    count_recent_qualities,
)
from review_engine.db.users import DEFAULT_DAILY_GOAL, get_progress
from review_engine.engine.achievements import AchievementRule
from review_engine.engine.progression import LevelProgress, calculate_level, compute_level_progress
from review_engine.engine.scheduling import ItemState, Quality, round_half_up
from review_engine.engine.streak import review_day


@dataclass(slots=True, frozen=True)
class ItemStateCounts:
    total: int
    new: int
    learning: int
    review: int
    learned: int
    due_today: int


@dataclass(slots=True, frozen=True)
class LearnerStats:
    """Dashboard view of a learner's progress."""

    chat_id: int
    total_xp: int
    level: int
    level_progress: LevelProgress
    current_streak: int
    longest_streak: int
    total_reviews: int
    total_correct: int
    daily_progress: int
    daily_goal: int
    last_review_date: Optional[date]
    items: ItemStateCounts
    quality_counts: dict[Quality, int]
    accuracy: int
    daily_reviews: dict[date, int]
    achievements: list[EarnedAchievementInfo] = field(default_factory=list)
    all_achievements: tuple[AchievementRule, ...] = ()


def calculate_accuracy(quality_counts: dict[Quality, int]) -> int:
    """Percentage of GOOD and EASY ratings among the counted reviews."""
    total = sum(quality_counts.values())
    if total == 0:
        return 0
    correct = quality_counts.get(Quality.GOOD, 0) + quality_counts.get(Quality.EASY, 0)
    return round_half_up(correct / total * 100)


def _daily_progress_for(progress: Optional[UserProgress], today: date) -> int:
    # The stored counter belongs to the last review day, not necessarily today.
    if progress is None or progress.last_review_date != today:
        return 0
    return progress.daily_progress


async def get_learner_stats(
    session: AsyncSession,
    chat_id: int,
    now: Optional[datetime] = None,
    tz: tzinfo = timezone.utc,
) -> LearnerStats:
    """Collect the learner's statistics; level progress is always recomputed from XP."""
    if now is None:
        now = datetime.now(timezone.utc)

    progress = await get_progress(session, chat_id)
    state_counts = await count_items_by_state(session, chat_id)
    due_today = await count_due_items(session, chat_id, now)
    quality_counts = await count_recent_qualities(session, chat_id)
    daily_reviews = await count_daily_reviews(session, chat_id, now=now, tz=tz)
    earned = await list_earned_achievements(session, chat_id)
    catalog = await load_achievement_catalog(session)

    total_xp = progress.total_xp if progress is not None else 0

    return LearnerStats(
        chat_id=chat_id,
        total_xp=total_xp,
        level=calculate_level(total_xp),
        level_progress=compute_level_progress(total_xp),
        current_streak=progress.current_streak if progress is not None else 0,
        longest_streak=progress.longest_streak if progress is not None else 0,
        total_reviews=progress.total_reviews if progress is not None else 0,
        total_correct=progress.total_correct if progress is not None else 0,
        daily_progress=_daily_progress_for(progress, review_day(now, tz)),
        daily_goal=progress.daily_goal if progress is not None else DEFAULT_DAILY_GOAL,
        last_review_date=progress.last_review_date if progress is not None else None,
        items=ItemStateCounts(
            total=sum(state_counts.values()),
            new=state_counts[ItemState.NEW],
            learning=state_counts[ItemState.LEARNING],
            review=state_counts[ItemState.REVIEW],
            learned=state_counts[ItemState.LEARNED],
            due_today=due_today,
        ),
        quality_counts=quality_counts,
        accuracy=calculate_accuracy(quality_counts),
        daily_reviews=daily_reviews,
        achievements=earned,
        all_achievements=catalog.rules,
    )

"""Side-effect free engines for scheduling, progression, streaks and achievements."""

from .achievements import (
    DEFAULT_ACHIEVEMENTS,
    AchievementAward,
    AchievementRule,
    ProgressSnapshot,
    evaluate_achievements,
)
from .progression import LevelProgress, calculate_level, calculate_xp, compute_level_progress
from .scheduling import (
    ItemState,
    Quality,
    ReviewSchedule,
    SchedulingState,
    calculate_next_schedule,
    parse_quality,
    quality_label,
)
from .streak import StreakUpdate, evaluate_streak, next_daily_progress, review_day

__all__ = [
    "DEFAULT_ACHIEVEMENTS",
    "AchievementAward",
    "AchievementRule",
    "ItemState",
    "LevelProgress",
    "ProgressSnapshot",
    "Quality",
    "ReviewSchedule",
    "SchedulingState",
    "StreakUpdate",
    "calculate_level",
    "calculate_next_schedule",
    "calculate_xp",
    "compute_level_progress",
    "evaluate_achievements",
    "evaluate_streak",
    "next_daily_progress",
    "parse_quality",
    "quality_label",
    "review_day",
]

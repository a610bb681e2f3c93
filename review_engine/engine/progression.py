"""Experience points and level calculations for learner progression."""

from __future__ import annotations

import math
from dataclasses import dataclass

from review_engine.engine.scheduling import ItemState, Quality, round_half_up


BASE_XP = {
    Quality.AGAIN: 1,
    Quality.HARD: 5,
    Quality.GOOD: 10,
    Quality.EASY: 15,
}
STREAK_BONUS_XP = 5
NEW_ITEM_BONUS_XP = 10
REVIEW_BONUS_XP = 2
XP_PER_LEVEL_UNIT = 100


@dataclass(slots=True, frozen=True)
class LevelProgress:
    """Position of a learner inside their current level."""

    level: int
    current: int
    needed: int
    percentage: int


def calculate_xp(quality: Quality, is_streak_active: bool, prior_state: ItemState) -> int:
    """Return the XP earned for a single review.

    ``prior_state`` is the item's coarse state before the review was applied.
    """
    xp = BASE_XP[Quality(quality)]
    if quality < Quality.GOOD:
        return xp

    if is_streak_active:
        xp += STREAK_BONUS_XP
    if prior_state == ItemState.NEW:
        xp += NEW_ITEM_BONUS_XP
    elif prior_state == ItemState.REVIEW:
        xp += REVIEW_BONUS_XP
    return xp


def calculate_level(total_xp: int) -> int:
    """Return ``floor(sqrt(total_xp / 100)) + 1`` using exact integer arithmetic."""
    return math.isqrt(max(0, total_xp) // XP_PER_LEVEL_UNIT) + 1


def xp_for_level(level: int) -> int:
    """Return the cumulative XP at which ``level`` begins."""
    return (level - 1) * (level - 1) * XP_PER_LEVEL_UNIT


def compute_level_progress(total_xp: int) -> LevelProgress:
    level = calculate_level(total_xp)
    floor_xp = xp_for_level(level)
    next_xp = xp_for_level(level + 1)
    current = total_xp - floor_xp
    needed = next_xp - floor_xp
    return LevelProgress(
        level=level,
        current=current,
        needed=needed,
        percentage=round_half_up(current / needed * 100),
    )

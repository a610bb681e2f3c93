from __future__ import annotations

import pytest

from review_engine.engine.progression import (
    LevelProgress,
    calculate_level,
    calculate_xp,
    compute_level_progress,
    xp_for_level,
)
from review_engine.engine.scheduling import ItemState, Quality


@pytest.mark.parametrize(
    ("quality", "expected"),
    [(Quality.AGAIN, 1), (Quality.HARD, 5), (Quality.GOOD, 10), (Quality.EASY, 15)],
)
def test_base_xp_without_bonuses(quality: Quality, expected: int) -> None:
    assert calculate_xp(quality, is_streak_active=False, prior_state=ItemState.LEARNING) == expected


def test_new_item_success_with_streak() -> None:
    assert calculate_xp(Quality.GOOD, is_streak_active=True, prior_state=ItemState.NEW) == 25
    assert calculate_xp(Quality.EASY, is_streak_active=True, prior_state=ItemState.NEW) == 30


def test_review_bonus_stacks_with_streak() -> None:
    assert calculate_xp(Quality.GOOD, is_streak_active=True, prior_state=ItemState.REVIEW) == 17
    assert calculate_xp(Quality.EASY, is_streak_active=False, prior_state=ItemState.REVIEW) == 17


def test_learned_items_earn_no_state_bonus() -> None:
    assert calculate_xp(Quality.GOOD, is_streak_active=False, prior_state=ItemState.LEARNED) == 10


@pytest.mark.parametrize("quality", [Quality.AGAIN, Quality.HARD])
def test_failures_never_earn_bonuses(quality: Quality) -> None:
    base = calculate_xp(quality, is_streak_active=False, prior_state=ItemState.LEARNING)
    assert calculate_xp(quality, is_streak_active=True, prior_state=ItemState.NEW) == base
    assert calculate_xp(quality, is_streak_active=True, prior_state=ItemState.REVIEW) == base


@pytest.mark.parametrize(
    ("total_xp", "level"),
    [(0, 1), (99, 1), (100, 2), (399, 2), (400, 3), (899, 3), (900, 4), (10000, 11)],
)
def test_level_formula(total_xp: int, level: int) -> None:
    assert calculate_level(total_xp) == level


def test_xp_for_level_thresholds() -> None:
    assert [xp_for_level(level) for level in range(1, 6)] == [0, 100, 400, 900, 1600]


def test_level_progress_at_start_of_level() -> None:
    assert compute_level_progress(0) == LevelProgress(level=1, current=0, needed=100, percentage=0)
    assert compute_level_progress(100) == LevelProgress(level=2, current=0, needed=300, percentage=0)


def test_level_progress_inside_level() -> None:
    progress = compute_level_progress(250)

    assert progress.level == 2
    assert progress.current == 150
    assert progress.needed == 300
    assert progress.percentage == 50


def test_level_progress_percentage_is_rounded() -> None:
    assert compute_level_progress(12).percentage == 12
    progress = compute_level_progress(1650)
    assert progress.level == 5
    assert progress.current == 50
    assert progress.needed == 900
    assert progress.percentage == 6

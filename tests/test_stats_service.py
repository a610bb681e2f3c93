from __future__ import annotations

from datetime import date

import pytest

from conftest import LEARNER_ID, OTHER_LEARNER_ID, utc
from review_engine.db.items import create_learning_item
from review_engine.engine.achievements import DEFAULT_ACHIEVEMENTS
from review_engine.engine.progression import LevelProgress
from review_engine.engine.scheduling import Quality
from review_engine.services import get_learner_stats
from review_engine.services.stats_service import calculate_accuracy


async def _reviewed_learner(session_factory, review_service) -> None:
    async with session_factory() as session:
        async with session.begin():
            ids = [
                (await create_learning_item(session, LEARNER_ID, front, "-", now=utc(2023, 12, 31))).id
                for front in ("uno", "dos", "tres")
            ]

    await review_service.submit_review(LEARNER_ID, ids[0], Quality.GOOD, now=utc(2024, 1, 1))
    await review_service.submit_review(LEARNER_ID, ids[1], Quality.AGAIN, now=utc(2024, 1, 1))
    await review_service.submit_review(LEARNER_ID, ids[0], Quality.EASY, now=utc(2024, 1, 2, 10))


@pytest.mark.asyncio
async def test_stats_combine_progress_items_and_history(seeded_session_factory, review_service) -> None:
    await _reviewed_learner(seeded_session_factory, review_service)

    async with seeded_session_factory() as session:
        stats = await get_learner_stats(session, LEARNER_ID, now=utc(2024, 1, 2, 18))

    assert stats.total_xp == 98
    assert stats.level == 1
    assert stats.level_progress == LevelProgress(level=1, current=98, needed=100, percentage=98)
    assert stats.current_streak == 2
    assert stats.longest_streak == 2
    assert stats.total_reviews == 3
    assert stats.total_correct == 2
    assert stats.daily_progress == 1
    assert stats.daily_goal == 20
    assert stats.last_review_date == date(2024, 1, 2)

    assert stats.items.total == 3
    assert stats.items.new == 1
    assert stats.items.learning == 1
    assert stats.items.review == 1
    assert stats.items.learned == 0
    assert stats.items.due_today == 2

    assert stats.quality_counts == {
        Quality.AGAIN: 1,
        Quality.HARD: 0,
        Quality.GOOD: 1,
        Quality.EASY: 1,
    }
    assert stats.accuracy == 67
    assert stats.daily_reviews == {date(2024, 1, 1): 2, date(2024, 1, 2): 1}

    assert [earned.rule.key for earned in stats.achievements] == ["first_review"]
    assert len(stats.all_achievements) == len(DEFAULT_ACHIEVEMENTS)


@pytest.mark.asyncio
async def test_daily_progress_is_zero_on_a_later_day(seeded_session_factory, review_service) -> None:
    await _reviewed_learner(seeded_session_factory, review_service)

    async with seeded_session_factory() as session:
        stats = await get_learner_stats(session, LEARNER_ID, now=utc(2024, 1, 4))

    assert stats.daily_progress == 0
    assert stats.total_reviews == 3


@pytest.mark.asyncio
async def test_stats_for_learner_without_activity(seeded_session_factory) -> None:
    async with seeded_session_factory() as session:
        stats = await get_learner_stats(session, OTHER_LEARNER_ID, now=utc(2024, 1, 1))

    assert stats.total_xp == 0
    assert stats.level == 1
    assert stats.level_progress.percentage == 0
    assert stats.current_streak == 0
    assert stats.daily_progress == 0
    assert stats.daily_goal == 20
    assert stats.last_review_date is None
    assert stats.items.total == 0
    assert stats.accuracy == 0
    assert stats.daily_reviews == {}
    assert stats.achievements == []
    assert len(stats.all_achievements) == 12


@pytest.mark.parametrize(
    ("counts", "expected"),
    [
        ({}, 0),
        ({Quality.GOOD: 1, Quality.AGAIN: 1}, 50),
        ({Quality.EASY: 3}, 100),
        ({Quality.HARD: 2, Quality.GOOD: 1}, 33),
        ({Quality.AGAIN: 1, Quality.GOOD: 1, Quality.EASY: 1}, 67),
    ],
)
def test_calculate_accuracy(counts, expected: int) -> None:
    assert calculate_accuracy(counts) == expected

from __future__ import annotations

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from review_engine.engine.streak import StreakUpdate, evaluate_streak, next_daily_progress, review_day


def test_first_review_starts_streak() -> None:
    assert evaluate_streak(None, 0, date(2024, 1, 1)) == StreakUpdate(
        new_streak=1, is_active=True, is_same_day=False
    )


def test_next_day_increments_streak() -> None:
    update = evaluate_streak(date(2024, 1, 1), 4, date(2024, 1, 2))

    assert update.new_streak == 5
    assert update.is_active is True
    assert update.is_same_day is False


def test_same_day_keeps_streak() -> None:
    update = evaluate_streak(date(2024, 1, 1), 4, date(2024, 1, 1))

    assert update.new_streak == 4
    assert update.is_active is True
    assert update.is_same_day is True


def test_same_day_with_zero_streak_is_inactive() -> None:
    update = evaluate_streak(date(2024, 1, 1), 0, date(2024, 1, 1))

    assert update.new_streak == 0
    assert update.is_active is False


def test_gap_resets_streak() -> None:
    update = evaluate_streak(date(2024, 1, 1), 9, date(2024, 1, 5))

    assert update.new_streak == 1
    assert update.is_active is True


def test_clock_moving_backwards_resets_streak() -> None:
    update = evaluate_streak(date(2024, 1, 5), 3, date(2024, 1, 4))

    assert update.new_streak == 1
    assert update.is_same_day is False


def test_month_and_year_boundaries_are_consecutive() -> None:
    assert evaluate_streak(date(2024, 1, 31), 2, date(2024, 2, 1)).new_streak == 3
    assert evaluate_streak(date(2023, 12, 31), 2, date(2024, 1, 1)).new_streak == 3
    assert evaluate_streak(date(2024, 2, 28), 2, date(2024, 2, 29)).new_streak == 3


def test_daily_progress_resets_on_new_day() -> None:
    assert next_daily_progress(evaluate_streak(date(2024, 1, 1), 1, date(2024, 1, 1)), 7) == 8
    assert next_daily_progress(evaluate_streak(date(2024, 1, 1), 1, date(2024, 1, 2)), 7) == 1
    assert next_daily_progress(evaluate_streak(None, 0, date(2024, 1, 2)), 0) == 1


def test_review_day_uses_configured_zone() -> None:
    moment = datetime(2024, 1, 1, 23, 30, tzinfo=timezone.utc)

    assert review_day(moment) == date(2024, 1, 1)
    assert review_day(moment, ZoneInfo("Asia/Shanghai")) == date(2024, 1, 2)
    assert review_day(moment.replace(tzinfo=None)) == date(2024, 1, 1)

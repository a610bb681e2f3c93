"""Daily streak tracking based on calendar days."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Optional


@dataclass(slots=True, frozen=True)
class StreakUpdate:
    """Outcome of comparing the last review day with the current one."""

    new_streak: int
    is_active: bool
    is_same_day: bool


def review_day(moment: datetime, tz: tzinfo = timezone.utc) -> date:
    """Return the calendar day of ``moment`` in the configured review time zone."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(tz).date()


def evaluate_streak(
    last_review_date: Optional[date],
    current_streak: int,
    today: date,
) -> StreakUpdate:
    """Decide whether a review today continues, keeps or restarts the streak."""
    if last_review_date is None:
        return StreakUpdate(new_streak=1, is_active=True, is_same_day=False)

    if last_review_date == today:
        return StreakUpdate(
            new_streak=current_streak,
            is_active=current_streak > 0,
            is_same_day=True,
        )

    if last_review_date + timedelta(days=1) == today:
        return StreakUpdate(new_streak=current_streak + 1, is_active=True, is_same_day=False)

    # Gap of two or more days, or a clock that moved backwards.
    return StreakUpdate(new_streak=1, is_active=True, is_same_day=False)


def next_daily_progress(update: StreakUpdate, daily_progress: int) -> int:
    """Return the daily review counter after one more review."""
    if update.is_same_day:
        return daily_progress + 1
    return 1

"""Atomic review submission combining scheduling, progression and achievements."""

from __future__ import annotations

import asyncio
import logging
import weakref
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from review_engine.db import LearningItem, UserProgress
from review_engine.db.achievements import (
    AchievementCatalog,
    get_earned_achievement_keys,
    load_achievement_catalog,
    record_earned_achievements,
)
from review_engine.db.items import (
    DueItemFilters,
    apply_review_schedule,
    fetch_due_items,
    get_owned_item,
    scheduling_state_of,
)
from review_engine.db.reviews import record_review_event
from review_engine.db.users import get_or_create_progress
from review_engine.engine.achievements import AchievementRule, ProgressSnapshot, evaluate_achievements
from review_engine.engine.progression import (
    LevelProgress,
    calculate_level,
    calculate_xp,
    compute_level_progress,
)
from review_engine.engine.scheduling import ItemState, Quality, calculate_next_schedule, parse_quality
from review_engine.engine.streak import evaluate_streak, next_daily_progress, review_day
from review_engine.errors import ConcurrencyConflictError


LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3

_DUPLICATE_KEY_SQLSTATE = "23505"
_DUPLICATE_KEY_MARKERS = ("UNIQUE constraint failed", "duplicate key value")


@dataclass(slots=True, frozen=True)
class ReviewSummary:
    """Everything a caller needs to report the outcome of one review."""

    item: LearningItem
    progress: UserProgress
    quality: Quality
    previous_state: ItemState
    new_state: ItemState
    interval: int
    next_review_at: datetime
    xp_earned: int
    achievement_xp: int
    new_achievements: tuple[AchievementRule, ...]
    level_progress: LevelProgress
    leveled_up: bool

    @property
    def total_xp_awarded(self) -> int:
        return self.xp_earned + self.achievement_xp


def is_duplicate_key_error(exc: IntegrityError) -> bool:
    """Tell a unique-constraint collision apart from other integrity faults."""
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code is not None:
        return code == _DUPLICATE_KEY_SQLSTATE
    message = str(orig)
    return any(marker in message for marker in _DUPLICATE_KEY_MARKERS)


def snapshot_progress(progress: UserProgress) -> ProgressSnapshot:
    return ProgressSnapshot(
        total_reviews=progress.total_reviews,
        current_streak=progress.current_streak,
        level=progress.level,
        total_xp=progress.total_xp,
    )


class ReviewService:
    """Records reviews for learners, one all-or-nothing transaction per review."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        tz: tzinfo = timezone.utc,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        catalog: Optional[AchievementCatalog] = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1.")
        self._session_factory = session_factory
        self._tz = tz
        self._max_attempts = max_attempts
        self._catalog = catalog
        self._catalog_lock = asyncio.Lock()
        self._learner_locks: weakref.WeakValueDictionary[int, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @property
    def tz(self) -> tzinfo:
        return self._tz

    async def get_catalog(self) -> AchievementCatalog:
        """Return the achievement catalog, loading it on first use."""
        if self._catalog is not None:
            return self._catalog

        async with self._catalog_lock:
            if self._catalog is None:
                async with self._session_factory() as session:
                    self._catalog = await load_achievement_catalog(session)
                LOGGER.info("Loaded %s achievement rules.", len(self._catalog))
        return self._catalog

    def _learner_lock(self, chat_id: int) -> asyncio.Lock:
        # Entries disappear once no pending review holds the lock.
        lock = self._learner_locks.get(chat_id)
        if lock is None:
            lock = asyncio.Lock()
            self._learner_locks[chat_id] = lock
        return lock

    def refresh_catalog(self) -> None:
        """Forget the cached catalog so the next review reloads it."""
        self._catalog = None

    async def fetch_due_items(
        self,
        chat_id: int,
        filters: Optional[DueItemFilters] = None,
        now: Optional[datetime] = None,
    ) -> list[LearningItem]:
        async with self._session_factory() as session:
            return await fetch_due_items(session, chat_id, filters, now=now)

    async def submit_review(
        self,
        chat_id: int,
        item_id: int,
        quality: object,
        now: Optional[datetime] = None,
    ) -> ReviewSummary:
        """Apply a rating to an item and update the learner's progress atomically.

        Raises ItemNotFoundError or ItemForbiddenError before anything is
        written. When a concurrent writer invalidates the data read, the whole
        read-compute-write cycle is repeated with fresh state.
        """
        rating = parse_quality(quality)
        catalog = await self.get_catalog()

        async with self._learner_lock(chat_id):
            last_error: Optional[Exception] = None
            for attempt in range(1, self._max_attempts + 1):
                moment = now or datetime.now(timezone.utc)
                if moment.tzinfo is None:
                    moment = moment.replace(tzinfo=timezone.utc)
                try:
                    async with self._session_factory() as session:
                        async with session.begin():
                            summary = await self._apply_review(
                                session, chat_id, item_id, rating, catalog, moment
                            )
                except IntegrityError as exc:
                    if not is_duplicate_key_error(exc):
                        raise
                    last_error = exc
                    LOGGER.warning(
                        "Duplicate row while recording review of item %s for %s (attempt %s/%s).",
                        item_id,
                        chat_id,
                        attempt,
                        self._max_attempts,
                    )
                    continue
                except StaleDataError as exc:
                    last_error = exc
                    LOGGER.warning(
                        "Concurrent update while recording review of item %s for %s (attempt %s/%s).",
                        item_id,
                        chat_id,
                        attempt,
                        self._max_attempts,
                    )
                    continue

                LOGGER.debug(
                    "Recorded %s for item %s of %s: +%s XP, %s achievements.",
                    rating.name,
                    item_id,
                    chat_id,
                    summary.xp_earned,
                    len(summary.new_achievements),
                )
                return summary

        raise ConcurrencyConflictError(chat_id, self._max_attempts) from last_error

    async def _apply_review(
        self,
        session: AsyncSession,
        chat_id: int,
        item_id: int,
        quality: Quality,
        catalog: AchievementCatalog,
        now: datetime,
    ) -> ReviewSummary:
        item = await get_owned_item(session, chat_id, item_id)
        progress = await get_or_create_progress(session, chat_id, now=now)

        previous_state = ItemState(item.state)
        previous_level = progress.level
        today = review_day(now, self._tz)

        streak = evaluate_streak(progress.last_review_date, progress.current_streak, today)
        schedule = calculate_next_schedule(
            scheduling_state_of(item), quality, now.astimezone(self._tz)
        )
        xp_earned = calculate_xp(quality, streak.is_active, previous_state)
        correct = quality >= Quality.GOOD

        apply_review_schedule(item, schedule, correct=correct, now=now)

        progress.total_reviews += 1
        if correct:
            progress.total_correct += 1
        progress.daily_progress = next_daily_progress(streak, progress.daily_progress)
        progress.current_streak = streak.new_streak
        progress.longest_streak = max(progress.longest_streak, streak.new_streak)
        progress.last_review_date = today
        progress.total_xp += xp_earned
        progress.level = calculate_level(progress.total_xp)

        earned_keys = await get_earned_achievement_keys(session, chat_id)
        award = evaluate_achievements(snapshot_progress(progress), catalog.rules, earned_keys)
        if award:
            await record_earned_achievements(session, chat_id, catalog, award.rules, now=now)
            progress.total_xp += award.xp_reward
            progress.level = calculate_level(progress.total_xp)
        progress.updated_at = now

        await record_review_event(
            session,
            chat_id=chat_id,
            item_id=item.id,
            quality=quality,
            ease_factor=schedule.ease_factor,
            interval=schedule.interval,
            xp_earned=xp_earned,
            reviewed_at=now,
        )

        return ReviewSummary(
            item=item,
            progress=progress,
            quality=quality,
            previous_state=previous_state,
            new_state=schedule.state,
            interval=schedule.interval,
            next_review_at=item.next_review_at,
            xp_earned=xp_earned,
            achievement_xp=award.xp_reward,
            new_achievements=award.rules,
            level_progress=compute_level_progress(progress.total_xp),
            leveled_up=progress.level > previous_level,
        )

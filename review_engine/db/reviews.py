"""Review history storage and the aggregate queries built on top of it."""

from __future__ import annotations

from collections import Counter
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from review_engine.engine.scheduling import ItemState, Quality
from review_engine.engine.streak import review_day

from . import LearningItem, ReviewEvent


RECENT_REVIEW_WINDOW = 100
DAILY_HISTORY_DAYS = 30


async def record_review_event(
    session: AsyncSession,
    *,
    chat_id: int,
    item_id: int,
    quality: Quality,
    ease_factor: float,
    interval: int,
    xp_earned: int,
    reviewed_at: datetime,
) -> ReviewEvent:
    """Append one review outcome to the learner's history."""
    event = ReviewEvent(
        chat_id=chat_id,
        item_id=item_id,
        quality=int(quality),
        ease_factor=ease_factor,
        interval=interval,
        xp_earned=xp_earned,
        reviewed_at=reviewed_at,
    )
    session.add(event)
    await session.flush()
    return event


async def count_items_by_state(session: AsyncSession, chat_id: int) -> dict[ItemState, int]:
    stmt = (
        select(LearningItem.state, func.count())
        .where(LearningItem.chat_id == chat_id)
        .group_by(LearningItem.state)
    )
    result = await session.execute(stmt)
    counts = {state: 0 for state in ItemState}
    for state, count in result.all():
        counts[ItemState(state)] = count
    return counts


async def count_due_items(session: AsyncSession, chat_id: int, now: datetime) -> int:
    stmt = select(func.count()).select_from(LearningItem).where(
        LearningItem.chat_id == chat_id,
        or_(
            LearningItem.next_review_at.is_(None),
            LearningItem.next_review_at <= now,
            LearningItem.state == ItemState.NEW,
        ),
    )
    result = await session.execute(stmt)
    return int(result.scalar_one())


async def count_recent_qualities(
    session: AsyncSession,
    chat_id: int,
    limit: int = RECENT_REVIEW_WINDOW,
) -> dict[Quality, int]:
    """Count quality ratings among the learner's most recent reviews."""
    stmt = (
        select(ReviewEvent.quality)
        .where(ReviewEvent.chat_id == chat_id)
        .order_by(ReviewEvent.reviewed_at.desc(), ReviewEvent.id.desc())
        .limit(limit)
    )
    result = await session.execute(stmt)
    tally = Counter(Quality(value) for value in result.scalars().all())
    return {quality: tally.get(quality, 0) for quality in Quality}


async def count_daily_reviews(
    session: AsyncSession,
    chat_id: int,
    now: Optional[datetime] = None,
    tz: tzinfo = timezone.utc,
    days: int = DAILY_HISTORY_DAYS,
) -> dict[date, int]:
    """Return review counts per calendar day over the trailing window."""
    if now is None:
        now = datetime.now(timezone.utc)

    since = now - timedelta(days=days)
    stmt = select(ReviewEvent.reviewed_at).where(
        ReviewEvent.chat_id == chat_id,
        ReviewEvent.reviewed_at >= since,
    )
    result = await session.execute(stmt)
    tally: Counter[date] = Counter(review_day(moment, tz) for moment in result.scalars().all())
    return dict(sorted(tally.items()))

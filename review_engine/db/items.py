"""Helpers for working with learning item persistence."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Sequence

from sqlalchemy import case, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from review_engine.engine.scheduling import DEFAULT_EASE_FACTOR, ItemState, ReviewSchedule, SchedulingState
from review_engine.errors import ItemForbiddenError, ItemNotFoundError

from . import ItemType, LearningItem


DEFAULT_DUE_LIMIT = 20
MIN_DUE_LIMIT = 1
MAX_DUE_LIMIT = 100

_STATE_RANK = case(
    (LearningItem.state == ItemState.NEW, 0),
    (LearningItem.state == ItemState.LEARNING, 1),
    (LearningItem.state == ItemState.REVIEW, 2),
    (LearningItem.state == ItemState.LEARNED, 3),
    else_=4,
)


@dataclass(slots=True, frozen=True)
class DueItemFilters:
    """Selection options for fetching the items a learner should study."""

    limit: int = DEFAULT_DUE_LIMIT
    due_only: bool = True
    new_only: bool = False
    item_types: Sequence[ItemType] = ()

    def clamped_limit(self) -> int:
        return max(MIN_DUE_LIMIT, min(MAX_DUE_LIMIT, self.limit))


def scheduling_state_of(item: LearningItem) -> SchedulingState:
    """Return the scheduling fields of ``item`` as engine input."""
    return SchedulingState(
        ease_factor=item.ease_factor,
        interval=item.interval,
        repetitions=item.repetitions,
        state=ItemState(item.state),
    )


async def create_learning_item(
    session: AsyncSession,
    chat_id: int,
    front: str,
    back: str,
    item_type: ItemType = ItemType.VOCABULARY,
    now: Optional[datetime] = None,
) -> LearningItem:
    """Create a new item in state NEW with no scheduled review."""
    if now is None:
        now = datetime.now(timezone.utc)

    item = LearningItem(
        chat_id=chat_id,
        front=front.strip(),
        back=back.strip(),
        item_type=item_type,
        ease_factor=DEFAULT_EASE_FACTOR,
        interval=0,
        repetitions=0,
        state=ItemState.NEW,
        last_reviewed_at=None,
        next_review_at=None,
        correct_count=0,
        incorrect_count=0,
        created_at=now,
        updated_at=now,
    )
    session.add(item)
    await session.flush()
    return item


async def get_owned_item(session: AsyncSession, chat_id: int, item_id: int) -> LearningItem:
    """Return the item when it exists and belongs to ``chat_id``."""
    item = await session.get(LearningItem, item_id, populate_existing=True)
    if item is None:
        raise ItemNotFoundError(item_id)
    if item.chat_id != chat_id:
        raise ItemForbiddenError(item_id, chat_id)
    return item


async def fetch_due_items(
    session: AsyncSession,
    chat_id: int,
    filters: Optional[DueItemFilters] = None,
    now: Optional[datetime] = None,
) -> list[LearningItem]:
    """Return items to study: new first, then soonest due, then lowest ease factor."""
    if filters is None:
        filters = DueItemFilters()
    if now is None:
        now = datetime.now(timezone.utc)

    stmt = select(LearningItem).where(LearningItem.chat_id == chat_id)

    if filters.new_only:
        stmt = stmt.where(LearningItem.state == ItemState.NEW)
    elif filters.due_only:
        stmt = stmt.where(
            or_(
                LearningItem.next_review_at.is_(None),
                LearningItem.next_review_at <= now,
                LearningItem.state == ItemState.NEW,
            )
        )

    if filters.item_types:
        stmt = stmt.where(LearningItem.item_type.in_(list(filters.item_types)))

    stmt = stmt.order_by(
        _STATE_RANK,
        LearningItem.next_review_at.asc().nulls_first(),
        LearningItem.ease_factor.asc(),
        LearningItem.id,
    ).limit(filters.clamped_limit())

    result = await session.execute(stmt)
    return list(result.scalars().all())


def apply_review_schedule(
    item: LearningItem,
    schedule: ReviewSchedule,
    *,
    correct: bool,
    now: datetime,
) -> None:
    """Copy a computed schedule and answer counters onto ``item``."""
    item.ease_factor = schedule.ease_factor
    item.interval = schedule.interval
    item.repetitions = schedule.repetitions
    item.state = schedule.state
    item.next_review_at = schedule.next_review_at.astimezone(timezone.utc)
    item.last_reviewed_at = now
    if correct:
        item.correct_count += 1
    else:
        item.incorrect_count += 1
    item.updated_at = now

from __future__ import annotations

from datetime import timedelta

import pytest
import pytest_asyncio

from conftest import LEARNER_ID, OTHER_LEARNER_ID, utc
from review_engine.db import ItemType
from review_engine.db.items import (
    DueItemFilters,
    create_learning_item,
    fetch_due_items,
    get_owned_item,
)
from review_engine.engine.scheduling import ItemState
from review_engine.errors import ItemForbiddenError, ItemNotFoundError


NOW = utc(2024, 3, 10)


async def _add(
    session,
    front,
    *,
    state=ItemState.NEW,
    due_in=None,
    ease=2.5,
    item_type=ItemType.VOCABULARY,
    chat_id=LEARNER_ID,
):
    item = await create_learning_item(session, chat_id, front, f"{front}-back", item_type, now=NOW)
    item.state = state
    item.ease_factor = ease
    if due_in is not None:
        item.next_review_at = NOW + timedelta(days=due_in)
    await session.flush()
    return item


@pytest_asyncio.fixture
async def populated(seeded_session_factory):
    async with seeded_session_factory() as session:
        async with session.begin():
            await _add(session, "learned-later", state=ItemState.LEARNED, due_in=3)
            await _add(session, "review-easy", state=ItemState.REVIEW, due_in=-2, ease=2.5)
            await _add(session, "review-hard", state=ItemState.REVIEW, due_in=-2, ease=1.5)
            await _add(session, "learning", state=ItemState.LEARNING, due_in=-1, ease=2.0)
            await _add(session, "phrase-new", item_type=ItemType.PHRASE)
            await _add(session, "fresh")
            await _add(session, "foreign", chat_id=OTHER_LEARNER_ID)
    return seeded_session_factory


@pytest.mark.asyncio
async def test_create_learning_item_starts_new(seeded_session_factory) -> None:
    async with seeded_session_factory() as session:
        async with session.begin():
            item = await create_learning_item(session, LEARNER_ID, "  der Hund ", " the dog ", now=NOW)

    assert item.id is not None
    assert item.front == "der Hund"
    assert item.back == "the dog"
    assert item.state == ItemState.NEW
    assert item.ease_factor == 2.5
    assert item.interval == 0
    assert item.repetitions == 0
    assert item.next_review_at is None
    assert item.correct_count == item.incorrect_count == 0


@pytest.mark.asyncio
async def test_due_items_are_ordered_by_state_then_due_date_then_ease(populated) -> None:
    async with populated() as session:
        items = await fetch_due_items(session, LEARNER_ID, now=NOW)

    assert [item.front for item in items] == [
        "phrase-new",
        "fresh",
        "learning",
        "review-hard",
        "review-easy",
    ]


@pytest.mark.asyncio
async def test_due_only_can_be_disabled(populated) -> None:
    async with populated() as session:
        items = await fetch_due_items(session, LEARNER_ID, DueItemFilters(due_only=False), now=NOW)

    assert [item.front for item in items][-1] == "learned-later"
    assert len(items) == 6


@pytest.mark.asyncio
async def test_new_only_and_item_type_filters(populated) -> None:
    async with populated() as session:
        new_items = await fetch_due_items(session, LEARNER_ID, DueItemFilters(new_only=True), now=NOW)
        phrases = await fetch_due_items(
            session, LEARNER_ID, DueItemFilters(item_types=(ItemType.PHRASE,)), now=NOW
        )

    assert {item.front for item in new_items} == {"phrase-new", "fresh"}
    assert [item.front for item in phrases] == ["phrase-new"]


@pytest.mark.asyncio
@pytest.mark.parametrize(("limit", "expected"), [(0, 1), (-5, 1), (2, 2), (500, 5)])
async def test_limit_is_clamped(populated, limit: int, expected: int) -> None:
    async with populated() as session:
        items = await fetch_due_items(session, LEARNER_ID, DueItemFilters(limit=limit), now=NOW)

    assert len(items) == expected


def test_filter_limit_bounds() -> None:
    assert DueItemFilters(limit=1000).clamped_limit() == 100
    assert DueItemFilters(limit=0).clamped_limit() == 1
    assert DueItemFilters().clamped_limit() == 20


@pytest.mark.asyncio
async def test_get_owned_item_checks_existence_and_owner(populated) -> None:
    async with populated() as session:
        items = await fetch_due_items(session, OTHER_LEARNER_ID, now=NOW)
        foreign_id = items[0].id

        with pytest.raises(ItemForbiddenError):
            await get_owned_item(session, LEARNER_ID, foreign_id)
        with pytest.raises(ItemNotFoundError):
            await get_owned_item(session, LEARNER_ID, 987654)

        owned = await get_owned_item(session, OTHER_LEARNER_ID, foreign_id)

    assert owned.front == "foreign"

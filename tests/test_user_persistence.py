import asyncio
from collections import deque
from datetime import datetime, timezone
from typing import List, Tuple

import pytest

from review_engine.db import UserProgress, run_migrations_if_needed
from review_engine.db.users import (
    DEFAULT_DAILY_GOAL,
    get_or_create_progress,
    get_progress,
    set_daily_goal,
    upsert_user,
)
from review_engine.errors import InvalidDailyGoalError

from conftest import LEARNER_ID


class _StubSession:
    def __init__(self) -> None:
        self._records: dict[int, object] = {}
        self.flush_calls = 0

    async def get(self, model: object, chat_id: int) -> object:
        return self._records.get(chat_id)

    def add(self, user: object) -> None:
        self._records[getattr(user, "chat_id")] = user

    async def flush(self) -> None:
        self.flush_calls += 1


async def _exercise_user_upsert() -> None:
    session = _StubSession()

    created = await upsert_user(session, chat_id=101, first_name="Mei", last_name="Tanaka")
    assert session._records[101] is created
    assert created.first_name == "Mei"
    assert created.created_at.tzinfo is not None
    assert created.updated_at == created.created_at
    assert session.flush_calls == 0

    updated = await upsert_user(session, chat_id=101, first_name="Meiko", last_name="Tanaka")
    assert updated is created
    assert updated.first_name == "Meiko"
    assert updated.updated_at >= created.created_at
    assert session.flush_calls == 1

    unchanged = await upsert_user(session, chat_id=101, first_name="Meiko", last_name="Tanaka")
    assert unchanged is created
    assert session.flush_calls == 1


def test_upsert_user_creates_and_updates_names() -> None:
    asyncio.run(_exercise_user_upsert())


@pytest.mark.asyncio
async def test_progress_is_created_with_zero_counters(seeded_session_factory) -> None:
    now = datetime(2024, 1, 1, 9, tzinfo=timezone.utc)

    async with seeded_session_factory() as session:
        async with session.begin():
            assert await get_progress(session, LEARNER_ID) is None
            progress = await get_or_create_progress(session, LEARNER_ID, now=now)

    assert progress.total_xp == 0
    assert progress.level == 1
    assert progress.current_streak == 0
    assert progress.last_review_date is None
    assert progress.daily_goal == DEFAULT_DAILY_GOAL

    async with seeded_session_factory() as session:
        again = await get_or_create_progress(session, LEARNER_ID)
        rows = (await session.execute(UserProgress.__table__.select())).all()

    assert again.chat_id == LEARNER_ID
    assert len(rows) == 1


@pytest.mark.asyncio
async def test_set_daily_goal_persists_value(seeded_session_factory) -> None:
    async with seeded_session_factory() as session:
        async with session.begin():
            await set_daily_goal(session, LEARNER_ID, 35)

    async with seeded_session_factory() as session:
        progress = await get_progress(session, LEARNER_ID)

    assert progress is not None
    assert progress.daily_goal == 35


@pytest.mark.asyncio
@pytest.mark.parametrize("goal", [0, 4, 101, -20])
async def test_set_daily_goal_rejects_out_of_range(seeded_session_factory, goal: int) -> None:
    async with seeded_session_factory() as session:
        with pytest.raises(InvalidDailyGoalError):
            await set_daily_goal(session, LEARNER_ID, goal)


def test_run_migrations_if_needed_invokes_upgrade(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: List[Tuple[object, str]] = []

    def fake_upgrade(config: object, target: str) -> None:
        calls.append((config, target))

    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    monkeypatch.setenv("RUN_MIGRATIONS_ON_STARTUP", "true")
    monkeypatch.setattr("review_engine.db.command.upgrade", fake_upgrade)

    run_migrations_if_needed()

    assert calls and calls[0][1] == "head"


def test_run_migrations_if_needed_skips_when_disabled(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    monkeypatch.setenv("RUN_MIGRATIONS_ON_STARTUP", "false")

    calls: deque[str] = deque()

    def fake_upgrade(_: object, target: str) -> None:
        calls.append(target)

    monkeypatch.setattr("review_engine.db.command.upgrade", fake_upgrade)

    run_migrations_if_needed()

    assert not calls

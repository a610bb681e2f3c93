from __future__ import annotations

from datetime import datetime, timezone

import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from review_engine.db import Base
from review_engine.db.achievements import sync_achievement_catalog
from review_engine.db.users import upsert_user
from review_engine.engine.achievements import DEFAULT_ACHIEVEMENTS
from review_engine.services import ReviewService


LEARNER_ID = 101
OTHER_LEARNER_ID = 202


@pytest_asyncio.fixture
async def session_factory() -> async_sessionmaker:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False)
    try:
        yield factory
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def seeded_session_factory(session_factory) -> async_sessionmaker:
    """Session factory with the default catalog and two learners in place."""
    async with session_factory() as session:
        async with session.begin():
            await sync_achievement_catalog(session, DEFAULT_ACHIEVEMENTS)
            await upsert_user(session, LEARNER_ID, "Mei", None)
            await upsert_user(session, OTHER_LEARNER_ID, "Li", None)
    return session_factory


@pytest_asyncio.fixture
async def review_service(seeded_session_factory) -> ReviewService:
    return ReviewService(seeded_session_factory)


def utc(year: int, month: int, day: int, hour: int = 12) -> datetime:
    return datetime(year, month, day, hour, tzinfo=timezone.utc)

"""Bootstrap logic for running the review bot."""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from review_engine.app.settings import AppSettings
from review_engine.bot import ReviewBot, build_application
from review_engine.db import get_session_factory, run_migrations_if_needed
from review_engine.db.achievements import sync_achievement_catalog
from review_engine.engine.achievements import DEFAULT_ACHIEVEMENTS
from review_engine.services import ReviewService


LOGGER = logging.getLogger(__name__)


def _configure_logging(log_level: str) -> None:
    """Set up project-wide logging configuration."""
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        level=log_level,
    )


def _ensure_event_loop() -> asyncio.AbstractEventLoop:
    """Guarantee that an asyncio event loop exists for the current thread."""
    try:
        return asyncio.get_event_loop()
    except RuntimeError:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        return loop


async def seed_achievements(session_factory: async_sessionmaker[AsyncSession]) -> None:
    """Make sure the default achievement catalog is present."""
    async with session_factory() as session:
        async with session.begin():
            await sync_achievement_catalog(session, DEFAULT_ACHIEVEMENTS)


def run_bot(settings: AppSettings) -> None:
    """Start the Telegram bot using the provided settings."""
    _configure_logging(settings.log_level)
    print(f"{settings.app_name} is running in {settings.app_env} mode.")

    try:
        run_migrations_if_needed()
    except Exception:
        LOGGER.exception("Database migrations failed. Aborting startup.")
        raise

    session_factory = get_session_factory()
    loop = _ensure_event_loop()
    loop.run_until_complete(seed_achievements(session_factory))

    review_service = ReviewService(
        session_factory,
        tz=settings.tz,
        max_attempts=settings.review_max_attempts,
    )
    bot = ReviewBot(
        review_service,
        session_factory=session_factory,
        batch_size=settings.review_batch_size,
    )
    application = build_application(settings.telegram_bot_token, bot)

    LOGGER.info("Starting review bot for %s in %s mode.", settings.app_name, settings.app_env)
    application.run_polling()

"""Telegram handlers that let a learner review items and follow their progress."""

from __future__ import annotations

import logging
from contextlib import suppress
from datetime import datetime, timezone
from html import escape
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.constants import ParseMode
from telegram.ext import ContextTypes

from review_engine.db import ItemType
from review_engine.db.items import DueItemFilters, create_learning_item, get_owned_item
from review_engine.db.users import set_daily_goal, upsert_user
from review_engine.engine.scheduling import Quality, quality_label
from review_engine.errors import (
    InvalidDailyGoalError,
    InvalidQualityError,
    ItemForbiddenError,
    ItemNotFoundError,
    ReviewEngineError,
)
from review_engine.services import ReviewService, ReviewSummary, get_learner_stats


LOGGER = logging.getLogger(__name__)

REVIEW_NOT_RECORDED = "Review not recorded. Please try again."
ITEM_NOT_SAVED = "Could not save the item. Please try again."


class ReviewBot:
    """Handles Telegram updates by delegating to the review service."""

    def __init__(
        self,
        review_service: ReviewService,
        session_factory: async_sessionmaker[AsyncSession],
        batch_size: int = 20,
    ) -> None:
        self._review_service = review_service
        self._session_factory = session_factory
        self._batch_size = batch_size

    async def _store_user_profile(
        self,
        chat_id: int,
        first_name: Optional[str],
        last_name: Optional[str],
    ) -> None:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    await upsert_user(session, chat_id, first_name, last_name)
        except SQLAlchemyError:
            LOGGER.exception("Failed to store profile for chat %s.", chat_id)

    async def handle_start(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Greet the learner and list the available commands."""
        if not update.message:
            return

        chat = update.effective_chat
        if chat is None:
            return

        user = update.effective_user
        await self._store_user_profile(
            chat.id,
            getattr(user, "first_name", None),
            getattr(user, "last_name", None),
        )

        await update.message.reply_text(
            "Hi! I schedule your reviews so you see each item right before you forget it.\n"
            "/add <front> | <back> - add an item\n"
            "/review - study the next due item\n"
            "/stats - level, streak and achievements\n"
            "/goal <n> - set your daily review goal"
        )

    async def handle_add(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not update.message or update.effective_chat is None:
            return

        chat_id = update.effective_chat.id
        payload = " ".join(getattr(context, "args", None) or [])
        front, separator, back = payload.partition("|")
        if not separator or not front.strip() or not back.strip():
            await update.message.reply_text("Usage: /add <front> | <back>")
            return

        user = update.effective_user
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    await upsert_user(
                        session,
                        chat_id,
                        getattr(user, "first_name", None),
                        getattr(user, "last_name", None),
                    )
                    item = await create_learning_item(session, chat_id, front, back, ItemType.VOCABULARY)
        except SQLAlchemyError:
            LOGGER.exception("Failed to add an item for chat %s.", chat_id)
            await update.message.reply_text(ITEM_NOT_SAVED)
            return

        await update.message.reply_text(
            f"Added <b>{escape(item.front)}</b>.",
            parse_mode=ParseMode.HTML,
            reply_markup=self._build_review_markup(),
        )

    async def handle_review(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Show the next due item, either from a command or a callback button."""
        query = update.callback_query
        if query is not None:
            await query.answer()
            message = query.message
        else:
            message = update.message
        if message is None or message.chat is None:
            return

        items = await self._review_service.fetch_due_items(
            message.chat.id, DueItemFilters(limit=self._batch_size)
        )
        if not items:
            await message.reply_text("Nothing is due right now. Add items with /add or come back later.")
            return

        item = items[0]
        await message.reply_text(
            f"❓ <b>{escape(item.front)}</b>",
            parse_mode=ParseMode.HTML,
            reply_markup=self._build_reveal_keyboard(item.id),
        )

    async def handle_show_item(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        query = update.callback_query
        if query is None or query.data is None:
            return

        item_id = self._parse_item_id(query.data, "rv_show", expected_parts=2)
        message = query.message
        if item_id is None or message is None or message.chat is None:
            await query.answer("Invalid request.", show_alert=True)
            return

        try:
            async with self._session_factory() as session:
                item = await get_owned_item(session, message.chat.id, item_id)
        except (ItemNotFoundError, ItemForbiddenError):
            await query.answer("Item not found.", show_alert=True)
            return

        text = f"❓ <b>{escape(item.front)}</b>\n💡 {escape(item.back)}"
        try:
            await query.edit_message_text(
                text,
                parse_mode=ParseMode.HTML,
                reply_markup=self._build_rating_keyboard(item.id),
            )
        except Exception:  # pragma: no cover - best effort update
            LOGGER.debug("Could not reveal item text.", exc_info=True)
            await message.reply_text(
                text,
                parse_mode=ParseMode.HTML,
                reply_markup=self._build_rating_keyboard(item.id),
            )

        await query.answer()

    async def handle_rate_item(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        query = update.callback_query
        if query is None or query.data is None:
            return

        parts = query.data.split(":")
        message = query.message
        if len(parts) != 3 or parts[0] != "rv_rate" or message is None or message.chat is None:
            await query.answer()
            return

        try:
            item_id = int(parts[1])
        except ValueError:
            await query.answer("Invalid rating.", show_alert=True)
            return

        chat_id = message.chat.id
        try:
            summary = await self._review_service.submit_review(chat_id, item_id, parts[2])
        except InvalidQualityError:
            await query.answer("Invalid rating.", show_alert=True)
            return
        except (ItemNotFoundError, ItemForbiddenError):
            await query.answer("Item not found.", show_alert=True)
            return
        except (ReviewEngineError, SQLAlchemyError):
            LOGGER.exception("Failed to record review of item %s for chat %s.", item_id, chat_id)
            await query.answer(REVIEW_NOT_RECORDED, show_alert=True)
            return

        with suppress(Exception):
            await query.edit_message_reply_markup(reply_markup=None)

        await query.answer(f"+{summary.total_xp_awarded} XP")
        await message.reply_text(
            self.format_review_summary(summary),
            parse_mode=ParseMode.HTML,
            reply_markup=self._build_review_markup(),
        )

    async def handle_stats(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Present a formatted progress dashboard for the current learner."""
        if not update.message or update.effective_chat is None:
            return

        async with self._session_factory() as session:
            stats = await get_learner_stats(
                session,
                update.effective_chat.id,
                now=datetime.now(timezone.utc),
                tz=self._review_service.tz,
            )

        progress = stats.level_progress
        lines = [
            "📊 <b>Progress</b>",
            f"⭐ Level {progress.level} ({progress.current}/{progress.needed} XP, {progress.percentage}%)",
            f"💎 Total XP: {stats.total_xp}",
            f"🔥 Streak: {stats.current_streak} (best {stats.longest_streak})",
            f"🎯 Today: {stats.daily_progress}/{stats.daily_goal}",
            f"🔁 Reviews: {stats.total_reviews}, accuracy {stats.accuracy}%",
            (
                f"🗂 Items: {stats.items.total} (new {stats.items.new}, learning {stats.items.learning}, "
                f"review {stats.items.review}, learned {stats.items.learned}), due {stats.items.due_today}"
            ),
        ]
        if stats.achievements:
            lines.append("")
            lines.append(f"🏆 <b>Achievements</b> ({len(stats.achievements)}/{len(stats.all_achievements)})")
            lines.extend(f"• {escape(earned.rule.name)}" for earned in stats.achievements)

        await update.message.reply_text("\n".join(lines), parse_mode=ParseMode.HTML)

    async def handle_goal(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not update.message or update.effective_chat is None:
            return

        args = getattr(context, "args", None) or []
        try:
            goal = int(args[0])
        except (IndexError, ValueError):
            await update.message.reply_text("Usage: /goal <number of reviews per day>")
            return

        chat_id = update.effective_chat.id
        user = update.effective_user
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    await upsert_user(
                        session,
                        chat_id,
                        getattr(user, "first_name", None),
                        getattr(user, "last_name", None),
                    )
                    await set_daily_goal(session, chat_id, goal)
        except InvalidDailyGoalError as exc:
            await update.message.reply_text(str(exc))
            return

        await update.message.reply_text(f"Daily goal set to {goal} reviews.")

    @staticmethod
    def _parse_item_id(data: str, prefix: str, expected_parts: int) -> Optional[int]:
        parts = data.split(":")
        if len(parts) != expected_parts or parts[0] != prefix:
            return None
        try:
            return int(parts[1])
        except ValueError:
            return None

    @staticmethod
    def _build_review_markup() -> InlineKeyboardMarkup:
        return InlineKeyboardMarkup([[InlineKeyboardButton("Next item", callback_data="rv_next")]])

    @staticmethod
    def _build_reveal_keyboard(item_id: int) -> InlineKeyboardMarkup:
        return InlineKeyboardMarkup(
            [[InlineKeyboardButton("Show answer", callback_data=f"rv_show:{item_id}")]]
        )

    @staticmethod
    def _build_rating_keyboard(item_id: int) -> InlineKeyboardMarkup:
        buttons = [
            InlineKeyboardButton(quality_label(quality), callback_data=f"rv_rate:{item_id}:{int(quality)}")
            for quality in Quality
        ]
        return InlineKeyboardMarkup([buttons])

    @classmethod
    def format_review_summary(cls, summary: ReviewSummary) -> str:
        lines = [
            f"{quality_label(summary.quality)}: +{summary.xp_earned} XP. "
            f"Next review {cls._describe_interval(summary.interval)}."
        ]
        if summary.new_achievements:
            lines.append(f"🏆 Achievements unlocked (+{summary.achievement_xp} XP):")
            lines.extend(f"• {escape(rule.name or rule.key)}" for rule in summary.new_achievements)
        if summary.leveled_up:
            lines.append(f"⭐ Level up! You reached level {summary.level_progress.level}.")
        return "\n".join(lines)

    @staticmethod
    def _describe_interval(interval_days: int) -> str:
        if interval_days <= 0:
            return "very soon"
        if interval_days == 1:
            return "in 1 day"
        if interval_days < 7:
            return f"in {interval_days} days"
        if interval_days % 7 == 0:
            weeks = interval_days // 7
            if weeks == 1:
                return "in 1 week"
            return f"in {weeks} weeks"
        return f"in {interval_days} days"

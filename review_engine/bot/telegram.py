"""Telegram application wiring for the review bot."""

from telegram.ext import (
    Application,
    ApplicationBuilder,
    CallbackQueryHandler,
    CommandHandler,
)

from .handlers import ReviewBot


def build_application(bot_token: str, bot: ReviewBot) -> Application:
    """Configure the Telegram application instance."""
    application = ApplicationBuilder().token(bot_token).build()
    application.add_handler(CommandHandler("start", bot.handle_start))
    application.add_handler(CommandHandler("add", bot.handle_add))
    application.add_handler(CommandHandler("review", bot.handle_review))
    application.add_handler(CommandHandler("stats", bot.handle_stats))
    application.add_handler(CommandHandler("goal", bot.handle_goal))
    application.add_handler(CallbackQueryHandler(bot.handle_review, pattern="^rv_next$"))
    application.add_handler(CallbackQueryHandler(bot.handle_show_item, pattern=r"^rv_show:"))
    application.add_handler(CallbackQueryHandler(bot.handle_rate_item, pattern=r"^rv_rate:"))
    return application

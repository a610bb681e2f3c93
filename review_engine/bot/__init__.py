"""Telegram bot components for the review engine."""

from .handlers import ReviewBot
from .telegram import build_application

__all__ = ["ReviewBot", "build_application"]

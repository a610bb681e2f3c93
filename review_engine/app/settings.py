"""Configuration helpers for the review engine runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


DEFAULT_REVIEW_BATCH_SIZE = 20
DEFAULT_MAX_ATTEMPTS = 3


@dataclass(frozen=True)
class AppSettings:
    """Strongly typed application settings loaded from environment variables."""

    app_name: str
    app_env: str
    log_level: str
    telegram_bot_token: str
    review_timezone: str
    review_batch_size: int
    review_max_attempts: int

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.review_timezone)

    @classmethod
    def from_env(cls) -> AppSettings:
        """Construct settings directly from environment variables."""
        app_name = os.getenv("APP_NAME", "Review Engine")
        app_env = os.getenv("APP_ENV", "development")
        log_level = os.getenv("LOG_LEVEL", "INFO")
        telegram_bot_token = os.getenv("TELEGRAM_BOT_TOKEN")

        if not telegram_bot_token:
            raise RuntimeError(
                "TELEGRAM_BOT_TOKEN environment variable is required to start the Telegram bot."
            )

        review_timezone = os.getenv("REVIEW_TIMEZONE", "UTC")
        try:
            ZoneInfo(review_timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise RuntimeError(f"REVIEW_TIMEZONE {review_timezone!r} is not a known time zone.") from exc

        try:
            review_batch_size = int(os.getenv("REVIEW_BATCH_SIZE", str(DEFAULT_REVIEW_BATCH_SIZE)))
        except ValueError as exc:  # pragma: no cover - defensive parsing
            raise RuntimeError("REVIEW_BATCH_SIZE must be an integer.") from exc
        if review_batch_size < 1 or review_batch_size > 100:
            raise RuntimeError("REVIEW_BATCH_SIZE must be between 1 and 100.")

        try:
            review_max_attempts = int(os.getenv("REVIEW_MAX_ATTEMPTS", str(DEFAULT_MAX_ATTEMPTS)))
        except ValueError as exc:  # pragma: no cover - defensive parsing
            raise RuntimeError("REVIEW_MAX_ATTEMPTS must be an integer.") from exc
        if review_max_attempts < 1:
            raise RuntimeError("REVIEW_MAX_ATTEMPTS must be a positive integer.")

        return cls(
            app_name=app_name,
            app_env=app_env,
            log_level=log_level,
            telegram_bot_token=telegram_bot_token,
            review_timezone=review_timezone,
            review_batch_size=review_batch_size,
            review_max_attempts=review_max_attempts,
        )

"""SM-2 style scheduling for learning item reviews."""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from review_engine.errors import InvalidQualityError


DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
LEARNED_THRESHOLD = 5
EASY_INTERVAL_BONUS = 1.3
HARD_INTERVAL_FACTOR = 0.5
AGAIN_EASE_PENALTY = 0.2
HARD_EASE_PENALTY = 0.15


class Quality(enum.IntEnum):
    """Self-assessed recall quality for a single review."""

    AGAIN = 0
    HARD = 1
    GOOD = 2
    EASY = 3


class ItemState(str, enum.Enum):
    """Coarse lifecycle classification of a learning item."""

    NEW = "NEW"
    LEARNING = "LEARNING"
    REVIEW = "REVIEW"
    LEARNED = "LEARNED"


_QUALITY_LABELS = {
    Quality.AGAIN: "Again",
    Quality.HARD: "Hard",
    Quality.GOOD: "Good",
    Quality.EASY: "Easy",
}


@dataclass(slots=True, frozen=True)
class SchedulingState:
    """Scheduling fields of a learning item before a review."""

    ease_factor: float = DEFAULT_EASE_FACTOR
    interval: int = 0
    repetitions: int = 0
    state: ItemState = ItemState.NEW


@dataclass(slots=True, frozen=True)
class ReviewSchedule:
    """Calculated scheduling data for an item after receiving a rating."""

    ease_factor: float
    interval: int
    repetitions: int
    state: ItemState
    next_review_at: datetime


def parse_quality(value: object) -> Quality:
    """Convert a caller-supplied rating into a Quality or raise InvalidQualityError."""
    if isinstance(value, Quality):
        return value
    if isinstance(value, bool):
        raise InvalidQualityError(value)
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.upper() in Quality.__members__:
            return Quality[stripped.upper()]
        try:
            value = int(stripped)
        except ValueError:
            raise InvalidQualityError(value) from None
    if not isinstance(value, int):
        raise InvalidQualityError(value)
    try:
        return Quality(value)
    except ValueError:
        raise InvalidQualityError(value) from None


def quality_label(quality: Quality) -> str:
    return _QUALITY_LABELS[quality]


def round_half_up(value: float) -> int:
    """Round half away from zero for non-negative values (1.5 -> 2, 2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def classify_success_state(repetitions: int) -> ItemState:
    """Return the coarse state reached after a successful review."""
    if repetitions >= LEARNED_THRESHOLD:
        return ItemState.LEARNED
    return ItemState.REVIEW


def _adjust_ease_for_success(ease_factor: float, quality: Quality) -> float:
    weight = 3 if quality == Quality.EASY else 2
    ease_factor = ease_factor + (0.1 - (3 - weight) * (0.08 + (3 - weight) * 0.02))
    if ease_factor < MIN_EASE_FACTOR:
        ease_factor = MIN_EASE_FACTOR
    return ease_factor


def calculate_next_schedule(
    current: SchedulingState,
    quality: Quality,
    now: datetime | None = None,
) -> ReviewSchedule:
    """Return the next schedule for an item using the SM-2 variant.

    ``now`` should be an aware datetime in the review time zone; the next
    review is placed ``interval`` calendar days later on the same wall-clock
    time, so DST transitions do not shift it.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    ease_factor = current.ease_factor
    interval = current.interval
    repetitions = current.repetitions

    if quality in (Quality.GOOD, Quality.EASY):
        repetitions += 1
        if repetitions == 1:
            interval = 1
        elif repetitions == 2:
            interval = 6
        else:
            interval = round_half_up(interval * ease_factor)

        ease_factor = _adjust_ease_for_success(ease_factor, quality)

        if quality == Quality.EASY:
            interval = round_half_up(interval * EASY_INTERVAL_BONUS)

        state = classify_success_state(repetitions)
    elif quality == Quality.HARD:
        repetitions = 1
        interval = max(1, round_half_up(interval * HARD_INTERVAL_FACTOR))
        ease_factor = max(MIN_EASE_FACTOR, ease_factor - HARD_EASE_PENALTY)
        state = ItemState.LEARNING
    elif quality == Quality.AGAIN:
        repetitions = 0
        interval = 1
        ease_factor = max(MIN_EASE_FACTOR, ease_factor - AGAIN_EASE_PENALTY)
        state = ItemState.LEARNING
    else:  # pragma: no cover - Quality is a closed enum
        raise InvalidQualityError(quality)

    return ReviewSchedule(
        ease_factor=ease_factor,
        interval=interval,
        repetitions=repetitions,
        state=state,
        next_review_at=now + timedelta(days=interval),
    )

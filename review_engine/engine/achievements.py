"""Milestone achievement rules and their evaluation against learner progress."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import AbstractSet, Iterable, Optional, Sequence


LOGGER = logging.getLogger(__name__)


class AchievementMetric(str, enum.Enum):
    """Progress metric an achievement rule is measured against."""

    REVIEWS = "reviews"
    STREAK = "streak"
    LEVEL = "level"
    XP = "xp"


_KEY_PREFIXES = (
    ("reviews_", AchievementMetric.REVIEWS),
    ("streak_", AchievementMetric.STREAK),
    ("level_", AchievementMetric.LEVEL),
    ("xp_", AchievementMetric.XP),
)
_EXACT_KEYS = {"first_review": AchievementMetric.REVIEWS}
_warned_keys: set[str] = set()


@dataclass(slots=True, frozen=True)
class AchievementRule:
    """Immutable catalog entry describing one milestone."""

    key: str
    requirement: int
    xp_reward: int
    name: str = ""
    description: str = ""
    icon: str = ""
    category: str = ""


@dataclass(slots=True, frozen=True)
class ProgressSnapshot:
    """Learner metrics read by achievement predicates."""

    total_reviews: int
    current_streak: int
    level: int
    total_xp: int

    def value_for(self, metric: AchievementMetric) -> int:
        if metric == AchievementMetric.REVIEWS:
            return self.total_reviews
        if metric == AchievementMetric.STREAK:
            return self.current_streak
        if metric == AchievementMetric.LEVEL:
            return self.level
        if metric == AchievementMetric.XP:
            return self.total_xp
        raise ValueError(f"Unsupported achievement metric: {metric!r}")


@dataclass(slots=True, frozen=True)
class AchievementAward:
    """Rules newly satisfied by a snapshot and their combined XP reward."""

    rules: tuple[AchievementRule, ...] = field(default_factory=tuple)

    @property
    def xp_reward(self) -> int:
        return sum(rule.xp_reward for rule in self.rules)

    @property
    def keys(self) -> tuple[str, ...]:
        return tuple(rule.key for rule in self.rules)

    def __bool__(self) -> bool:
        return bool(self.rules)


DEFAULT_ACHIEVEMENTS: tuple[AchievementRule, ...] = (
    AchievementRule("first_review", 1, 50, "First Steps", "Complete your first review", "Star", "reviews"),
    AchievementRule("reviews_10", 10, 100, "Getting Started", "Complete 10 reviews", "Zap", "reviews"),
    AchievementRule("reviews_100", 100, 250, "Dedicated Learner", "Complete 100 reviews", "Award", "reviews"),
    AchievementRule("reviews_500", 500, 500, "Study Master", "Complete 500 reviews", "Trophy", "reviews"),
    AchievementRule("reviews_1000", 1000, 1000, "Grand Scholar", "Complete 1000 reviews", "Crown", "reviews"),
    AchievementRule("streak_3", 3, 100, "On a Roll", "Maintain a 3-day streak", "Flame", "streaks"),
    AchievementRule("streak_7", 7, 250, "Week Warrior", "Maintain a 7-day streak", "Flame", "streaks"),
    AchievementRule("streak_30", 30, 1000, "Monthly Master", "Maintain a 30-day streak", "Flame", "streaks"),
    AchievementRule("level_5", 5, 200, "Rising Star", "Reach level 5", "TrendingUp", "levels"),
    AchievementRule("level_10", 10, 500, "Expert Learner", "Reach level 10", "Target", "levels"),
    AchievementRule("xp_1000", 1000, 100, "XP Hunter", "Earn 1000 total XP", "Coins", "xp"),
    AchievementRule("xp_10000", 10000, 500, "XP Legend", "Earn 10000 total XP", "Gem", "xp"),
)


def metric_for_key(key: str) -> Optional[AchievementMetric]:
    """Return the metric a rule key is measured against, if the key is known."""
    metric = _EXACT_KEYS.get(key)
    if metric is not None:
        return metric
    for prefix, candidate in _KEY_PREFIXES:
        if key.startswith(prefix):
            return candidate
    return None


def is_rule_satisfied(rule: AchievementRule, snapshot: ProgressSnapshot) -> bool:
    metric = metric_for_key(rule.key)
    if metric is None:
        if rule.key not in _warned_keys:
            _warned_keys.add(rule.key)
            LOGGER.warning("Achievement %s has no known metric and will never unlock.", rule.key)
        return False
    return snapshot.value_for(metric) >= rule.requirement


def evaluate_achievements(
    snapshot: ProgressSnapshot,
    catalog: Sequence[AchievementRule],
    earned_keys: AbstractSet[str] | Iterable[str],
) -> AchievementAward:
    """Return the catalog rules that ``snapshot`` satisfies and were not earned yet.

    Each predicate only reads the snapshot, so the result does not depend on
    catalog order, and rules listed in ``earned_keys`` are never returned.
    """
    earned = frozenset(earned_keys)
    unlocked = tuple(
        rule
        for rule in catalog
        if rule.key not in earned and is_rule_satisfied(rule, snapshot)
    )
    return AchievementAward(rules=unlocked)

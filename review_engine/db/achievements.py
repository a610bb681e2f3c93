"""Persistence helpers for the achievement catalog and unlocked achievements."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Iterable, Mapping, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from review_engine.engine.achievements import AchievementRule

from . import Achievement, UserAchievement


LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class AchievementCatalog:
    """Read-only snapshot of the achievement table."""

    rules: tuple[AchievementRule, ...] = ()
    ids: Mapping[str, int] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.rules)


@dataclass(slots=True, frozen=True)
class EarnedAchievementInfo:
    """An unlocked achievement together with its catalog details."""

    rule: AchievementRule
    unlocked_at: datetime


def _rule_from_row(row: Achievement) -> AchievementRule:
    return AchievementRule(
        key=row.key,
        requirement=row.requirement,
        xp_reward=row.xp_reward,
        name=row.name,
        description=row.description,
        icon=row.icon,
        category=row.category,
    )


async def load_achievement_catalog(session: AsyncSession) -> AchievementCatalog:
    """Load every achievement rule, ordered by requirement then key."""
    result = await session.execute(
        select(Achievement).order_by(Achievement.requirement, Achievement.key)
    )
    rows = result.scalars().all()
    return AchievementCatalog(
        rules=tuple(_rule_from_row(row) for row in rows),
        ids={row.key: row.id for row in rows},
    )


async def sync_achievement_catalog(
    session: AsyncSession, rules: Sequence[AchievementRule]
) -> tuple[int, int]:
    """Insert missing rules and refresh changed ones; returns (created, updated)."""
    result = await session.execute(select(Achievement))
    existing = {row.key: row for row in result.scalars().all()}

    created = 0
    updated = 0
    for rule in rules:
        desired = replace(rule, name=rule.name or rule.key)
        row = existing.get(rule.key)
        if row is None:
            session.add(
                Achievement(
                    key=desired.key,
                    name=desired.name,
                    description=desired.description,
                    icon=desired.icon,
                    category=desired.category,
                    requirement=desired.requirement,
                    xp_reward=desired.xp_reward,
                )
            )
            created += 1
            continue

        if _rule_from_row(row) != desired:
            row.name = desired.name
            row.description = desired.description
            row.icon = desired.icon
            row.category = desired.category
            row.requirement = desired.requirement
            row.xp_reward = desired.xp_reward
            updated += 1

    await session.flush()
    LOGGER.info("Achievement catalog synced: %s created, %s updated.", created, updated)
    return created, updated


async def get_earned_achievement_keys(session: AsyncSession, chat_id: int) -> set[str]:
    """Return the keys of every achievement the learner has unlocked."""
    stmt = (
        select(Achievement.key)
        .join(UserAchievement, UserAchievement.achievement_id == Achievement.id)
        .where(UserAchievement.chat_id == chat_id)
    )
    result = await session.execute(stmt)
    return set(result.scalars().all())


async def record_earned_achievements(
    session: AsyncSession,
    chat_id: int,
    catalog: AchievementCatalog,
    rules: Iterable[AchievementRule],
    now: Optional[datetime] = None,
) -> list[UserAchievement]:
    """Insert one unlock row per rule; the unique constraint rejects duplicates."""
    if now is None:
        now = datetime.now(timezone.utc)

    records = [
        UserAchievement(
            chat_id=chat_id,
            achievement_id=catalog.ids[rule.key],
            unlocked_at=now,
        )
        for rule in rules
    ]
    if records:
        session.add_all(records)
        await session.flush()
    return records


async def list_earned_achievements(session: AsyncSession, chat_id: int) -> list[EarnedAchievementInfo]:
    """Return the learner's unlocked achievements, newest first."""
    stmt = (
        select(UserAchievement)
        .options(selectinload(UserAchievement.achievement))
        .where(UserAchievement.chat_id == chat_id)
        .order_by(UserAchievement.unlocked_at.desc(), UserAchievement.id.desc())
    )
    result = await session.execute(stmt)
    return [
        EarnedAchievementInfo(rule=_rule_from_row(record.achievement), unlocked_at=record.unlocked_at)
        for record in result.scalars().all()
    ]

"""Progression engine: turns earn events into XP, levels, streaks and achievements.

The engine is pure. It takes a `ProgressionState` and returns a new one along
with the notifications the presentation layer should show; it never reads
the clock, touches storage or mutates its input. Callers pass `now` in and
are responsible for serializing events per user and persisting the result.
"""

import random
from datetime import datetime
from typing import List, Optional, Tuple

import structlog

from habitquest.core.exceptions import AchievementCascadeError
from habitquest.gamification.achievement_engine import DEFAULT_CATALOG, AchievementCatalog
from habitquest.gamification.reward_config import DEFAULT_REWARD_CONFIG, RewardConfig
from habitquest.gamification.reward_wheel import RewardWheel
from habitquest.gamification.streak_engine import update_streak
from habitquest.gamification.xp_engine import XpEngine
from habitquest.schemas.progression import (
    AchievementUnlocked, ApplyResult, EarnEvent, EventSource, LevelProgress, LevelUp,
    ProgressionState, SpinResult, ensure_utc,
)

logger = structlog.get_logger()


class ProgressionEngine:
    """Engine for applying earn events and daily spins to a user's state."""

    def __init__(
        self,
        config: RewardConfig = DEFAULT_REWARD_CONFIG,
        catalog: AchievementCatalog = DEFAULT_CATALOG,
        rng: Optional[random.Random] = None
    ):
        self.config = config
        self.catalog = catalog
        self.xp_engine = XpEngine(config)
        self.wheel = RewardWheel(config.reward_tiers, rng)

    def compute_xp_gain(self, event: EarnEvent) -> int:
        return self.xp_engine.calculate_event_xp(event)

    def xp_threshold(self, level: int) -> int:
        return self.xp_engine.xp_threshold(level)

    def apply_event(self, state: ProgressionState, event: EarnEvent, now: datetime) -> ApplyResult:
        """Apply one earn event.

        Notifications list level-ups in the order they happened, followed by
        achievement unlocks in catalog order.
        """
        timestamp = event.timestamp or ensure_utc(now)

        gain = self.compute_xp_gain(event)
        coins = self.xp_engine.calculate_event_coins(event)

        state, level_ups = self.xp_engine.apply_xp(state, gain)
        updates = {"coins": state.coins + coins}
        if event.source == EventSource.HABIT.value:
            updates["habits_completed"] = state.habits_completed + 1
        state = state.model_copy(update=updates)

        if event.source in self.config.streak_sources:
            state = update_streak(state, timestamp, event.frequency)

        state, unlocks, bonus_level_ups = self._unlock_achievements(state, timestamp)
        level_ups.extend(bonus_level_ups)

        return ApplyResult(state, [*level_ups, *unlocks])

    def spin_wheel(self, state: ProgressionState, now: datetime) -> SpinResult:
        """Spin the daily wheel. Raises `AlreadySpunError` on a second spin the same UTC day."""
        today = self.wheel.check_gate(state, now)
        tier_index, reward = self.wheel.draw()

        state = self.wheel.mark_spun(state, today)
        event = EarnEvent.spin(reward, ensure_utc(now))
        result = self.apply_event(state, event, now)

        return SpinResult(
            reward_xp=self.compute_xp_gain(event),
            state=result.state,
            notifications=result.notifications,
            tier_index=tier_index,
        )

    def level_progress(self, state: ProgressionState) -> LevelProgress:
        """Progress toward the next level, for dashboards."""
        threshold = self.xp_threshold(state.level)
        return LevelProgress(
            level=state.level,
            xp=state.xp,
            xp_for_next_level=threshold,
            xp_to_next_level=threshold - state.xp,
            progress_percentage=round(state.xp / threshold * 100, 2),
            coins=state.coins,
            streak_current=state.streak_current,
            streak_longest=state.streak_longest,
        )

    def _unlock_achievements(
        self,
        state: ProgressionState,
        timestamp: datetime
    ) -> Tuple[ProgressionState, List[AchievementUnlocked], List[LevelUp]]:
        """Unlock satisfied achievements, feeding their bonuses back through leveling.

        Each pass may unlock more achievements via bonus XP; running out of
        passes with unlocks still pending means the catalog is misconfigured.
        """
        unlocks = []
        level_ups = []

        for _ in range(self.config.max_achievement_passes):
            pending = self.catalog.newly_satisfied(state)
            if not pending:
                return state, unlocks, level_ups

            bonus = 0
            for achievement in pending:
                unlocks.append(AchievementUnlocked(
                    achievement_id=achievement.id,
                    title=achievement.title,
                    bonus_xp=achievement.bonus_xp,
                ))
                bonus += achievement.bonus_xp
                logger.debug("Achievement unlocked", achievement_id=achievement.id, bonus_xp=achievement.bonus_xp)

            state = state.model_copy(update={
                "achievements": state.achievements + tuple(a.id for a in pending),
            })

            if bonus:
                gain = self.compute_xp_gain(EarnEvent.bonus(bonus, timestamp))
                state, ups = self.xp_engine.apply_xp(state, gain)
                level_ups.extend(ups)

        pending = self.catalog.newly_satisfied(state)
        if pending:
            logger.error(
                "Achievement cascade exceeded pass cap",
                max_passes=self.config.max_achievement_passes,
                pending=[a.id for a in pending],
            )
            raise AchievementCascadeError(self.config.max_achievement_passes, [a.id for a in pending])

        return state, unlocks, level_ups


_default_engine: Optional[ProgressionEngine] = None


def get_engine() -> ProgressionEngine:
    """Engine built from application settings."""
    global _default_engine

    if _default_engine is None:
        _default_engine = ProgressionEngine(RewardConfig.from_settings())

    return _default_engine


def apply_event(
    state: ProgressionState,
    event: EarnEvent,
    now: datetime,
    engine: Optional[ProgressionEngine] = None
) -> ApplyResult:
    return (engine or get_engine()).apply_event(state, event, now)


def spin_wheel(
    state: ProgressionState,
    now: datetime,
    engine: Optional[ProgressionEngine] = None
) -> SpinResult:
    return (engine or get_engine()).spin_wheel(state, now)

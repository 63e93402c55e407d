"""XP calculation and leveling engine."""

import math
from typing import List, Optional, Tuple

import structlog

from habitquest.gamification.reward_config import DEFAULT_REWARD_CONFIG, QUADRATIC, RewardConfig
from habitquest.schemas.progression import EarnEvent, EventSource, LevelUp, ProgressionState

logger = structlog.get_logger()


def _clamp_score(score: Optional[float]) -> float:
    """Negative, missing or non-finite magnitudes count as zero."""
    if score is None or not math.isfinite(score) or score < 0:
        return 0.0
    return float(score)


class XpEngine:
    """Engine for calculating XP/coin gains and rolling XP into levels."""

    def __init__(self, config: RewardConfig = DEFAULT_REWARD_CONFIG):
        self.config = config

    def xp_threshold(self, level: int) -> int:
        """XP needed to advance past `level`."""
        if self.config.level_curve == QUADRATIC:
            return level * level * self.config.level_xp_base
        return level * self.config.level_xp_base

    def calculate_event_xp(self, event: EarnEvent) -> int:
        """Map an earn event to an XP amount. Never raises, never negative.

        Gains are capped at `max_event_xp` so a corrupt score can only roll a
        bounded number of levels.
        """
        return min(self._raw_event_xp(event), self.config.max_event_xp)

    def _raw_event_xp(self, event: EarnEvent) -> int:
        score = _clamp_score(event.score)

        if event.source == EventSource.SPIN.value:
            reward = int(score)
            if score == reward and reward in self.config.reward_tiers:
                return reward
            return self.config.default_xp

        if event.source == EventSource.LEVELUP_BONUS.value:
            return math.floor(score)

        rule = self.config.rule_for(event.source)
        if rule is None:
            return self.config.default_xp

        if event.source == EventSource.QUIZ.value:
            return rule.flat_xp * math.floor(score)

        rate = rule.xp_rates.get(event.game_type) if event.game_type else None
        if rate is not None:
            return max(0, math.floor(score * rate))

        return rule.flat_xp

    def calculate_event_coins(self, event: EarnEvent) -> int:
        """Coins granted directly by an event, before level-up bonuses."""
        rule = self.config.rule_for(event.source)
        if rule is None:
            return 0

        rate = rule.coin_rates.get(event.game_type) if event.game_type else None
        if rate is not None:
            return max(0, math.floor(_clamp_score(event.score) * rate))

        return rule.flat_coins

    def apply_xp(self, state: ProgressionState, gain: int) -> Tuple[ProgressionState, List[LevelUp]]:
        """Add XP, rolling any overflow into one or more level-ups."""
        gain = max(0, gain)
        xp = state.xp + gain
        level = state.level
        coins = state.coins
        level_ups = []

        threshold = self.xp_threshold(level)
        while xp >= threshold:
            xp -= threshold
            level += 1
            coins += self.config.level_up_coin_bonus
            level_ups.append(LevelUp(new_level=level, coins_awarded=self.config.level_up_coin_bonus))
            logger.debug("Level up", new_level=level, carried_xp=xp)
            threshold = self.xp_threshold(level)

        new_state = state.model_copy(update={
            "xp": xp,
            "level": level,
            "coins": coins,
            "total_xp": state.total_xp + gain,
        })
        return new_state, level_ups


_default_engine = XpEngine()


def compute_xp_gain(event: EarnEvent, config: Optional[RewardConfig] = None) -> int:
    """XP granted by `event` under `config` (defaults when omitted)."""
    engine = XpEngine(config) if config is not None else _default_engine
    return engine.calculate_event_xp(event)


def xp_threshold(level: int, config: Optional[RewardConfig] = None) -> int:
    """XP needed to advance past `level` under `config`."""
    engine = XpEngine(config) if config is not None else _default_engine
    return engine.xp_threshold(level)

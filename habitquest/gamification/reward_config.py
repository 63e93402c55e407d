"""Canonical reward configuration passed into the progression engine."""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import FrozenSet, Mapping, Optional, Tuple

from habitquest.core.config import Settings, get_settings


LINEAR = "linear"
QUADRATIC = "quadratic"


@dataclass(frozen=True)
class SourceRule:
    """XP and coin rule for one event source.

    `flat_xp` applies when no rate is known for the event's game type;
    `xp_rates`/`coin_rates` scale the raw score per game type.
    """
    flat_xp: int = 0
    flat_coins: int = 0
    xp_rates: Mapping[str, float] = field(default_factory=dict)
    coin_rates: Mapping[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class RewardConfig:
    """Every tunable number the engine uses, in one place."""

    xp_per_source: Mapping[str, SourceRule]
    reward_tiers: Tuple[int, ...] = (10, 20, 30, 40, 50, 60)
    default_xp: int = 5
    level_xp_base: int = 100
    level_curve: str = LINEAR
    level_up_coin_bonus: int = 50
    max_achievement_passes: int = 10
    max_event_xp: int = 10_000
    streak_sources: FrozenSet[str] = frozenset({"habit"})

    def __post_init__(self):
        if not self.reward_tiers:
            raise ValueError("reward_tiers must not be empty")
        if any(tier <= 0 for tier in self.reward_tiers):
            raise ValueError("reward_tiers must be positive")
        if self.level_xp_base <= 0:
            raise ValueError("level_xp_base must be positive")
        if self.level_curve not in (LINEAR, QUADRATIC):
            raise ValueError(f"Unknown level curve: {self.level_curve}")
        if self.max_achievement_passes < 1:
            raise ValueError("max_achievement_passes must be at least 1")
        if self.max_event_xp <= 0:
            raise ValueError("max_event_xp must be positive")
        object.__setattr__(self, "xp_per_source", MappingProxyType(dict(self.xp_per_source)))

    def rule_for(self, source: str) -> Optional[SourceRule]:
        return self.xp_per_source.get(source)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "RewardConfig":
        """Build the engine configuration from application settings."""
        settings = settings or get_settings()

        return cls(
            xp_per_source={
                "habit": SourceRule(
                    flat_xp=settings.XP_HABIT_COMPLETION,
                    flat_coins=settings.COINS_HABIT_COMPLETION,
                ),
                "game": SourceRule(
                    flat_xp=settings.XP_GAME_DEFAULT,
                    flat_coins=settings.COINS_GAME_DEFAULT,
                    xp_rates=dict(settings.GAME_XP_RATES),
                    coin_rates=dict(settings.GAME_COIN_RATES),
                ),
                "quiz": SourceRule(flat_xp=settings.XP_QUIZ_CORRECT),
            },
            reward_tiers=tuple(settings.SPIN_REWARD_TIERS),
            default_xp=settings.XP_GAME_DEFAULT,
            level_xp_base=settings.LEVEL_XP_BASE,
            level_curve=settings.LEVEL_CURVE,
            level_up_coin_bonus=settings.LEVEL_UP_COIN_BONUS,
            max_achievement_passes=settings.MAX_ACHIEVEMENT_PASSES,
            max_event_xp=settings.MAX_EVENT_XP,
            streak_sources=frozenset(settings.STREAK_SOURCES),
        )


DEFAULT_REWARD_CONFIG = RewardConfig(
    xp_per_source={
        "habit": SourceRule(flat_xp=10, flat_coins=5),
        "game": SourceRule(
            flat_xp=5,
            flat_coins=10,
            xp_rates={"breakthrough": 0.2},
            coin_rates={"breakthrough": 0.5},
        ),
        "quiz": SourceRule(flat_xp=10),
    }
)

"""Progression value types."""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Annotated, Dict, List, Literal, NamedTuple, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def ensure_utc(value: datetime) -> datetime:
    """Interpret naive datetimes as UTC and normalize aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class EventSource(str, Enum):
    """Known earn event sources."""
    HABIT = "habit"
    GAME = "game"
    QUIZ = "quiz"
    SPIN = "spin"
    LEVELUP_BONUS = "levelup-bonus"


class HabitFrequency(str, Enum):
    """How often a habit is expected to be completed."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class ProgressionState(BaseModel):
    """A single user's progression, loaded and saved as a whole."""

    model_config = ConfigDict(frozen=True)

    level: int = Field(default=1, ge=1)
    xp: int = Field(default=0, ge=0)
    coins: int = Field(default=0, ge=0)
    total_xp: int = Field(default=0, ge=0)
    habits_completed: int = Field(default=0, ge=0)
    streak_current: int = Field(default=0, ge=0)
    streak_longest: int = Field(default=0, ge=0)
    last_completion_at: Optional[datetime] = None
    achievements: Tuple[str, ...] = ()
    last_reward_dates: Dict[str, date] = Field(default_factory=dict)

    @field_validator("last_completion_at")
    def normalize_completion(cls, v):
        return ensure_utc(v) if v is not None else v

    @field_validator("achievements")
    def dedupe_achievements(cls, v):
        return tuple(dict.fromkeys(v))

    @model_validator(mode="after")
    def check_streaks(self):
        if self.streak_longest < self.streak_current:
            raise ValueError("streak_longest must be >= streak_current")
        return self

    def has_achievement(self, achievement_id: str) -> bool:
        return achievement_id in self.achievements


def reset_state() -> ProgressionState:
    """Fresh defaults for a new or explicitly reset user."""
    return ProgressionState()


class EarnEvent(BaseModel):
    """An action that yields XP.

    `score` is the raw magnitude: the game score for games, the number of
    correct answers for quizzes, the chosen tier for spins, and the bonus
    amount for synthetic bonus events.
    """

    model_config = ConfigDict(frozen=True)

    source: str
    score: float = 0.0
    game_type: Optional[str] = None
    frequency: HabitFrequency = HabitFrequency.DAILY
    timestamp: Optional[datetime] = None

    @field_validator("source", mode="before")
    def coerce_source(cls, v):
        if isinstance(v, Enum):
            return v.value
        return v

    @field_validator("timestamp")
    def normalize_timestamp(cls, v):
        return ensure_utc(v) if v is not None else v

    @classmethod
    def habit_completion(
        cls,
        timestamp: Optional[datetime] = None,
        frequency: HabitFrequency = HabitFrequency.DAILY
    ) -> "EarnEvent":
        return cls(source=EventSource.HABIT, timestamp=timestamp, frequency=frequency)

    @classmethod
    def game_completion(
        cls,
        game_type: str,
        score: float,
        timestamp: Optional[datetime] = None
    ) -> "EarnEvent":
        return cls(source=EventSource.GAME, game_type=game_type, score=score, timestamp=timestamp)

    @classmethod
    def quiz_answer(cls, correct: bool, timestamp: Optional[datetime] = None) -> "EarnEvent":
        return cls(source=EventSource.QUIZ, score=1.0 if correct else 0.0, timestamp=timestamp)

    @classmethod
    def spin(cls, reward: int, timestamp: Optional[datetime] = None) -> "EarnEvent":
        return cls(source=EventSource.SPIN, score=reward, timestamp=timestamp)

    @classmethod
    def bonus(cls, amount: int, timestamp: Optional[datetime] = None) -> "EarnEvent":
        return cls(source=EventSource.LEVELUP_BONUS, score=amount, timestamp=timestamp)


class LevelUp(BaseModel):
    """The user reached a new level."""
    kind: Literal["level_up"] = "level_up"
    new_level: int
    coins_awarded: int = 0


class AchievementUnlocked(BaseModel):
    """An achievement was unlocked for the first time."""
    kind: Literal["achievement_unlocked"] = "achievement_unlocked"
    achievement_id: str
    title: str = ""
    bonus_xp: int = 0


Notification = Annotated[Union[LevelUp, AchievementUnlocked], Field(discriminator="kind")]


class ApplyResult(NamedTuple):
    state: ProgressionState
    notifications: List[Notification]


class SpinResult(NamedTuple):
    reward_xp: int
    state: ProgressionState
    notifications: List[Notification]
    tier_index: int


class LevelProgress(BaseModel):
    """Dashboard view of progress toward the next level."""
    level: int
    xp: int
    xp_for_next_level: int
    xp_to_next_level: int
    progress_percentage: float
    coins: int
    streak_current: int
    streak_longest: int

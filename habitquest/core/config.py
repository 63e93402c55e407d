"""Configuration management for the HabitQuest progression engine."""

from typing import Annotated, Dict, List
from functools import lru_cache

from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from pydantic import Field, field_validator
import json


class Settings(BaseSettings):
    """Application settings with validation."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    # Application
    APP_NAME: str = "HabitQuest Progression"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = Field(default="development", pattern="^(development|staging|production)$")

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./habitquest.db"
    DATABASE_ECHO: bool = False

    # XP per event source
    XP_HABIT_COMPLETION: int = Field(default=10, ge=0)
    XP_QUIZ_CORRECT: int = Field(default=10, ge=0)
    XP_GAME_DEFAULT: int = Field(default=5, ge=0)
    GAME_XP_RATES: Dict[str, float] = Field(default_factory=lambda: {"breakthrough": 0.2})

    # Coins
    COINS_HABIT_COMPLETION: int = Field(default=5, ge=0)
    COINS_GAME_DEFAULT: int = Field(default=10, ge=0)
    GAME_COIN_RATES: Dict[str, float] = Field(default_factory=lambda: {"breakthrough": 0.5})
    LEVEL_UP_COIN_BONUS: int = Field(default=50, ge=0)

    # Leveling
    LEVEL_XP_BASE: int = Field(default=100, gt=0)
    LEVEL_CURVE: str = Field(default="linear", pattern="^(linear|quadratic)$")

    # Daily spin wheel
    SPIN_REWARD_TIERS: Annotated[List[int], NoDecode] = Field(default_factory=lambda: [10, 20, 30, 40, 50, 60])

    # Achievements and streaks
    MAX_ACHIEVEMENT_PASSES: int = Field(default=10, ge=1)
    MAX_EVENT_XP: int = Field(default=10_000, gt=0)
    STREAK_SOURCES: Annotated[List[str], NoDecode] = Field(default_factory=lambda: ["habit"])

    # Logging
    LOG_LEVEL: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    LOG_FORMAT: str = Field(default="json", pattern="^(json|plain)$")

    @field_validator("SPIN_REWARD_TIERS", mode="before")
    def parse_reward_tiers(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [int(tier.strip()) for tier in v.split(",") if tier.strip()]
        return v

    @field_validator("SPIN_REWARD_TIERS")
    def validate_reward_tiers(cls, v):
        if not v:
            raise ValueError("SPIN_REWARD_TIERS must contain at least one tier")
        if any(tier <= 0 for tier in v):
            raise ValueError("SPIN_REWARD_TIERS must be positive")
        return v

    @field_validator("STREAK_SOURCES", mode="before")
    def parse_streak_sources(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [source.strip() for source in v.split(",") if source.strip()]
        return v

    def is_production(self) -> bool:
        """Check if running in production."""
        return self.ENVIRONMENT == "production"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()

"""Domain exceptions for the progression engine.

Every error raised on purpose by the engine, the stores or the service derives
from `HabitQuestError`, which carries a human-readable message, structured
details for logging, and a stable error code callers can branch on.
"""

from datetime import date
from typing import Any, Dict, Optional


class HabitQuestError(Exception):
    """Base exception for all progression errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        self.error_code = error_code or self.__class__.__name__
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        details_str = f" | Details: {self.details}" if self.details else ""
        return f"[{self.error_code}] {self.message}{details_str}"


class AlreadySpunError(HabitQuestError):
    """The daily reward wheel was already spun on this UTC date."""

    def __init__(self, spun_on: date) -> None:
        self.spun_on = spun_on
        super().__init__(
            "Already spun today",
            {"spun_on": spun_on.isoformat()},
            error_code="ALREADY_SPUN",
        )


class AchievementCascadeError(HabitQuestError):
    """Achievement bonuses kept unlocking new achievements past the pass cap.

    This is a catalog configuration error, not a user-facing condition.
    """

    def __init__(self, max_passes: int, pending: list) -> None:
        self.max_passes = max_passes
        self.pending = list(pending)
        super().__init__(
            f"Achievement unlocks still pending after {max_passes} passes",
            {"max_passes": max_passes, "pending": self.pending},
            error_code="ACHIEVEMENT_CASCADE",
        )


class InvalidCatalogError(HabitQuestError):
    """An achievement catalog is malformed."""


class PersistenceError(HabitQuestError):
    """Loading or saving progression state failed."""

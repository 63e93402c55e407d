"""Data models for HabitQuest."""

from habitquest.models.progression import ProgressionRecord

__all__ = [
    "ProgressionRecord",
]

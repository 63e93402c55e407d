"""Progression persistence models."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, JSON, String

from habitquest.core.database import Base


class ProgressionRecord(Base):
    """Stored progression state, one row per user."""
    __tablename__ = "progression_states"

    user_id = Column(String, primary_key=True)
    level = Column(Integer, nullable=False, default=1)
    xp = Column(Integer, nullable=False, default=0)
    coins = Column(Integer, nullable=False, default=0)
    total_xp = Column(Integer, nullable=False, default=0)
    habits_completed = Column(Integer, nullable=False, default=0)
    streak_current = Column(Integer, nullable=False, default=0)
    streak_longest = Column(Integer, nullable=False, default=0)
    last_completion_at = Column(DateTime(timezone=True))
    achievements = Column(JSON, nullable=False, default=list)  # Ordered list of ids
    last_reward_dates = Column(JSON, nullable=False, default=dict)  # source -> ISO date
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

"""Progression state stores."""

import copy
from datetime import date
from typing import Dict, Optional, Protocol

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from habitquest.core.exceptions import PersistenceError
from habitquest.models.progression import ProgressionRecord
from habitquest.schemas.progression import ProgressionState, ensure_utc

logger = structlog.get_logger()


class ProgressionStore(Protocol):
    """Loads and saves whole progression states keyed by user id."""

    async def load(self, user_id: str) -> Optional[ProgressionState]:
        ...

    async def save(self, user_id: str, state: ProgressionState) -> None:
        ...

    async def delete(self, user_id: str) -> None:
        ...


class InMemoryProgressionStore:
    """Process-local store, for tests and single-process prototypes."""

    def __init__(self):
        self._states: Dict[str, ProgressionState] = {}

    async def load(self, user_id: str) -> Optional[ProgressionState]:
        return self._states.get(user_id)

    async def save(self, user_id: str, state: ProgressionState) -> None:
        self._states[user_id] = copy.deepcopy(state)

    async def delete(self, user_id: str) -> None:
        self._states.pop(user_id, None)


def record_to_state(record: ProgressionRecord) -> ProgressionState:
    return ProgressionState(
        level=record.level,
        xp=record.xp,
        coins=record.coins,
        total_xp=record.total_xp,
        habits_completed=record.habits_completed,
        streak_current=record.streak_current,
        streak_longest=record.streak_longest,
        last_completion_at=ensure_utc(record.last_completion_at) if record.last_completion_at else None,
        achievements=tuple(record.achievements or ()),
        last_reward_dates={
            source: date.fromisoformat(value)
            for source, value in (record.last_reward_dates or {}).items()
        },
    )


def apply_state_to_record(record: ProgressionRecord, state: ProgressionState) -> None:
    record.level = state.level
    record.xp = state.xp
    record.coins = state.coins
    record.total_xp = state.total_xp
    record.habits_completed = state.habits_completed
    record.streak_current = state.streak_current
    record.streak_longest = state.streak_longest
    record.last_completion_at = state.last_completion_at
    record.achievements = list(state.achievements)
    record.last_reward_dates = {
        source: value.isoformat() for source, value in state.last_reward_dates.items()
    }


class SqlProgressionStore:
    """SQLAlchemy-backed store using one row per user."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def load(self, user_id: str) -> Optional[ProgressionState]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(ProgressionRecord).where(ProgressionRecord.user_id == user_id)
                )
                record = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Failed to load progression", user_id=user_id, error=str(e))
            raise PersistenceError("Failed to load progression", {"user_id": user_id}) from e

        return record_to_state(record) if record else None

    async def save(self, user_id: str, state: ProgressionState) -> None:
        async with self.session_factory() as session:
            try:
                result = await session.execute(
                    select(ProgressionRecord).where(ProgressionRecord.user_id == user_id)
                )
                record = result.scalar_one_or_none()

                if not record:
                    record = ProgressionRecord(user_id=user_id)
                    session.add(record)

                apply_state_to_record(record, state)
                await session.commit()
            except SQLAlchemyError as e:
                logger.error("Failed to save progression", user_id=user_id, error=str(e))
                await session.rollback()
                raise PersistenceError("Failed to save progression", {"user_id": user_id}) from e

    async def delete(self, user_id: str) -> None:
        async with self.session_factory() as session:
            try:
                await session.execute(
                    delete(ProgressionRecord).where(ProgressionRecord.user_id == user_id)
                )
                await session.commit()
            except SQLAlchemyError as e:
                logger.error("Failed to delete progression", user_id=user_id, error=str(e))
                await session.rollback()
                raise PersistenceError("Failed to delete progression", {"user_id": user_id}) from e

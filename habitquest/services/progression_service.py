"""Progression service: serialized load/apply/save per user."""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Dict

import structlog

from habitquest.core.exceptions import AlreadySpunError
from habitquest.gamification.progression_engine import ProgressionEngine
from habitquest.schemas.progression import (
    ApplyResult, EarnEvent, LevelProgress, ProgressionState, SpinResult, reset_state,
)
from habitquest.store.progression_store import ProgressionStore

logger = structlog.get_logger()


class ProgressionService:
    """Runs engine operations against a store, one at a time per user.

    Each call holds the user's lock across load, apply and save, so
    concurrent events for the same user can't overwrite each other. State is
    saved before the result is returned.
    """

    def __init__(self, store: ProgressionStore, engine: ProgressionEngine):
        self.store = store
        self.engine = engine
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_holders: Dict[str, int] = {}

    @asynccontextmanager
    async def _user_scope(self, user_id: str) -> AsyncIterator[None]:
        # Locks live only while some call holds or awaits them
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        self._lock_holders[user_id] = self._lock_holders.get(user_id, 0) + 1

        try:
            async with lock:
                with structlog.contextvars.bound_contextvars(user_id=user_id):
                    yield
        finally:
            self._lock_holders[user_id] -= 1
            if not self._lock_holders[user_id]:
                del self._lock_holders[user_id]
                del self._locks[user_id]

    async def _load(self, user_id: str) -> ProgressionState:
        state = await self.store.load(user_id)
        if state is None:
            logger.info("Creating default progression")
            state = reset_state()
        return state

    async def get_state(self, user_id: str) -> ProgressionState:
        async with self._user_scope(user_id):
            return await self._load(user_id)

    async def get_progress(self, user_id: str) -> LevelProgress:
        state = await self.get_state(user_id)
        return self.engine.level_progress(state)

    async def record_event(self, user_id: str, event: EarnEvent, now: datetime) -> ApplyResult:
        """Apply an earn event and persist the new state."""
        async with self._user_scope(user_id):
            state = await self._load(user_id)
            result = self.engine.apply_event(state, event, now)
            await self.store.save(user_id, result.state)

            logger.info(
                "Event applied",
                source=event.source,
                level=result.state.level,
                xp=result.state.xp,
                notifications=[n.kind for n in result.notifications],
            )
            return result

    async def spin(self, user_id: str, now: datetime) -> SpinResult:
        """Spin the daily wheel and persist the new state."""
        async with self._user_scope(user_id):
            state = await self._load(user_id)
            try:
                result = self.engine.spin_wheel(state, now)
            except AlreadySpunError as e:
                logger.info("Spin rejected", spun_on=e.spun_on.isoformat())
                raise

            await self.store.save(user_id, result.state)
            logger.info("Wheel spun", reward_xp=result.reward_xp, tier_index=result.tier_index)
            return result

    async def reset(self, user_id: str) -> ProgressionState:
        """Clear a user's progression back to defaults."""
        async with self._user_scope(user_id):
            await self.store.delete(user_id)
            logger.info("Progression reset")
            return reset_state()

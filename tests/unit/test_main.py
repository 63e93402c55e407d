"""Unit tests for service wiring (habitquest/main.py)"""
import random

import pytest

from habitquest.core.database import dispose_engine, get_engine
from habitquest.main import create_service
from habitquest.schemas.progression import EarnEvent
from habitquest.store.progression_store import SqlProgressionStore

from tests.helpers import utc


@pytest.mark.asyncio
async def test_create_service_persists_to_database(tmp_path):
    get_engine(f"sqlite+aiosqlite:///{tmp_path / 'habitquest.db'}")
    try:
        service = await create_service(rng=random.Random(5))
        assert isinstance(service.store, SqlProgressionStore)

        result = await service.record_event("u1", EarnEvent.habit_completion(), utc(day=1))
        spin = await service.spin("u1", utc(day=1))

        reloaded = await service.get_state("u1")
        assert reloaded == spin.state
        assert reloaded.habits_completed == 1
        assert reloaded.total_xp == result.state.total_xp + spin.reward_xp
    finally:
        await dispose_engine()

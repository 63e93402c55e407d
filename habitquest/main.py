"""Composition root for the progression service."""

import random
from typing import Optional

import structlog

from habitquest.core.config import settings
from habitquest.core.database import get_session_factory, init_db
from habitquest.core.logging import setup_logging
from habitquest.gamification.achievement_engine import DEFAULT_CATALOG, AchievementCatalog
from habitquest.gamification.progression_engine import ProgressionEngine
from habitquest.gamification.reward_config import RewardConfig
from habitquest.services.progression_service import ProgressionService
from habitquest.store.progression_store import SqlProgressionStore

logger = structlog.get_logger()


async def create_service(
    catalog: AchievementCatalog = DEFAULT_CATALOG,
    rng: Optional[random.Random] = None
) -> ProgressionService:
    """Configure logging, create tables and wire store + engine together."""
    setup_logging(settings)
    logger.info("Starting HabitQuest progression")

    await init_db()

    engine = ProgressionEngine(RewardConfig.from_settings(settings), catalog, rng)
    store = SqlProgressionStore(get_session_factory())

    logger.info("Progression service initialized", level_curve=engine.config.level_curve)
    return ProgressionService(store, engine)

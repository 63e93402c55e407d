"""Global test fixtures for progression tests"""
import random

import pytest

from habitquest.gamification.achievement_engine import AchievementCatalog
from habitquest.gamification.progression_engine import ProgressionEngine

from tests.helpers import utc


@pytest.fixture
def now():
    return utc()


@pytest.fixture
def bare_engine():
    """Engine with no achievements and a seeded wheel"""
    return ProgressionEngine(catalog=AchievementCatalog([]), rng=random.Random(42))


@pytest.fixture
def engine():
    """Engine with the default achievement catalog and a seeded wheel"""
    return ProgressionEngine(rng=random.Random(42))


@pytest.fixture
def test_user_id():
    return "user-123"

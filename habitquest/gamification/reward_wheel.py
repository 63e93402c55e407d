"""Daily reward wheel: once-per-day gate and tier selection."""

import math
import random
from datetime import date, datetime
from typing import Optional, Sequence, Tuple

from habitquest.core.exceptions import AlreadySpunError
from habitquest.schemas.progression import ProgressionState, ensure_utc

SPIN_REWARD_KEY = "spin"
MIN_FULL_TURNS = 5


class RewardWheel:
    """Uniform draw over fixed reward tiers, gated to one spin per UTC day.

    The draw is independent of any animation; use `landing_rotation` to
    derive an angle that lands on the tier already chosen.
    """

    def __init__(self, tiers: Sequence[int], rng: Optional[random.Random] = None):
        if not tiers:
            raise ValueError("Reward wheel needs at least one tier")
        self.tiers = tuple(tiers)
        self.rng = rng or random.Random()

    def spun_on(self, state: ProgressionState) -> Optional[date]:
        return state.last_reward_dates.get(SPIN_REWARD_KEY)

    def can_spin(self, state: ProgressionState, now: datetime) -> bool:
        return self.spun_on(state) != ensure_utc(now).date()

    def check_gate(self, state: ProgressionState, now: datetime) -> date:
        """Return today's UTC date, or raise if the wheel was spun today."""
        today = ensure_utc(now).date()
        if self.spun_on(state) == today:
            raise AlreadySpunError(today)
        return today

    def draw(self) -> Tuple[int, int]:
        """Pick a tier uniformly; returns `(tier_index, reward)`."""
        index = self.rng.randrange(len(self.tiers))
        return index, self.tiers[index]

    def mark_spun(self, state: ProgressionState, today: date) -> ProgressionState:
        return state.model_copy(update={
            "last_reward_dates": {**state.last_reward_dates, SPIN_REWARD_KEY: today},
        })


def landing_rotation(
    tier_index: int,
    tier_count: int,
    rng: Optional[random.Random] = None,
    full_turns: int = MIN_FULL_TURNS
) -> float:
    """Rotation in degrees that stops the wheel inside segment `tier_index`."""
    if not 0 <= tier_index < tier_count:
        raise ValueError(f"tier_index {tier_index} out of range for {tier_count} tiers")

    rng = rng or random.Random()
    segment = 360 / tier_count
    offset = rng.uniform(0.1, 0.9) * segment
    return 360 * full_turns + tier_index * segment + offset


def segment_for_rotation(rotation: float, tier_count: int) -> int:
    """Which segment a rotation stops on."""
    segment = 360 / tier_count
    return int(math.floor((rotation % 360) / segment)) % tier_count

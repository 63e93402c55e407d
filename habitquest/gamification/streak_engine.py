"""Streak continuation and reset rules."""

from datetime import datetime

import structlog

from habitquest.schemas.progression import HabitFrequency, ProgressionState, ensure_utc

logger = structlog.get_logger()

# Largest calendar-day gap that still continues a streak
STREAK_WINDOW_DAYS = {
    HabitFrequency.DAILY: 1,
    HabitFrequency.WEEKLY: 7,
    HabitFrequency.MONTHLY: 30,
}


def gap_in_days(earlier: datetime, later: datetime) -> int:
    """Whole UTC calendar days between two timestamps."""
    return (ensure_utc(later).date() - ensure_utc(earlier).date()).days


def update_streak(
    state: ProgressionState,
    completion_at: datetime,
    frequency: HabitFrequency = HabitFrequency.DAILY
) -> ProgressionState:
    """Count a qualifying completion toward the streak.

    A completion in the same period as the last one is a no-op for the
    counters; the next period continues the streak; anything later restarts
    it at 1. Completions older than the last recorded one are ignored.
    """
    completion_at = ensure_utc(completion_at)
    last = state.last_completion_at
    current = state.streak_current

    if last is None:
        current = 1
    else:
        gap = gap_in_days(last, completion_at)
        window = STREAK_WINDOW_DAYS[HabitFrequency(frequency)]

        if gap < 0:
            return state
        elif gap == 0:
            pass
        elif gap <= window:
            current += 1
        else:
            logger.debug("Streak broken", previous_streak=current, gap_days=gap, frequency=HabitFrequency(frequency).value)
            current = 1

    if last is not None and completion_at < last:
        completion_at = last

    return state.model_copy(update={
        "streak_current": current,
        "streak_longest": max(state.streak_longest, current),
        "last_completion_at": completion_at,
    })


def effective_streak(
    state: ProgressionState,
    now: datetime,
    frequency: HabitFrequency = HabitFrequency.DAILY
) -> int:
    """Streak to display at `now`: 0 once the continuation window has lapsed."""
    if state.last_completion_at is None:
        return 0
    if gap_in_days(state.last_completion_at, now) > STREAK_WINDOW_DAYS[HabitFrequency(frequency)]:
        return 0
    return state.streak_current

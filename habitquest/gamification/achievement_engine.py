"""Achievement catalog and unlock evaluation."""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Tuple

from habitquest.core.exceptions import InvalidCatalogError
from habitquest.schemas.progression import ProgressionState


Predicate = Callable[[ProgressionState], bool]

# State fields a criteria-based achievement may test
METRICS = (
    "level",
    "total_xp",
    "coins",
    "habits_completed",
    "streak_current",
    "streak_longest",
)


def metric_at_least(metric: str, target: int) -> Predicate:
    """Predicate: `state.<metric> >= target`."""
    if metric not in METRICS:
        raise InvalidCatalogError(f"Unknown achievement metric: {metric}", {"metric": metric})

    def predicate(state: ProgressionState) -> bool:
        return getattr(state, metric) >= target

    predicate.__name__ = f"{metric}_at_least_{target}"
    return predicate


def streak_at_least(days: int) -> Predicate:
    return metric_at_least("streak_current", days)


def level_at_least(level: int) -> Predicate:
    return metric_at_least("level", level)


@dataclass(frozen=True)
class Achievement:
    """A one-time milestone with an XP bonus."""
    id: str
    title: str
    predicate: Predicate
    bonus_xp: int = 0
    description: str = ""

    @classmethod
    def from_criteria(cls, achievement_id: str, definition: Mapping[str, Any]) -> "Achievement":
        """Build from a `{"title", "metric", "target", "xp"}` definition."""
        try:
            return cls(
                id=achievement_id,
                title=definition.get("title", achievement_id),
                predicate=metric_at_least(definition["metric"], int(definition["target"])),
                bonus_xp=int(definition.get("xp", 0)),
                description=definition.get("description", ""),
            )
        except KeyError as e:
            raise InvalidCatalogError(
                f"Achievement {achievement_id} is missing {e.args[0]}",
                {"achievement_id": achievement_id},
            ) from e


class AchievementCatalog:
    """Static, ordered list of achievements."""

    def __init__(self, achievements: Iterable[Achievement]):
        self._achievements: Tuple[Achievement, ...] = tuple(achievements)

        seen = set()
        for achievement in self._achievements:
            if achievement.id in seen:
                raise InvalidCatalogError(
                    f"Duplicate achievement id: {achievement.id}",
                    {"achievement_id": achievement.id},
                )
            if achievement.bonus_xp < 0:
                raise InvalidCatalogError(
                    f"Negative bonus for achievement: {achievement.id}",
                    {"achievement_id": achievement.id, "bonus_xp": achievement.bonus_xp},
                )
            seen.add(achievement.id)

    @classmethod
    def from_definitions(cls, definitions: Mapping[str, Mapping[str, Any]]) -> "AchievementCatalog":
        return cls(Achievement.from_criteria(key, value) for key, value in definitions.items())

    def __iter__(self) -> Iterator[Achievement]:
        return iter(self._achievements)

    def __len__(self) -> int:
        return len(self._achievements)

    def get(self, achievement_id: str) -> Achievement:
        for achievement in self._achievements:
            if achievement.id == achievement_id:
                return achievement
        raise KeyError(achievement_id)

    def newly_satisfied(self, state: ProgressionState) -> List[Achievement]:
        """Achievements whose predicate holds but which aren't unlocked yet, in catalog order."""
        return [
            achievement for achievement in self._achievements
            if not state.has_achievement(achievement.id) and achievement.predicate(state)
        ]

    def progress(self, state: ProgressionState) -> Dict[str, bool]:
        """Unlocked flag per achievement id, for badge displays."""
        return {achievement.id: state.has_achievement(achievement.id) for achievement in self._achievements}


DEFAULT_ACHIEVEMENT_DEFINITIONS = {
    "first-habit": {
        "title": "Habit Starter",
        "description": "Completed your first habit!",
        "metric": "habits_completed",
        "target": 1,
        "xp": 50,
    },
    "streak-3": {"title": "3-Day Streak", "metric": "streak_current", "target": 3, "xp": 30},
    "streak-7": {"title": "7-Day Streak", "metric": "streak_current", "target": 7, "xp": 70},
    "streak-14": {"title": "2-Week Streak", "metric": "streak_current", "target": 14, "xp": 140},
    "streak-30": {"title": "Monthly Master", "metric": "streak_current", "target": 30, "xp": 300},
    "streak-60": {"title": "60-Day Champion", "metric": "streak_current", "target": 60, "xp": 600},
    "streak-90": {"title": "Habit Hero", "metric": "streak_current", "target": 90, "xp": 900},
    "xp-100": {
        "title": "Milestone 100 XP",
        "description": "Reached 100 XP points",
        "metric": "total_xp",
        "target": 100,
        "xp": 0,
    },
    "level-5": {"title": "Reached Level 5", "metric": "level", "target": 5, "xp": 0},
    "level-10": {"title": "Reached Level 10", "metric": "level", "target": 10, "xp": 0},
}

DEFAULT_CATALOG = AchievementCatalog.from_definitions(DEFAULT_ACHIEVEMENT_DEFINITIONS)

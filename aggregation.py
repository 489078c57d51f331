"""
WolfPack — Aggregation Engine
Pure derivations over workout events: points and levels, apparel usage and
performance smoothing, achievement and challenge progress, rankings.
Nothing in here touches the database; the domain store feeds values in and
writes the returned records back.
"""

import math
import re
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional, Sequence, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")


# ══════════════════════════════════════════════════════════════════════════════
# CONSTANTS
# ══════════════════════════════════════════════════════════════════════════════

POINTS_PER_LEVEL = 100
WORKOUT_POINTS_DIVISOR = 5
ACHIEVEMENT_BONUS_POINTS = 25
CHALLENGE_BONUS_POINTS = 50

LONG_WORKOUT_MINUTES = 30
LONG_WORKOUT_PROGRESS = 10
SHORT_WORKOUT_PROGRESS = 5

# Performance rating: each factor saturates at its cap and carries half the weight
DURATION_CAP_MINUTES = 60
CALORIE_CAP = 500
SMOOTHING_OLD_WEIGHT = 7    # tenths
SMOOTHING_NEW_WEIGHT = 3    # tenths

CONSISTENCY_ACHIEVEMENT = "Alpha Consistency"
CONSISTENCY_WORKOUT_COUNT = 5
CALORIE_ACHIEVEMENT = "Power Surge"
CALORIE_GOAL = 10_000

MAX_PROGRESS = 100

CATEGORY_KEYWORDS = {
    "cardio": {
        "cardio", "running", "run", "jogging", "cycling", "bike", "biking", "swimming",
        "swim", "rowing", "walking", "hiking", "hiit", "spinning", "elliptical",
    },
    "strength": {
        "strength", "weights", "weight", "weightlifting", "lifting", "powerlifting",
        "crossfit", "resistance", "bodyweight", "calisthenics",
    },
    "flexibility": {
        "yoga", "pilates", "stretching", "flexibility", "mobility",
    },
}


# ══════════════════════════════════════════════════════════════════════════════
# HELPERS
# ══════════════════════════════════════════════════════════════════════════════

def round_half_up(value: float) -> int:
    """Round non-negative values with .5 going up (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ══════════════════════════════════════════════════════════════════════════════
# POINTS & LEVELS
# ══════════════════════════════════════════════════════════════════════════════

def level_for_points(points: int) -> int:
    return points // POINTS_PER_LEVEL + 1


def points_for_workout(duration: int) -> int:
    return duration // WORKOUT_POINTS_DIVISOR


def workout_progress(duration: int) -> int:
    return LONG_WORKOUT_PROGRESS if duration > LONG_WORKOUT_MINUTES else SHORT_WORKOUT_PROGRESS


# ══════════════════════════════════════════════════════════════════════════════
# APPAREL USAGE
# ══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ApparelUsage:
    usage_count: int = 0
    total_workout_duration: int = 0
    total_calories_burned: int = 0
    average_workout_duration: int = 0
    performance_rating: int = 0
    last_used: Optional[datetime] = None


def performance_score(duration: int, calories: int) -> int:
    """Single-workout performance on a 0–100 scale."""
    duration_factor = min(duration / DURATION_CAP_MINUTES, 1.0)
    calorie_factor = min(calories / CALORIE_CAP, 1.0)
    return round_half_up((duration_factor * 0.5 + calorie_factor * 0.5) * 100)


def smooth_rating(old_rating: int, current: int) -> int:
    """
    Exponential smoothing, 70% history / 30% latest workout.
    Integer arithmetic keeps exact halves exact before rounding.
    """
    blended = (old_rating * SMOOTHING_OLD_WEIGHT + current * SMOOTHING_NEW_WEIGHT) / 10
    return round_half_up(blended)


def apply_workout(usage: ApparelUsage, duration: int, calories: int, when: datetime) -> ApparelUsage:
    """Return the usage aggregate after one more workout in this garment."""
    count = usage.usage_count + 1
    total_duration = usage.total_workout_duration + duration
    total_calories = usage.total_calories_burned + calories
    return replace(
        usage,
        usage_count=count,
        total_workout_duration=total_duration,
        total_calories_burned=total_calories,
        average_workout_duration=round_half_up(total_duration / count),
        performance_rating=smooth_rating(usage.performance_rating, performance_score(duration, calories)),
        last_used=when,
    )


# ══════════════════════════════════════════════════════════════════════════════
# MONOTONIC PROGRESS
# ══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ProgressState:
    progress: int = 0
    completed: bool = False


@dataclass(frozen=True)
class ProgressUpdate:
    state: ProgressState
    changed: bool
    newly_completed: bool


def advance_progress(current: ProgressState, submitted: int) -> ProgressUpdate:
    """
    Progress only moves forward. A submission at or below the stored value
    leaves the record untouched; completion latches the first time 100 is reached.
    """
    submitted = max(0, min(submitted, MAX_PROGRESS))
    if submitted <= current.progress:
        return ProgressUpdate(state=current, changed=False, newly_completed=False)

    completed = current.completed or submitted >= MAX_PROGRESS
    return ProgressUpdate(
        state=ProgressState(progress=submitted, completed=completed),
        changed=True,
        newly_completed=completed and not current.completed,
    )


def consistency_reached(workout_count: int) -> bool:
    # Count-based stand-in for "5 consecutive days"
    return workout_count >= CONSISTENCY_WORKOUT_COUNT


def calorie_progress(total_calories: int) -> int:
    progress = min(round_half_up(total_calories / CALORIE_GOAL * 100), MAX_PROGRESS)
    if total_calories < CALORIE_GOAL:
        # rounding must not complete the goal early
        progress = min(progress, MAX_PROGRESS - 1)
    return progress


# ══════════════════════════════════════════════════════════════════════════════
# CHALLENGES
# ══════════════════════════════════════════════════════════════════════════════

def challenge_status(start: datetime, end: datetime, now: Optional[datetime] = None) -> str:
    now = as_utc(now or utcnow())
    if now < as_utc(start):
        return "upcoming"
    if now > as_utc(end):
        return "expired"
    return "active"


def workout_category(workout_type: str) -> Optional[str]:
    words = set(re.split(r"[^a-z]+", workout_type.lower())) - {""}
    for category, keywords in CATEGORY_KEYWORDS.items():
        if words & keywords:
            return category
    return None


def matches_category(workout_type: str, category: Optional[str]) -> bool:
    return category is None or workout_category(workout_type) == category


def challenge_progress(matching_workouts: int, target_workouts: int) -> int:
    if target_workouts <= 0:
        return MAX_PROGRESS
    return min(round_half_up(matching_workouts / target_workouts * 100), MAX_PROGRESS)


# ══════════════════════════════════════════════════════════════════════════════
# RANKINGS & STATS
# ══════════════════════════════════════════════════════════════════════════════

def rank_descending(items: Iterable[T], key: Callable[[T], int], limit: Optional[int] = None) -> list[T]:
    """Sort by key descending; sorted() is stable so ties keep insertion order."""
    ranked = sorted(items, key=key, reverse=True)
    return ranked if limit is None else ranked[:limit]


@dataclass(frozen=True)
class WorkoutTotals:
    total_workouts: int
    total_calories: int
    avg_progress: int


def workout_totals(calories: Sequence[int], progress: Sequence[int]) -> WorkoutTotals:
    count = len(progress)
    avg = round_half_up(sum(progress) / count) if count else 0
    return WorkoutTotals(total_workouts=count, total_calories=sum(calories), avg_progress=avg)
